"""
K-means++ selection over a weighted candidate pool.

Chooses centers far apart from each other: each new center is drawn with
probability proportional to its weight times its distance to the closest
center chosen so far. Used on its own, and as the reduction step of
K-means|| where the pool is the oversampled candidate set.
"""

import logging
import warnings
from typing import Optional

import torch
from torch import Tensor

from ..algorithms.simple import MultiKMeans
from ..base.data_structures import DTYPE, BregmanCenters, BregmanPoints
from ..representations.point_ops import BregmanPointOps

logger = logging.getLogger(__name__)


class KMeansPlusPlus:
    """K-means++ seeding for one run over a candidate pool.

    Args:
        ops: Point operations (distance function)
    """

    def __init__(self, ops: BregmanPointOps):
        self.ops = ops

    def cluster(self, candidates: BregmanCenters, weights: Tensor, k: int,
                clusterer=None, generator: Optional[torch.Generator] = None) -> BregmanCenters:
        """Seed with K-means++, then run Lloyd's on the weighted candidates.

        Args:
            candidates: Candidate centers
            weights: (m,) weight of each candidate
            k: Number of centers requested
            clusterer: Engine for the refinement (MultiKMeans with 30
                iterations by default)
            generator: Random number generator

        Returns:
            At most k refined centers
        """
        if clusterer is None:
            clusterer = MultiKMeans(max_iterations=30)

        initial = self.get_centers(candidates, weights, k, 1, generator)
        result = clusterer.cluster(self.ops, self.weighted_points(candidates, weights), [initial])
        return result[0].centers

    def weighted_points(self, candidates: BregmanCenters, weights: Tensor) -> BregmanPoints:
        """Candidates as points carrying the given weights."""
        points = self.ops.to_point(candidates)
        x = points.inhomogeneous
        weights = torch.as_tensor(weights, dtype=DTYPE)
        return BregmanPoints(x * weights.unsqueeze(1), weights, x, points.f)

    def get_centers(self, candidates: BregmanCenters, weights: Tensor, k: int,
                    per_round: int = 1,
                    generator: Optional[torch.Generator] = None) -> BregmanCenters:
        """Select up to k centers in rounds of per_round picks.

        Selection stops early, returning fewer than k centers, once no
        candidate has positive selection weight left.

        Args:
            candidates: Candidate centers
            weights: (m,) weight of each candidate
            k: Number of centers requested
            per_round: Picks per round before distances are updated
            generator: Random number generator

        Returns:
            The selected centers, at most k

        Raises:
            ValueError: If the pool is empty, k <= 0 or per_round <= 0
        """
        n_candidates = len(candidates)
        if n_candidates == 0:
            raise ValueError("Candidate pool is empty")
        if k <= 0:
            raise ValueError(f"k must be positive, got {k}")
        if per_round <= 0:
            raise ValueError(f"per_round must be positive, got {per_round}")
        weights = torch.as_tensor(weights, dtype=DTYPE)
        if weights.shape != (n_candidates,):
            raise ValueError(f"Expected {n_candidates} weights, got shape {tuple(weights.shape)}")

        if n_candidates < k:
            warnings.warn(f"Number of clusters requested {k} exceeds number of "
                          f"candidates {n_candidates}")

        points = self.ops.to_point(candidates)
        logger.info(f"Starting K-means++ on {n_candidates} candidates")

        first = self.pick_weighted(self.cumulative_weights(weights), generator)
        if first is None:
            raise ValueError("Candidate weights sum to zero")
        selected = [first]

        distances = torch.full((n_candidates,), float('inf'), dtype=DTYPE)
        distances = self.update_distances(points, distances, candidates.select([first]))

        more = True
        while len(selected) < k and more:
            costs = torch.where(weights > 0, weights * distances, torch.zeros_like(distances))
            cumulative = self.cumulative_weights(costs)
            picks = [self.pick_weighted(cumulative, generator) for _ in range(per_round)]
            # Draws of one round share a table; keep the first of any repeats
            picks = list(dict.fromkeys(p for p in picks if p is not None))
            if picks:
                distances = self.update_distances(points, distances, candidates.select(picks))
                selected.extend(picks)
                logger.debug(f"Chose {len(picks)} new centers")
            more = len(picks) > 0

        result = candidates.select(selected[:k])
        logger.info(f"Completed K-means++ with {len(result)} centers of {k} requested")
        return result

    def update_distances(self, points: BregmanPoints, distances: Tensor,
                         centers: BregmanCenters) -> Tensor:
        """Distance to the closest center, given newly added centers."""
        return torch.minimum(distances, self.ops.point_cost(points, centers))

    @staticmethod
    def cumulative_weights(weights: Tensor) -> Tensor:
        return torch.cumsum(torch.as_tensor(weights, dtype=DTYPE), dim=0)

    @staticmethod
    def pick_weighted(cumulative: Tensor,
                      generator: Optional[torch.Generator] = None) -> Optional[int]:
        """Index of the first cumulative weight strictly exceeding u * total.

        u is uniform in [0, 1). Returns None when no such index exists, which
        is the case whenever the total weight is zero.
        """
        total = cumulative[-1]
        if not torch.isfinite(total) or total <= 0:
            return None
        u = torch.rand(1, generator=generator, dtype=DTYPE)
        r = u * total
        index = int(torch.searchsorted(cumulative, r, right=True)[0].item())
        return index if index < cumulative.shape[0] else None
