"""
K-means|| initialization (Bahmani et al., Scalable K-Means++, VLDB 2012).

A variant of K-means++ that finds dissimilar centers in a few passes over
the data. Starting from one random point per run, each pass samples about
2k points per run with probability proportional to their distance from that
run's current centers. The oversampled candidate set is then weighted by the
number of points closest to each candidate and reduced to k centers with a
local K-means++ and Lloyd's run on the candidates alone.
"""

import logging
from typing import List

import torch
from torch import Tensor

from ..algorithms.simple import MultiKMeans
from ..base.data_structures import DTYPE, BregmanCenters, BregmanPoints
from ..base.interfaces import InitializationStrategy
from ..representations.point_ops import BregmanPointOps
from ..utils.parallel import PartitionedDataset
from ..utils.validation import check_positive, check_random_state
from .kmeans_plusplus import KMeansPlusPlus

logger = logging.getLogger(__name__)


class KMeansParallel(InitializationStrategy):
    """K-means|| seeding for several runs at once.

    Parameters
    ----------
    k : int
        Number of centers per run.
    runs : int, default=1
        Number of independent runs.
    initialization_steps : int, default=5
        Number of oversampling passes over the data.
    seed : int, default=0
        Random seed.
    clusterer : MultiKMeansClusterer, optional
        Engine for the final reduction (MultiKMeans with 30 iterations by
        default).
    """

    def __init__(self, k: int, runs: int = 1, initialization_steps: int = 5,
                 seed: int = 0, clusterer=None):
        check_positive("k", k)
        check_positive("runs", runs)
        if initialization_steps < 0:
            raise ValueError(f"initialization_steps must be non-negative, "
                             f"got {initialization_steps}")
        self.k = k
        self.runs = runs
        self.initialization_steps = initialization_steps
        self.seed = seed
        self.clusterer = clusterer

    def init(self, ops: BregmanPointOps, data: PartitionedDataset) -> List[BregmanCenters]:
        n = data.count()
        if n == 0:
            raise ValueError("Cannot initialize from an empty dataset")

        generator = check_random_state(self.seed)
        seed = int(torch.randint(0, 2 ** 31, (1,), generator=generator).item())

        # One uniformly sampled (with replacement) starting point per run, drawn
        # from the points heavy enough to be a center
        eligible = torch.nonzero(torch.cat(data.map_partitions(
            lambda _, points: points.weights > ops.weight_threshold
        ))).flatten()
        if eligible.numel() == 0:
            raise ValueError(f"No point has weight above {ops.weight_threshold}")
        sample = eligible[torch.randint(0, eligible.numel(), (self.runs,), generator=generator)]
        first = ops.to_center(BregmanPoints.cat(data.take(sample)))

        centers: List[List[BregmanCenters]] = [[] for _ in range(self.runs)]
        new_centers: List[BregmanCenters] = [first.select(r) for r in range(self.runs)]
        costs: List[Tensor] = [
            torch.full((size, self.runs), float('inf'), dtype=DTYPE) for size in data.sizes()
        ]

        for step in range(self.initialization_steps):
            snapshot = data.context.broadcast(tuple(new_centers))
            previous = costs

            def update_costs(index: int, points: BregmanPoints) -> Tensor:
                return torch.stack([
                    torch.minimum(ops.point_cost(points, c), previous[index][:, r])
                    for r, c in enumerate(snapshot.value)
                ], dim=1)

            costs = data.map_partitions(update_costs)
            total = torch.stack([c.sum(dim=0) for c in costs]).sum(dim=0)

            def choose(index: int, points: BregmanPoints) -> List[BregmanPoints]:
                rand = torch.Generator()
                rand.manual_seed(seed ^ (step << 16) ^ index)
                u = torch.rand(costs[index].shape, generator=rand, dtype=DTYPE)
                usable = (total > 0) & torch.isfinite(total)
                safe_total = torch.where(usable, total, torch.ones_like(total))
                prob = torch.where(usable & torch.isfinite(costs[index]),
                                   2.0 * self.k * costs[index] / safe_total,
                                   torch.zeros_like(costs[index]))
                selected = u < prob
                return [points.select(selected[:, r]) for r in range(self.runs)]

            chosen = data.map_partitions(choose)
            for r in range(self.runs):
                centers[r].append(new_centers[r])
                new_centers[r] = ops.to_center(BregmanPoints.cat([part[r] for part in chosen]))
            logger.info(f"K-means|| step {step}: chose "
                        f"{[len(c) for c in new_centers]} candidates per run")

        for r in range(self.runs):
            centers[r].append(new_centers[r])
        candidates = [BregmanCenters.cat(c) for c in centers]
        return self.final_centers(ops, data, candidates, seed)

    def final_centers(self, ops: BregmanPointOps, data: PartitionedDataset,
                      candidates: List[BregmanCenters], seed: int) -> List[BregmanCenters]:
        """Reduce each run's candidates to at most k centers.

        Each candidate is weighted by the total weight of the points closest
        to it; the weighted candidates are seeded with K-means++ and refined
        with Lloyd's iteration.
        """
        snapshot = data.context.broadcast(tuple(candidates))

        def closest_weights(_, points: BregmanPoints) -> List[Tensor]:
            weights = []
            for c in snapshot.value:
                index = ops.find_closest(points, c)[0]
                w = torch.zeros(len(c), dtype=DTYPE)
                keep = index >= 0
                weights.append(w.index_add_(0, index[keep], points.weights[keep]))
            return weights

        weight_map = data.aggregate(
            closest_weights, lambda a, b: [x + y for x, y in zip(a, b)]
        )

        if self.clusterer is None:
            clusterer = MultiKMeans(max_iterations=30)
        else:
            clusterer = self.clusterer

        plus_plus = KMeansPlusPlus(ops)
        result = []
        for r, (run_candidates, weights) in enumerate(zip(candidates, weight_map)):
            logger.info(f"Run {r} has {len(run_candidates)} candidate centers")
            kx = min(self.k, len(run_candidates))
            generator = torch.Generator()
            generator.manual_seed(seed)
            initial = plus_plus.get_centers(run_candidates, weights, kx, 1, generator)
            points = plus_plus.weighted_points(run_candidates, weights)
            result.append(clusterer.cluster(ops, points, [initial])[0].centers)
        return result

    def __repr__(self) -> str:
        return (f"KMeansParallel(k={self.k}, runs={self.runs}, "
                f"initialization_steps={self.initialization_steps}, seed={self.seed})")
