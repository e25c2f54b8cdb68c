"""
Point and center operations for a Bregman divergence.

The distance between a point x and a center c factors as

    D(x, c) = F(x) + [<c, gradF(c)> - F(c)] - <gradF(c), x>

F(x) is cached on the point and the bracketed term and gradF(c) are cached on
the center, so the inner assignment loop is one matrix product plus two
broadcast additions regardless of the divergence.
"""

from typing import Optional, Tuple

import torch
from torch import Tensor

from ..base.data_structures import (
    DTYPE, BregmanCenters, BregmanPoints, WeightedVectors, _as_rows, _as_weights
)
from ..base.interfaces import CentroidProvider, Divergence
from ..divergences.bregman import KullbackLeibler, SquaredEuclidean
from .centroids import Centroids, DenseCentroidProvider, SparseCentroidProvider


class BregmanPointOps:
    """Distance function, conversions and accumulators for one divergence.

    Parameters
    ----------
    divergence : Divergence
        Generator F and its gradient.
    centroids : CentroidProvider, optional
        Accumulator family; dense by default.
    weight_threshold : float, default=1e-4
        Points and centers at or below this weight are degenerate.
    distance_threshold : float, default=1e-8
        A center has moved when the distance from the new centroid to the old
        center exceeds this value.
    """

    def __init__(self,
                 divergence: Divergence,
                 centroids: Optional[CentroidProvider] = None,
                 weight_threshold: float = 1e-4,
                 distance_threshold: float = 1e-8):
        self.divergence = divergence
        self.centroids = centroids if centroids is not None else DenseCentroidProvider()
        self.weight_threshold = weight_threshold
        self.distance_threshold = distance_threshold

    # ------------------------------------------------------------------
    # Distances
    # ------------------------------------------------------------------

    def _raw_distances(self, points: BregmanPoints, centers: BregmanCenters) -> Tensor:
        return (points.f.unsqueeze(1)
                + centers.dot_grad_minus_f.unsqueeze(0)
                - points.inhomogeneous @ centers.gradient.T)

    def distances(self, points: BregmanPoints, centers: BregmanCenters) -> Tensor:
        """(n, k) matrix of distances from each point to each center.

        Degenerate centers are at infinite distance; otherwise degenerate
        points are at distance zero. Negative round-off is clamped to zero.
        """
        d = self._raw_distances(points, centers).clamp_min(0.0)
        d = torch.where((points.weights <= self.weight_threshold).unsqueeze(1),
                        torch.zeros_like(d), d)
        d = torch.where((centers.weights <= self.weight_threshold).unsqueeze(0),
                        torch.full_like(d, float('inf')), d)
        return d

    def distance(self, point: BregmanPoints, center: BregmanCenters) -> float:
        """Distance between the first point and the first center."""
        return self.distances(point.select(0), center.select(0)).item()

    def find_closest(self, points: BregmanPoints,
                     centers: BregmanCenters) -> Tuple[Tensor, Tensor]:
        """Closest center per point, lowest index on ties.

        Returns:
            indices: (n,) long tensor, -1 when there are no centers
            distances: (n,) distance to that center
        """
        n = len(points)
        if len(centers) == 0:
            return (torch.full((n,), -1, dtype=torch.long),
                    torch.full((n,), float('inf'), dtype=DTYPE))
        d = self.distances(points, centers)
        best, index = torch.min(d, dim=1)
        return index, best

    def point_cost(self, points: BregmanPoints, centers: BregmanCenters) -> Tensor:
        """(n,) distance from each point to its closest center."""
        return self.find_closest(points, centers)[1]

    def distortion(self, points: BregmanPoints, centers: BregmanCenters) -> float:
        """Weighted sum of distances to the closest centers."""
        cost = self.point_cost(points, centers)
        weighted = torch.where(points.weights > 0, points.weights * cost,
                               torch.zeros_like(cost))
        return weighted.sum().item()

    def center_moved(self, points: BregmanPoints, centers: BregmanCenters) -> Tensor:
        """(k,) mask, True where point i is farther than the threshold from center i."""
        d = self._raw_distances(points, centers).diagonal().clamp_min(0.0)
        d = torch.where(points.weights <= self.weight_threshold, torch.zeros_like(d), d)
        d = torch.where(centers.weights <= self.weight_threshold,
                        torch.full_like(d, float('inf')), d)
        return d > self.distance_threshold

    # ------------------------------------------------------------------
    # Conversions
    # ------------------------------------------------------------------

    def to_point(self, vectors: WeightedVectors) -> BregmanPoints:
        x = vectors.inhomogeneous
        return BregmanPoints(vectors.homogeneous, vectors.weights, x, self.divergence.F(x))

    def inhomogeneous_to_point(self, x: Tensor, weights=None) -> BregmanPoints:
        return self.to_point(WeightedVectors.from_inhomogeneous(x, weights))

    def homogeneous_to_point(self, h: Tensor, weights=None) -> BregmanPoints:
        return self.to_point(WeightedVectors.from_homogeneous(h, weights))

    def to_center(self, vectors: WeightedVectors) -> BregmanCenters:
        h = vectors.homogeneous
        w = vectors.weights
        return self._center(h, w, h, w)

    def _center(self, stored_h: Tensor, stored_w: Tensor, h: Tensor, w: Tensor) -> BregmanCenters:
        """Center storing (stored_h, stored_w) with statistics computed from (h, w)."""
        if h.shape[0] == 0:
            return BregmanCenters.empty(h.shape[1])
        safe_w = torch.where(w > 0, w, torch.ones_like(w))
        gradient = self.divergence.gradF_homogeneous(h, safe_w)
        dot_grad_minus_f = (torch.sum(h * gradient, dim=1) / safe_w
                            - self.divergence.F_homogeneous(h, safe_w))
        return BregmanCenters(stored_h, stored_w, dot_grad_minus_f, gradient)

    def make_centroids(self, n_clusters: int, dimension: int) -> Centroids:
        return self.centroids.make(n_clusters, dimension)

    def __repr__(self) -> str:
        return (f"{self.__class__.__name__}(divergence={self.divergence!r}, "
                f"centroids={self.centroids!r})")


class SparseSmoothedPointOps(BregmanPointOps):
    """KL-style point operations for sparse data.

    Smoothing a sparse vector makes it dense. Instead, the distance adds a
    penalty equal to the sum of the point's values on the dimensions that
    are zero in the center, which approximates adding one to those entries
    of the center. The center's gradient is zero on its own zero dimensions.
    """

    def __init__(self,
                 divergence: Optional[Divergence] = None,
                 centroids: Optional[CentroidProvider] = None,
                 weight_threshold: float = 1e-4,
                 distance_threshold: float = 1e-8):
        super().__init__(
            divergence if divergence is not None else KullbackLeibler(),
            centroids if centroids is not None else SparseCentroidProvider(),
            weight_threshold,
            distance_threshold
        )

    def _raw_distances(self, points: BregmanPoints, centers: BregmanCenters) -> Tensor:
        x = points.inhomogeneous
        missing = (centers.homogeneous == 0).to(DTYPE)
        penalty = x @ missing.T
        return super()._raw_distances(points, centers) + penalty

    def _center(self, stored_h: Tensor, stored_w: Tensor, h: Tensor, w: Tensor) -> BregmanCenters:
        if h.shape[0] == 0:
            return BregmanCenters.empty(h.shape[1])
        present = h != 0
        safe_w = torch.where(w > 0, w, torch.ones_like(w))
        mean = h / safe_w.unsqueeze(1)
        # Only present dimensions enter the gradient and the generator
        ones = torch.ones_like(mean)
        gradient = torch.where(present, self.divergence.gradF(torch.where(present, mean, ones)),
                               torch.zeros_like(mean))
        f = self.divergence.F(mean)
        dot_grad_minus_f = torch.sum(mean * gradient, dim=1) - f
        return BregmanCenters(stored_h, stored_w, dot_grad_minus_f, gradient)


class DiscreteSmoothedPointOps(BregmanPointOps):
    """Point operations for integer frequency data with additive smoothing.

    Centers get one pseudo-count per dimension (and d extra weight) before
    the gradient and dot-term are computed. The stored coordinates and
    weight of the center stay unsmoothed.
    """

    def to_center(self, vectors: WeightedVectors) -> BregmanCenters:
        h = vectors.homogeneous
        w = vectors.weights
        smoothed_h = h + 1.0
        smoothed_w = w + h.shape[1]
        return self._center(h, w, smoothed_h, smoothed_w)


class EmbeddedPointOps(BregmanPointOps):
    """Symmetrized divergence clustered with squared Euclidean distance.

    Points are embedded with x -> x + gradF(x) using the generator of the
    embedding divergence; squared distances between embedded points equal
    ||x - y||^2 + ||gradF(x) - gradF(y)||^2 + 2 (D(x, y) + D(y, x)).
    Centers live in the embedded space.
    """

    def __init__(self,
                 embedding: Optional[Divergence] = None,
                 centroids: Optional[CentroidProvider] = None,
                 weight_threshold: float = 1e-4,
                 distance_threshold: float = 1e-8):
        super().__init__(SquaredEuclidean(), centroids, weight_threshold, distance_threshold)
        self.embedding = embedding if embedding is not None else KullbackLeibler()

    def embed(self, x: Tensor) -> Tensor:
        return x + self.embedding.gradF(x)

    def inhomogeneous_to_point(self, x: Tensor, weights=None) -> BregmanPoints:
        x = _as_rows(x)
        w = _as_weights(weights, x.shape[0])
        return super().inhomogeneous_to_point(self.embed(x), w)

    def homogeneous_to_point(self, h: Tensor, weights=None) -> BregmanPoints:
        vectors = WeightedVectors.from_homogeneous(h, weights)
        return self.inhomogeneous_to_point(vectors.inhomogeneous, vectors.weights)
