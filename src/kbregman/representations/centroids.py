"""
Centroid accumulators.

An accumulator holds, for each of k clusters, the running sum of the
homogeneous coordinates of the points assigned to it and the running sum of
their weights. Each worker owns its own accumulator for its partition; the
partial accumulators are combined with merge(), which is commutative and
associative, so partitions may be merged in any order.
"""

from typing import Optional

import torch
from torch import Tensor

from ..base.data_structures import DTYPE, WeightedVectors
from ..base.interfaces import CentroidProvider


class Centroids:
    """Dense accumulator: one running sum per (cluster, dimension)."""

    def __init__(self, sums: Tensor, weights: Tensor):
        self._sums = sums
        self.weights = weights

    @classmethod
    def zeros(cls, n_clusters: int, dimension: int) -> 'Centroids':
        return cls(torch.zeros(n_clusters, dimension, dtype=DTYPE),
                   torch.zeros(n_clusters, dtype=DTYPE))

    @property
    def sums(self) -> Tensor:
        """(k, d) dense homogeneous sums."""
        return self._sums

    @property
    def n_clusters(self) -> int:
        return self.weights.shape[0]

    def add(self, points: WeightedVectors, clusters: Tensor) -> 'Centroids':
        """Add each point to the accumulator of its cluster.

        Points with non-positive weight, or with a negative cluster index,
        contribute nothing.

        Args:
            points: Batch of n points
            clusters: (n,) cluster index per point

        Returns:
            Self
        """
        keep = (points.weights > 0) & (clusters >= 0)
        if keep.any():
            index = clusters[keep].long()
            self._sums.index_add_(0, index, points.homogeneous[keep])
            self.weights.index_add_(0, index, points.weights[keep])
        return self

    def merge(self, other: 'Centroids') -> 'Centroids':
        """Add another accumulator's sums and weights into this one."""
        self._check_compatible(other)
        self._sums = self._sums + other.sums
        self.weights = self.weights + other.weights
        return self

    def is_empty(self, threshold: float = 0.0) -> Tensor:
        """(k,) mask of clusters whose accumulated weight is at most threshold."""
        return self.weights <= threshold

    def to_vectors(self) -> WeightedVectors:
        return WeightedVectors(self.sums.clone(), self.weights.clone())

    def copy(self) -> 'Centroids':
        return self.__class__(self._sums.clone(), self.weights.clone())

    def _check_compatible(self, other: 'Centroids') -> None:
        if other.sums.shape != self._sums.shape:
            raise ValueError(f"Cannot merge accumulators of shape {tuple(other.sums.shape)} "
                             f"and {tuple(self._sums.shape)}")

    def __repr__(self) -> str:
        return (f"{self.__class__.__name__}(n_clusters={self.n_clusters}, "
                f"total_weight={self.weights.sum().item():.3f})")


class SparseCentroids(Centroids):
    """Sparse accumulator with bounded density.

    Sums are kept as a coalesced sparse COO tensor. Whenever a cluster holds
    more than 2 * max_nonzero dimensions it is pruned back to its
    max_nonzero largest dimensions, which bounds the size of high-dimensional
    sparse centroids at a small cost in accuracy.
    """

    def __init__(self, sums: Tensor, weights: Tensor, max_nonzero: int):
        super().__init__(sums.coalesce(), weights)
        self.max_nonzero = max_nonzero

    @classmethod
    def zeros(cls, n_clusters: int, dimension: int,
              max_nonzero: int = 1024) -> 'SparseCentroids':
        empty = torch.sparse_coo_tensor(
            torch.zeros(2, 0, dtype=torch.long),
            torch.zeros(0, dtype=DTYPE),
            (n_clusters, dimension),
            check_invariants=False
        )
        return cls(empty, torch.zeros(n_clusters, dtype=DTYPE), max_nonzero)

    @property
    def sums(self) -> Tensor:
        return self._sums.to_dense()

    @property
    def nnz(self) -> int:
        return self._sums.values().shape[0]

    def add(self, points: WeightedVectors, clusters: Tensor) -> 'SparseCentroids':
        keep = (points.weights > 0) & (clusters >= 0)
        if not keep.any():
            return self
        h = points.homogeneous[keep]
        index = clusters[keep].long()
        rows, cols = torch.nonzero(h, as_tuple=True)
        update = torch.sparse_coo_tensor(
            torch.stack([index[rows], cols]), h[rows, cols], self._sums.shape,
            check_invariants=False
        )
        self._sums = (self._sums + update).coalesce()
        self.weights.index_add_(0, index, points.weights[keep])
        self._prune()
        return self

    def merge(self, other: 'Centroids') -> 'SparseCentroids':
        self._check_compatible(other)
        other_sums = other._sums if other._sums.is_sparse else other._sums.to_sparse()
        self._sums = (self._sums + other_sums).coalesce()
        self.weights = self.weights + other.weights
        self._prune()
        return self

    def copy(self) -> 'SparseCentroids':
        return SparseCentroids(self._sums.clone(), self.weights.clone(), self.max_nonzero)

    def _check_compatible(self, other: 'Centroids') -> None:
        if tuple(other._sums.shape) != tuple(self._sums.shape):
            raise ValueError(f"Cannot merge accumulators of shape {tuple(other._sums.shape)} "
                             f"and {tuple(self._sums.shape)}")

    def _prune(self) -> None:
        if self.nnz == 0:
            return
        indices = self._sums.indices()
        values = self._sums.values()
        rows = indices[0]
        counts = torch.bincount(rows, minlength=self.n_clusters)
        if counts.max().item() <= 2 * self.max_nonzero:
            return

        # Group entries by row, largest magnitude first within each row
        order = torch.argsort(values.abs(), descending=True, stable=True)
        order = order[torch.argsort(rows[order], stable=True)]
        starts = torch.cumsum(counts, dim=0) - counts
        rank = torch.arange(order.shape[0]) - starts[rows[order]]
        keep = order[rank < self.max_nonzero]

        self._sums = torch.sparse_coo_tensor(
            indices[:, keep], values[keep], self._sums.shape, check_invariants=False
        ).coalesce()


class DenseCentroidProvider(CentroidProvider):
    """Creates dense accumulators."""

    def make(self, n_clusters: int, dimension: int) -> Centroids:
        return Centroids.zeros(n_clusters, dimension)

    def __repr__(self) -> str:
        return "DenseCentroidProvider()"


class SparseCentroidProvider(CentroidProvider):
    """Creates sparse accumulators that keep at most max_nonzero dimensions
    per cluster after pruning."""

    def __init__(self, max_nonzero: Optional[int] = 1024):
        if max_nonzero is None or max_nonzero <= 0:
            raise ValueError(f"max_nonzero must be positive, got {max_nonzero}")
        self.max_nonzero = max_nonzero

    def make(self, n_clusters: int, dimension: int) -> SparseCentroids:
        return SparseCentroids.zeros(n_clusters, dimension, self.max_nonzero)

    def __repr__(self) -> str:
        return f"SparseCentroidProvider(max_nonzero={self.max_nonzero})"
