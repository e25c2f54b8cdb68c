"""
Core data structures for Bregman clustering.

All containers are batches: a single vector is a batch of one. Coordinates are
(n, d) float64 tensors and weights are (n,) float64 tensors, so every operation
in the hot path is a tensor operation over a whole partition.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

import torch
from torch import Tensor


DTYPE = torch.float64

Index = Union[int, slice, Tensor, List[int]]


def _as_rows(x: Tensor) -> Tensor:
    """Coerce a (d,) or (n, d) tensor to (n, d) float64."""
    x = torch.as_tensor(x, dtype=DTYPE)
    if x.dim() == 1:
        x = x.unsqueeze(0)
    if x.dim() != 2:
        raise ValueError(f"Expected 1D or 2D tensor, got {x.dim()}D")
    return x


def _as_weights(weights: Union[Tensor, float, None], n: int) -> Tensor:
    if weights is None:
        return torch.ones(n, dtype=DTYPE)
    weights = torch.as_tensor(weights, dtype=DTYPE)
    if weights.dim() == 0:
        weights = weights.expand(n).clone()
    if weights.shape != (n,):
        raise ValueError(f"Expected {n} weights, got shape {tuple(weights.shape)}")
    return weights


@dataclass(frozen=True, eq=False)
class WeightedVectors:
    """A batch of weighted vectors.

    Coordinates are stored homogeneously (pre-multiplied by weight) so that
    centroids can be accumulated by plain addition. The inhomogeneous view
    divides by the weight; zero-weight rows are degenerate and map to zero.
    """

    homogeneous: Tensor  # (n, d)
    weights: Tensor      # (n,)

    def __post_init__(self):
        if self.homogeneous.dim() != 2:
            raise ValueError(f"Expected 2D coordinates, got {self.homogeneous.dim()}D")
        if self.weights.shape != (self.homogeneous.shape[0],):
            raise ValueError(f"Expected {self.homogeneous.shape[0]} weights, "
                             f"got shape {tuple(self.weights.shape)}")
        if (self.weights < 0).any():
            raise ValueError("Weights must be non-negative")

    @classmethod
    def from_homogeneous(cls, h: Tensor, weights: Union[Tensor, float, None] = None) -> 'WeightedVectors':
        h = _as_rows(h)
        return WeightedVectors(h, _as_weights(weights, h.shape[0]))

    @classmethod
    def from_inhomogeneous(cls, x: Tensor, weights: Union[Tensor, float, None] = None) -> 'WeightedVectors':
        x = _as_rows(x)
        w = _as_weights(weights, x.shape[0])
        return WeightedVectors(x * w.unsqueeze(1), w)

    @property
    def inhomogeneous(self) -> Tensor:
        w = self.weights.unsqueeze(1)
        safe = torch.where(w > 0, w, torch.ones_like(w))
        return torch.where(w > 0, self.homogeneous / safe, torch.zeros_like(self.homogeneous))

    @property
    def dimension(self) -> int:
        return self.homogeneous.shape[1]

    def __len__(self) -> int:
        return self.homogeneous.shape[0]

    def _row_index(self, index: Index):
        if isinstance(index, int):
            return slice(index, index + 1) if index != -1 else slice(-1, None)
        return index

    def select(self, index: Index) -> 'WeightedVectors':
        """Rows selected by position, slice, index tensor or boolean mask."""
        idx = self._row_index(index)
        return WeightedVectors(self.homogeneous[idx], self.weights[idx])

    @staticmethod
    def cat(batches: List['WeightedVectors']) -> 'WeightedVectors':
        return WeightedVectors(
            torch.cat([b.homogeneous for b in batches]),
            torch.cat([b.weights for b in batches])
        )


@dataclass(frozen=True, eq=False)
class BregmanPoints(WeightedVectors):
    """Points with F(x) cached once at creation.

    The cached inhomogeneous coordinates avoid a division per distance call.
    """

    coordinates: Tensor = None  # (n, d) inhomogeneous
    f: Tensor = None            # (n,)

    @property
    def inhomogeneous(self) -> Tensor:
        return self.coordinates

    def select(self, index: Index) -> 'BregmanPoints':
        idx = self._row_index(index)
        return BregmanPoints(self.homogeneous[idx], self.weights[idx],
                             self.coordinates[idx], self.f[idx])

    @staticmethod
    def cat(batches: List['BregmanPoints']) -> 'BregmanPoints':
        return BregmanPoints(
            torch.cat([b.homogeneous for b in batches]),
            torch.cat([b.weights for b in batches]),
            torch.cat([b.coordinates for b in batches]),
            torch.cat([b.f for b in batches])
        )


@dataclass(frozen=True, eq=False)
class BregmanCenters(WeightedVectors):
    """Cluster centers with the two statistics used by the distance function.

    dot_grad_minus_f[i] = <h_i, gradF(h_i, w_i)> / w_i - F(h_i, w_i)
    gradient[i] = gradF(h_i, w_i)
    """

    dot_grad_minus_f: Tensor = None  # (k,)
    gradient: Tensor = None          # (k, d)

    def select(self, index: Index) -> 'BregmanCenters':
        idx = self._row_index(index)
        return BregmanCenters(self.homogeneous[idx], self.weights[idx],
                              self.dot_grad_minus_f[idx], self.gradient[idx])

    @staticmethod
    def cat(batches: List['BregmanCenters']) -> 'BregmanCenters':
        return BregmanCenters(
            torch.cat([b.homogeneous for b in batches]),
            torch.cat([b.weights for b in batches]),
            torch.cat([b.dot_grad_minus_f for b in batches]),
            torch.cat([b.gradient for b in batches])
        )

    @staticmethod
    def empty(dimension: int) -> 'BregmanCenters':
        return BregmanCenters(
            torch.zeros(0, dimension, dtype=DTYPE),
            torch.zeros(0, dtype=DTYPE),
            torch.zeros(0, dtype=DTYPE),
            torch.zeros(0, dimension, dtype=DTYPE)
        )


class RunState(str, Enum):
    """Lifecycle of one clustering run."""
    ACTIVE = "active"
    CONVERGED = "converged"
    EXHAUSTED = "exhausted"


@dataclass
class ClusteringResult:
    """Final state of a single run."""

    distortion: float
    centers: BregmanCenters
    state: RunState
    iterations: int

    @property
    def k(self) -> int:
        return len(self.centers)


@dataclass
class MultiRunResult:
    """Results of R independent runs clustered together.

    history holds one record per (iteration, run) update, in order.
    """

    runs: List[ClusteringResult] = field(default_factory=list)
    history: List[Dict[str, Any]] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.runs)

    def __getitem__(self, r: int) -> ClusteringResult:
        return self.runs[r]

    @property
    def distortions(self) -> List[float]:
        return [run.distortion for run in self.runs]

    @property
    def centers(self) -> List[BregmanCenters]:
        return [run.centers for run in self.runs]

    def best(self) -> Optional[ClusteringResult]:
        """Run with the lowest distortion (first one on ties)."""
        if not self.runs:
            return None
        return min(self.runs, key=lambda run: run.distortion)
