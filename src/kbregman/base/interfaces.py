"""
Core interfaces for Bregman clustering.

This module defines the abstract base classes for the independently
substitutable capabilities: the logarithm policy, the divergence generator,
the centroid accumulator family and the initial-center selection strategy.
A point-operations object is assembled from one of each of the first three.
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, List

import torch
from torch import Tensor

if TYPE_CHECKING:
    from .data_structures import BregmanCenters
    from ..representations.point_ops import BregmanPointOps
    from ..utils.parallel import PartitionedDataset


class LogPolicy(ABC):
    """Strategy for evaluating logarithms inside a divergence generator."""

    @abstractmethod
    def log(self, x: Tensor) -> Tensor:
        """Element-wise logarithm of x."""
        pass

    def xlogx(self, x: Tensor) -> Tensor:
        """Element-wise x * log(x) with the convention 0 * log(0) = 0."""
        return torch.where(x == 0, torch.zeros_like(x), x * self.log(x))


class Divergence(ABC):
    """Convex generator F and its gradient.

    D(x, y) = F(x) - F(y) - <gradF(y), x - y>

    Rows are inhomogeneous coordinates. The homogeneous variants take
    weighted coordinates h and weights w and evaluate the generator at the
    mean h / w, so centroid math can stay in homogeneous space.
    """

    @abstractmethod
    def F(self, x: Tensor) -> Tensor:
        """(n, d) -> (n,) generator values."""
        pass

    @abstractmethod
    def gradF(self, x: Tensor) -> Tensor:
        """(n, d) -> (n, d) gradients."""
        pass

    def F_homogeneous(self, h: Tensor, w: Tensor) -> Tensor:
        return self.F(h / w.unsqueeze(1))

    def gradF_homogeneous(self, h: Tensor, w: Tensor) -> Tensor:
        return self.gradF(h / w.unsqueeze(1))

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


class CentroidProvider(ABC):
    """Factory for centroid accumulators of a given density."""

    @abstractmethod
    def make(self, n_clusters: int, dimension: int):
        """Create an empty accumulator for n_clusters clusters."""
        pass


class InitializationStrategy(ABC):
    """Abstract base class for initial cluster center selection."""

    @abstractmethod
    def init(self, ops: 'BregmanPointOps',
             data: 'PartitionedDataset') -> List['BregmanCenters']:
        """Select initial centers.

        Args:
            ops: Point operations (distance function)
            data: Partitioned BregmanPoints

        Returns:
            One BregmanCenters per run
        """
        pass
