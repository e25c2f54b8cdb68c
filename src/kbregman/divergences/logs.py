"""
Logarithm policies for divergence generators.

A divergence that needs logarithms takes one of these at construction time, so
the same generator can run on real-valued data, on smoothed data, or on
integer counts without a separate divergence class per combination.
"""

import math

import torch
from torch import Tensor

from ..base.interfaces import LogPolicy


class NaturalLog(LogPolicy):
    """Plain natural logarithm."""

    def log(self, x: Tensor) -> Tensor:
        return torch.log(x)

    def __repr__(self) -> str:
        return "NaturalLog()"


class SmoothedLog(LogPolicy):
    """Logarithm of x + epsilon, finite at zero."""

    def __init__(self, epsilon: float = 1e-10):
        if epsilon <= 0:
            raise ValueError(f"epsilon must be positive, got {epsilon}")
        self.epsilon = epsilon

    def log(self, x: Tensor) -> Tensor:
        return torch.log(x + self.epsilon)

    def __repr__(self) -> str:
        return f"SmoothedLog(epsilon={self.epsilon})"


class DiscreteLog(LogPolicy):
    """Logarithm for integer counts.

    Values are rounded to the nearest integer and looked up in a table of
    log(0), log(1), ..., log(table_size - 1). Larger values fall back to
    torch.log. log(0) is -inf, as for the natural logarithm.
    """

    def __init__(self, table_size: int = 1000):
        if table_size <= 0:
            raise ValueError(f"table_size must be positive, got {table_size}")
        self.table_size = table_size
        table = [-math.inf] + [math.log(i) for i in range(1, table_size)]
        self._table = torch.tensor(table, dtype=torch.float64)

    def log(self, x: Tensor) -> Tensor:
        counts = torch.round(x)
        in_table = (counts >= 0) & (counts < self.table_size)
        lookup = self._table[counts.clamp(0, self.table_size - 1).long()]
        return torch.where(in_table, lookup.to(x.dtype), torch.log(counts))

    def __repr__(self) -> str:
        return f"DiscreteLog(table_size={self.table_size})"
