"""
Bregman divergence generators.

Each divergence is a convex function F with gradient gradF:

    D(x, y) = F(x) - F(y) - <gradF(y), x - y>

Implemented:
- SquaredEuclidean: F(x) = ||x||^2 on R^n
- KullbackLeibler: generalized KL on the positive orthant
- KullbackLeiblerSimplex: KL restricted to the probability simplex
- GeneralizedI: generalized I-divergence on the positive orthant
- LogisticLoss: on the open unit cube (0, 1)^n
- ItakuraSaito: on the positive orthant

Inputs must lie in the divergence's domain. Values outside it yield nan or
inf; nothing is clamped here.
"""

from typing import Optional

import torch
from torch import Tensor

from ..base.interfaces import Divergence, LogPolicy
from .logs import NaturalLog


class SquaredEuclidean(Divergence):
    """Squared Euclidean distance, F(x) = ||x||^2."""

    def F(self, x: Tensor) -> Tensor:
        return torch.sum(x * x, dim=1)

    def gradF(self, x: Tensor) -> Tensor:
        return 2.0 * x

    def F_homogeneous(self, h: Tensor, w: Tensor) -> Tensor:
        return torch.sum(h * h, dim=1) / (w * w)

    def gradF_homogeneous(self, h: Tensor, w: Tensor) -> Tensor:
        return 2.0 * h / w.unsqueeze(1)


class _LogDivergence(Divergence):
    """Divergence whose generator uses an injected logarithm policy."""

    def __init__(self, log: Optional[LogPolicy] = None):
        self.logs = log if log is not None else NaturalLog()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(log={self.logs!r})"


class KullbackLeibler(_LogDivergence):
    """Generalized Kullback-Leibler divergence.

    F(x) = sum x log x - x, gradF(x) = log x

    D(x, y) = sum x log(x / y) - x + y
    """

    def F(self, x: Tensor) -> Tensor:
        return torch.sum(self.logs.xlogx(x) - x, dim=1)

    def gradF(self, x: Tensor) -> Tensor:
        return self.logs.log(x)

    # log(h) - log(w) keeps integer counts integral for the discrete log
    def F_homogeneous(self, h: Tensor, w: Tensor) -> Tensor:
        mean = h / w.unsqueeze(1)
        xlogx = torch.where(h == 0, torch.zeros_like(h), mean * self.gradF_homogeneous(h, w))
        return torch.sum(xlogx - mean, dim=1)

    def gradF_homogeneous(self, h: Tensor, w: Tensor) -> Tensor:
        return self.logs.log(h) - self.logs.log(w).unsqueeze(1)


class KullbackLeiblerSimplex(_LogDivergence):
    """Kullback-Leibler divergence for points on the simplex.

    F(x) = sum x log x, gradF(x) = 1 + log x
    """

    def F(self, x: Tensor) -> Tensor:
        return torch.sum(self.logs.xlogx(x), dim=1)

    def gradF(self, x: Tensor) -> Tensor:
        return 1.0 + self.logs.log(x)


class GeneralizedI(_LogDivergence):
    """Generalized I-divergence.

    F(x) = sum x (log x - 1), gradF(x) = log x

    Same divergence as generalized KL; kept distinct because it is
    configured and smoothed independently.
    """

    def F(self, x: Tensor) -> Tensor:
        return torch.sum(self.logs.xlogx(x) - x, dim=1)

    def gradF(self, x: Tensor) -> Tensor:
        return self.logs.log(x)


class LogisticLoss(_LogDivergence):
    """Logistic loss on (0, 1)^n.

    F(x) = sum x log x + (1 - x) log(1 - x), gradF(x) = log(x / (1 - x))
    """

    def F(self, x: Tensor) -> Tensor:
        return torch.sum(self.logs.xlogx(x) + self.logs.xlogx(1.0 - x), dim=1)

    def gradF(self, x: Tensor) -> Tensor:
        return self.logs.log(x) - self.logs.log(1.0 - x)


class ItakuraSaito(_LogDivergence):
    """Itakura-Saito divergence.

    F(x) = -sum log x, gradF(x) = -1 / x

    D(x, y) = sum x / y - log(x / y) - 1
    """

    def F(self, x: Tensor) -> Tensor:
        return -torch.sum(self.logs.log(x), dim=1)

    def gradF(self, x: Tensor) -> Tensor:
        return -1.0 / x
