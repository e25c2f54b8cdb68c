"""Bregman divergence generators and logarithm policies."""

from .bregman import (
    SquaredEuclidean,
    KullbackLeibler,
    KullbackLeiblerSimplex,
    GeneralizedI,
    LogisticLoss,
    ItakuraSaito
)
from .logs import NaturalLog, SmoothedLog, DiscreteLog

__all__ = [
    # Divergences
    'SquaredEuclidean',
    'KullbackLeibler',
    'KullbackLeiblerSimplex',
    'GeneralizedI',
    'LogisticLoss',
    'ItakuraSaito',

    # Log policies
    'NaturalLog',
    'SmoothedLog',
    'DiscreteLog'
]
