"""Initialization strategies for Bregman clustering."""

from .random import KMeansRandom
from .kmeans_plusplus import KMeansPlusPlus
from .kmeans_parallel import KMeansParallel
from .from_assignments import AssignmentInitializer

__all__ = [
    'KMeansRandom',
    'KMeansPlusPlus',
    'KMeansParallel',
    'AssignmentInitializer'
]
