"""Core abstractions and data structures."""

from .data_structures import (
    DTYPE,
    WeightedVectors,
    BregmanPoints,
    BregmanCenters,
    RunState,
    ClusteringResult,
    MultiRunResult
)
from .interfaces import (
    LogPolicy,
    Divergence,
    CentroidProvider,
    InitializationStrategy
)

__all__ = [
    # Data structures
    'DTYPE',
    'WeightedVectors',
    'BregmanPoints',
    'BregmanCenters',
    'RunState',
    'ClusteringResult',
    'MultiRunResult',

    # Interfaces
    'LogPolicy',
    'Divergence',
    'CentroidProvider',
    'InitializationStrategy'
]
