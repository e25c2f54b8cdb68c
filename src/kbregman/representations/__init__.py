"""Point operations and centroid accumulators."""

from .centroids import (
    Centroids,
    SparseCentroids,
    DenseCentroidProvider,
    SparseCentroidProvider
)
from .point_ops import (
    BregmanPointOps,
    SparseSmoothedPointOps,
    DiscreteSmoothedPointOps,
    EmbeddedPointOps
)

__all__ = [
    'Centroids',
    'SparseCentroids',
    'DenseCentroidProvider',
    'SparseCentroidProvider',
    'BregmanPointOps',
    'SparseSmoothedPointOps',
    'DiscreteSmoothedPointOps',
    'EmbeddedPointOps'
]
