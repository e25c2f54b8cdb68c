"""
kbregman: K-means clustering under Bregman divergences.

This package implements:
- Bregman divergences (squared Euclidean, KL, generalized I, logistic loss,
  Itakura-Saito) with pluggable logarithm policies
- Dense, sparse, discrete and embedded point representations
- Multi-run Lloyd's iteration with assignment tracking
- K-means++ and K-means|| seeding

Example usage:
    >>> import torch
    >>> from kbregman import BregmanKMeans
    >>>
    >>> # Generate sample data
    >>> X = torch.rand(1000, 10) + 0.1
    >>>
    >>> # Fit K-means under KL divergence
    >>> kmeans = BregmanKMeans(n_clusters=5, divergence='DENSE_KL_DIVERGENCE', verbose=1)
    >>> kmeans.fit(X)
    >>>
    >>> # Get cluster assignments
    >>> labels = kmeans.predict(X)
"""

__version__ = '0.1.0'

# Configuration
from .config import (
    PointOpsName,
    InitializerName,
    ClustererName,
    KMeansConfig,
    create_point_ops,
    create_initializer,
    create_clusterer
)

# Training
from .algorithms.model import KMeansModel, BregmanKMeans, train, train_runs

# Engines
from .algorithms import (
    MultiKMeans,
    TrackingKMeans,
    ColumnTrackingKMeans
)

# Seeding
from .initialization import (
    KMeansRandom,
    KMeansPlusPlus,
    KMeansParallel,
    AssignmentInitializer
)

# Convenience imports
from .base import (
    WeightedVectors,
    BregmanPoints,
    BregmanCenters,
    RunState
)
from .representations import BregmanPointOps
from .utils import PartitionedDataset, ParallelContext

__all__ = [
    # Configuration
    'PointOpsName',
    'InitializerName',
    'ClustererName',
    'KMeansConfig',
    'create_point_ops',
    'create_initializer',
    'create_clusterer',

    # Training
    'KMeansModel',
    'BregmanKMeans',
    'train',
    'train_runs',

    # Engines
    'MultiKMeans',
    'TrackingKMeans',
    'ColumnTrackingKMeans',

    # Seeding
    'KMeansRandom',
    'KMeansPlusPlus',
    'KMeansParallel',
    'AssignmentInitializer',

    # Core data structures
    'WeightedVectors',
    'BregmanPoints',
    'BregmanCenters',
    'RunState',
    'BregmanPointOps',
    'PartitionedDataset',
    'ParallelContext',

    # Version
    '__version__'
]
