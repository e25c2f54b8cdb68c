"""
Configuration of a training run.

Configuration names are string-valued enums, resolved once into concrete
point operations, initializer and engine objects. Plain strings are accepted
wherever an enum is expected and converted explicitly.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from .algorithms.base import MultiKMeansClusterer
from .algorithms.column_tracking import ColumnTrackingKMeans
from .algorithms.simple import MultiKMeans
from .algorithms.tracking import TrackingKMeans
from .base.interfaces import InitializationStrategy
from .divergences import (
    DiscreteLog, GeneralizedI, ItakuraSaito, KullbackLeibler,
    KullbackLeiblerSimplex, LogisticLoss, SmoothedLog, SquaredEuclidean
)
from .initialization.kmeans_parallel import KMeansParallel
from .initialization.random import KMeansRandom
from .representations.centroids import SparseCentroidProvider
from .representations.point_ops import (
    BregmanPointOps, DiscreteSmoothedPointOps, EmbeddedPointOps, SparseSmoothedPointOps
)
from .utils.validation import check_positive


class PointOpsName(str, Enum):
    """Divergence and point representation."""
    EUCLIDEAN = "DENSE_EUCLIDEAN"
    SPARSE_EUCLIDEAN = "SPARSE_EUCLIDEAN"
    RELATIVE_ENTROPY = "DENSE_KL_DIVERGENCE"
    SIMPLEX_RELATIVE_ENTROPY = "SIMPLEX_KL_DIVERGENCE"
    DISCRETE_KL = "DISCRETE_DENSE_KL_DIVERGENCE"
    SPARSE_SMOOTHED_KL = "SPARSE_SMOOTHED_KL_DIVERGENCE"
    DISCRETE_SMOOTHED_KL = "DISCRETE_DENSE_SMOOTHED_KL_DIVERGENCE"
    GENERALIZED_SYMMETRIZED_KL = "GENERALIZED_SYMMETRIZED_KL"
    LOGISTIC_LOSS = "LOGISTIC_LOSS"
    GENERALIZED_I = "GENERALIZED_I_DIVERGENCE"
    ITAKURA_SAITO = "ITAKURA_SAITO_DIVERGENCE"


class InitializerName(str, Enum):
    RANDOM = "random"
    K_MEANS_PARALLEL = "k-means||"


class ClustererName(str, Enum):
    SIMPLE = "SIMPLE"
    TRACKING = "TRACKING"
    COLUMN_TRACKING = "COLUMN_TRACKING"


def _resolve(enum_cls, value):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        pass
    if isinstance(value, str) and value.upper() in enum_cls.__members__:
        return enum_cls[value.upper()]
    valid = ", ".join(repr(m.value) for m in enum_cls)
    raise ValueError(f"Unknown {enum_cls.__name__} {value!r}; expected one of {valid}")


@dataclass
class KMeansConfig:
    """Parameters of a training run.

    Attributes:
        k: Number of clusters requested per run
        max_iterations: Lloyd's iteration budget
        runs: Number of independent runs clustered together
        initializer: Seeding algorithm
        initialization_steps: Oversampling passes of K-means||
        point_ops: Divergence and point representation
        clusterer: Engine variant
        n_partitions: Number of data partitions
        n_workers: Worker threads; 1 runs partitions inline
        seed: Random seed
        max_seconds: Optional wall-clock budget for Lloyd's iteration
    """

    k: int = 2
    max_iterations: int = 20
    runs: int = 1
    initializer: Union[InitializerName, str] = InitializerName.K_MEANS_PARALLEL
    initialization_steps: int = 5
    point_ops: Union[PointOpsName, str] = PointOpsName.EUCLIDEAN
    clusterer: Union[ClustererName, str] = ClustererName.SIMPLE
    n_partitions: int = 1
    n_workers: int = 1
    seed: int = 0
    max_seconds: Optional[float] = None

    def validate(self) -> 'KMeansConfig':
        """Check parameters and resolve names to enums.

        Raises:
            TypeError, ValueError: On invalid parameters
        """
        check_positive("k", self.k)
        check_positive("runs", self.runs)
        check_positive("n_partitions", self.n_partitions)
        check_positive("n_workers", self.n_workers)
        if self.max_iterations < 0:
            raise ValueError(f"max_iterations must be non-negative, got {self.max_iterations}")
        if self.initialization_steps < 0:
            raise ValueError(f"initialization_steps must be non-negative, "
                             f"got {self.initialization_steps}")
        if self.max_seconds is not None and self.max_seconds <= 0:
            raise ValueError(f"max_seconds must be positive, got {self.max_seconds}")
        self.initializer = _resolve(InitializerName, self.initializer)
        self.point_ops = _resolve(PointOpsName, self.point_ops)
        self.clusterer = _resolve(ClustererName, self.clusterer)
        return self


def create_point_ops(name: Union[PointOpsName, str]) -> BregmanPointOps:
    """Point operations for a configuration name."""
    name = _resolve(PointOpsName, name)
    if name is PointOpsName.EUCLIDEAN:
        return BregmanPointOps(SquaredEuclidean())
    elif name is PointOpsName.SPARSE_EUCLIDEAN:
        return BregmanPointOps(SquaredEuclidean(), SparseCentroidProvider())
    elif name is PointOpsName.RELATIVE_ENTROPY:
        return BregmanPointOps(KullbackLeibler())
    elif name is PointOpsName.SIMPLEX_RELATIVE_ENTROPY:
        return BregmanPointOps(KullbackLeiblerSimplex())
    elif name is PointOpsName.DISCRETE_KL:
        return BregmanPointOps(KullbackLeibler(DiscreteLog()))
    elif name is PointOpsName.SPARSE_SMOOTHED_KL:
        return SparseSmoothedPointOps(KullbackLeibler(SmoothedLog()))
    elif name is PointOpsName.DISCRETE_SMOOTHED_KL:
        return DiscreteSmoothedPointOps(KullbackLeibler(DiscreteLog()))
    elif name is PointOpsName.GENERALIZED_SYMMETRIZED_KL:
        return EmbeddedPointOps(KullbackLeibler())
    elif name is PointOpsName.LOGISTIC_LOSS:
        return BregmanPointOps(LogisticLoss())
    elif name is PointOpsName.GENERALIZED_I:
        return BregmanPointOps(GeneralizedI())
    else:
        return BregmanPointOps(ItakuraSaito())


def create_clusterer(name: Union[ClustererName, str], max_iterations: int = 20,
                     max_seconds: Optional[float] = None) -> MultiKMeansClusterer:
    """Engine variant for a configuration name."""
    name = _resolve(ClustererName, name)
    if name is ClustererName.TRACKING:
        return TrackingKMeans(max_iterations, max_seconds)
    elif name is ClustererName.COLUMN_TRACKING:
        return ColumnTrackingKMeans(max_iterations, max_seconds)
    else:
        return MultiKMeans(max_iterations, max_seconds)


def create_initializer(name: Union[InitializerName, str], k: int, runs: int = 1,
                       initialization_steps: int = 5, seed: int = 0) -> InitializationStrategy:
    """Seeding strategy for a configuration name."""
    name = _resolve(InitializerName, name)
    if name is InitializerName.RANDOM:
        return KMeansRandom(k, runs, seed)
    else:
        return KMeansParallel(k, runs, initialization_steps, seed)
