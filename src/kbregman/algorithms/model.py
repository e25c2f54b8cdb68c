"""
Trained models and the training entry points.

``train`` runs seeding and Lloyd's iteration for a KMeansConfig and wraps the
best run in a KMeansModel. ``BregmanKMeans`` exposes the same pipeline as an
estimator with fit/predict.
"""

import logging
from typing import Optional, Tuple

import torch
from torch import Tensor

from ..base.data_structures import BregmanCenters, BregmanPoints, MultiRunResult
from ..config import (
    KMeansConfig, create_clusterer, create_initializer, create_point_ops
)
from ..initialization.from_assignments import AssignmentInitializer
from ..representations.point_ops import BregmanPointOps
from ..utils.logging import setup_logger, verbosity_to_level
from ..utils.parallel import ParallelContext, PartitionedDataset
from ..utils.validation import validate_data, validate_sample_weight

logger = logging.getLogger(__name__)


def to_points(ops: BregmanPointOps, X, sample_weight=None, n_partitions: int = 1,
              context: Optional[ParallelContext] = None) -> PartitionedDataset:
    """Validate raw rows and convert them to partitioned BregmanPoints."""
    X = validate_data(X)
    weights = validate_sample_weight(sample_weight, X.shape[0])
    chunks = PartitionedDataset.split(X.shape[0], n_partitions)
    return PartitionedDataset(
        [ops.inhomogeneous_to_point(X[idx], weights[idx]) for idx in chunks], context
    )


class KMeansModel:
    """Centers of one clustering together with the point operations used.

    Args:
        ops: Point operations the centers were computed with
        centers: Cluster centers
    """

    def __init__(self, ops: BregmanPointOps, centers: BregmanCenters):
        self.ops = ops
        self.centers = centers

    @property
    def k(self) -> int:
        return len(self.centers)

    @property
    def cluster_centers(self) -> Tensor:
        """(k, d) center coordinates in point space."""
        return self.centers.inhomogeneous

    def predict(self, X) -> Tensor:
        """Index of the closest center for each raw row."""
        X = validate_data(X)
        return self.predict_points(self.ops.inhomogeneous_to_point(X))

    def predict_points(self, points: BregmanPoints) -> Tensor:
        return self.ops.find_closest(points, self.centers)[0]

    def compute_cost(self, X, sample_weight=None) -> float:
        """Weighted distortion of raw rows against the centers."""
        X = validate_data(X)
        weights = validate_sample_weight(sample_weight, X.shape[0])
        return self.ops.distortion(self.ops.inhomogeneous_to_point(X, weights), self.centers)

    @classmethod
    def from_assignments(cls, ops: BregmanPointOps, X, assignments: Tensor,
                         n_clusters: Optional[int] = None,
                         sample_weight=None) -> 'KMeansModel':
        """Model whose centers are the centroids of the given assignment."""
        data = to_points(ops, X, sample_weight)
        centers = AssignmentInitializer(assignments, n_clusters).init(ops, data)[0]
        return cls(ops, centers)

    def __repr__(self) -> str:
        return f"KMeansModel(k={self.k}, ops={self.ops!r})"


def train_runs(X, config: Optional[KMeansConfig] = None,
               sample_weight=None) -> Tuple[BregmanPointOps, MultiRunResult]:
    """Seed and cluster all runs of a configuration.

    Returns:
        ops: Point operations resolved from the configuration
        result: Per-run results
    """
    config = (config if config is not None else KMeansConfig()).validate()
    ops = create_point_ops(config.point_ops)
    initializer = create_initializer(config.initializer, config.k, config.runs,
                                     config.initialization_steps, config.seed)
    clusterer = create_clusterer(config.clusterer, config.max_iterations, config.max_seconds)

    with ParallelContext(config.n_workers) as context:
        data = to_points(ops, X, sample_weight, config.n_partitions, context)
        logger.info(f"Training {config.runs} runs with k={config.k} on {data.count()} "
                    f"points in {data.n_partitions} partitions")
        centers = initializer.init(ops, data)
        result = clusterer.cluster(ops, data, centers)

    logger.info(f"Distortions per run: {result.distortions}")
    return ops, result


def train(X, config: Optional[KMeansConfig] = None,
          sample_weight=None) -> Tuple[float, KMeansModel]:
    """Train and keep the run with the lowest distortion.

    Args:
        X: (n, d) raw rows
        config: Training configuration (defaults to KMeansConfig())
        sample_weight: Optional (n,) point weights, 1.0 by default

    Returns:
        (distortion, model) of the best run
    """
    ops, result = train_runs(X, config, sample_weight)
    best = result.best()
    return best.distortion, KMeansModel(ops, best.centers)


class BregmanKMeans:
    """K-means under a Bregman divergence.

    Parameters
    ----------
    n_clusters : int, default=2
        Number of clusters requested. Fewer may survive.
    divergence : str or PointOpsName, default='DENSE_EUCLIDEAN'
        Divergence and point representation.
    init : str or InitializerName, default='k-means||'
        Seeding algorithm: 'k-means||' or 'random'.
    clusterer : str or ClustererName, default='SIMPLE'
        Engine variant: 'SIMPLE', 'TRACKING' or 'COLUMN_TRACKING'.
    max_iter : int, default=20
        Maximum Lloyd's iterations.
    n_init : int, default=1
        Number of runs clustered together; the best one is kept.
    initialization_steps : int, default=5
        Oversampling passes of K-means||.
    n_partitions : int, default=1
        Number of data partitions.
    n_workers : int, default=1
        Worker threads for the partitions.
    max_seconds : float, optional
        Wall-clock budget for Lloyd's iteration.
    verbose : int, default=0
        Verbosity level (0=silent, 1=progress, 2=detailed)
    random_state : int, default=0
        Random seed.

    Attributes
    ----------
    cluster_centers_ : Tensor of shape (k, n_features)
        Surviving cluster centers
    labels_ : Tensor of shape (n_samples,)
        Cluster assignments for training data
    inertia_ : float
        Weighted distortion of the training data
    n_iter_ : int
        Iterations run by the best run
    state_ : RunState
        Final state of the best run
    """

    def __init__(self,
                 n_clusters: int = 2,
                 divergence='DENSE_EUCLIDEAN',
                 init='k-means||',
                 clusterer='SIMPLE',
                 max_iter: int = 20,
                 n_init: int = 1,
                 initialization_steps: int = 5,
                 n_partitions: int = 1,
                 n_workers: int = 1,
                 max_seconds: Optional[float] = None,
                 verbose: int = 0,
                 random_state: int = 0):
        self.n_clusters = n_clusters
        self.divergence = divergence
        self.init = init
        self.clusterer = clusterer
        self.max_iter = max_iter
        self.n_init = n_init
        self.initialization_steps = initialization_steps
        self.n_partitions = n_partitions
        self.n_workers = n_workers
        self.max_seconds = max_seconds
        self.verbose = verbose
        self.random_state = random_state

        self.model_: Optional[KMeansModel] = None
        self.fitted_ = False

    def _config(self) -> KMeansConfig:
        return KMeansConfig(
            k=self.n_clusters,
            max_iterations=self.max_iter,
            runs=self.n_init,
            initializer=self.init,
            initialization_steps=self.initialization_steps,
            point_ops=self.divergence,
            clusterer=self.clusterer,
            n_partitions=self.n_partitions,
            n_workers=self.n_workers,
            seed=self.random_state,
            max_seconds=self.max_seconds
        )

    def fit(self, X, y=None, sample_weight=None) -> 'BregmanKMeans':
        """Fit the clustering model.

        Parameters
        ----------
        X : Tensor of shape (n_samples, n_features)
            Training data
        y : Ignored
            Not used, present for API consistency
        sample_weight : Tensor of shape (n_samples,), optional
            Point weights, 1.0 by default

        Returns
        -------
        self : BregmanKMeans
            Fitted estimator
        """
        if self.verbose:
            setup_logger(verbosity_to_level(self.verbose))

        ops, result = train_runs(X, self._config(), sample_weight)
        best = result.best()
        self.model_ = KMeansModel(ops, best.centers)
        self.result_ = result
        self.cluster_centers_ = self.model_.cluster_centers
        self.inertia_ = best.distortion
        self.n_iter_ = best.iterations
        self.state_ = best.state
        self.labels_ = self.model_.predict(X)
        self.fitted_ = True
        return self

    def predict(self, X) -> Tensor:
        """Predict cluster labels for new data.

        Parameters
        ----------
        X : Tensor of shape (n_samples, n_features)
            New data to predict

        Returns
        -------
        labels : Tensor of shape (n_samples,)
            Cluster labels
        """
        if not self.fitted_:
            raise RuntimeError("Model must be fitted before calling predict")
        return self.model_.predict(X)

    def fit_predict(self, X, y=None, sample_weight=None) -> Tensor:
        self.fit(X, y, sample_weight)
        return self.labels_

    def score(self, X, y=None, sample_weight=None) -> float:
        """Negative weighted distortion of X against the fitted centers."""
        if not self.fitted_:
            raise RuntimeError("Model must be fitted before calling score")
        return -self.model_.compute_cost(X, sample_weight)
