# tests/test_model.py
"""
Training entry points and the estimator.

Covers:
- train() on three blobs recovers the blob means; cost matches compute_cost
- train_runs() returns one result per run, the best one is kept
- every configured divergence trains end to end on suitable data
- KL variants separate positive and count data
- fewer clusters survive than requested on point masses
- zero sample weights do not collapse K-means|| seeding
- KMeansModel.from_assignments
- BregmanKMeans fit / predict / fit_predict / score and verbose logging
"""

from __future__ import annotations

import logging

import numpy as np
import pytest
import torch

from kbregman import (
    BregmanKMeans, ClustererName, KMeansConfig, KMeansModel, PointOpsName, RunState,
    create_point_ops, train, train_runs
)

from data_gen import make_blobs, make_counts, make_positive_blobs


def _is_pure(labels: torch.Tensor, y: np.ndarray) -> bool:
    """Each true cluster maps to exactly one label, distinct across clusters."""
    labels = labels.numpy()
    mapped = []
    for c in np.unique(y):
        values = np.unique(labels[y == c])
        if len(values) != 1:
            return False
        mapped.append(values[0])
    return len(set(mapped)) == len(mapped)


def _max_mean_error(centers: torch.Tensor, means: np.ndarray) -> float:
    c = centers.numpy()
    return max(np.min(np.linalg.norm(c - m, axis=1)) for m in means)


@pytest.mark.parametrize("clusterer", list(ClustererName))
def test_train_on_blobs(clusterer):
    X, y, M = make_blobs(n_per=100, std=0.5, seed=0)
    config = KMeansConfig(k=3, runs=2, clusterer=clusterer, n_partitions=3, seed=1)
    distortion, model = train(X, config)

    assert model.k == 3
    assert _max_mean_error(model.cluster_centers, M) < 0.3
    assert _is_pure(model.predict(X), y)
    assert distortion == pytest.approx(model.compute_cost(X))


def test_train_runs_keeps_every_run():
    X, _, _ = make_blobs(n_per=40, std=1.0, seed=2)
    ops, result = train_runs(X, KMeansConfig(k=3, runs=4, initializer="random", seed=3))
    assert len(result) == 4
    assert all(run.state in (RunState.CONVERGED, RunState.EXHAUSTED) for run in result.runs)
    best = result.best()
    assert best.distortion == min(result.distortions)
    assert ops.distortion(ops.inhomogeneous_to_point(torch.as_tensor(X)),
                          best.centers) == pytest.approx(best.distortion)


def test_train_with_workers_matches_inline():
    X, _, _ = make_blobs(n_per=50, std=1.0, seed=6)
    inline = train(X, KMeansConfig(k=3, n_partitions=4, seed=2))[0]
    threaded = train(X, KMeansConfig(k=3, n_partitions=4, n_workers=3, seed=2))[0]
    assert threaded == pytest.approx(inline)


@pytest.mark.parametrize("name", [
    n for n in PointOpsName
    if n not in (PointOpsName.DISCRETE_KL, PointOpsName.DISCRETE_SMOOTHED_KL)
])
def test_every_divergence_trains(name):
    X, _ = make_positive_blobs(n_clusters=2, n_per=30, seed=4)
    # Into (0, 1) so the logistic loss is defined
    X = X / (X.max() + 1.0)
    distortion, model = train(X, KMeansConfig(k=2, point_ops=name, seed=0))
    labels = model.predict(X)
    assert np.isfinite(distortion)
    assert distortion >= 0.0
    assert 1 <= model.k <= 2
    assert labels.shape == (60,)
    assert ((labels >= 0) & (labels < model.k)).all()


def test_relative_entropy_separates_positive_blobs():
    X, y = make_positive_blobs(n_clusters=3, n_per=40, seed=7)
    kmeans = BregmanKMeans(n_clusters=3, divergence="DENSE_KL_DIVERGENCE", n_init=3,
                           random_state=2).fit(X)
    assert _is_pure(kmeans.labels_, y)


@pytest.mark.parametrize("name, shift", [
    (PointOpsName.DISCRETE_SMOOTHED_KL, 0.0),
    (PointOpsName.DISCRETE_KL, 1.0),
])
def test_discrete_kl_separates_counts(name, shift):
    X, y = make_counts(n_clusters=2, n_per=40, seed=8)
    X = X + shift
    distortion, model = train(X, KMeansConfig(k=2, point_ops=name, runs=2, seed=5))
    assert np.isfinite(distortion)
    assert _is_pure(model.predict(X), y)


def test_fewer_clusters_survive_on_point_masses():
    X = np.vstack([np.zeros((20, 2)), np.ones((20, 2))])
    for clusterer in ClustererName:
        distortion, model = train(X, KMeansConfig(k=5, clusterer=clusterer, seed=9))
        assert model.k == 2
        assert distortion == pytest.approx(0.0)


def test_sample_weight_moves_centers():
    X = np.array([[0.0], [1.0], [10.0]])
    weights = np.array([1.0, 3.0, 1.0])
    _, model = train(X, KMeansConfig(k=2, seed=0), sample_weight=weights)
    assert sorted(model.cluster_centers[:, 0].tolist()) == pytest.approx([0.75, 10.0])
    with pytest.raises(ValueError):
        train(X, KMeansConfig(k=2), sample_weight=np.zeros(3))


@pytest.mark.parametrize("seed", range(20))
def test_zero_sample_weights_keep_every_cluster(seed):
    X, _, M = make_blobs(n_per=100, std=0.5, seed=0)
    weights = np.ones(len(X))
    weights[1::2] = 0.0
    _, result = train_runs(X, KMeansConfig(k=3, seed=seed), sample_weight=weights)
    best = result.best()
    assert best.k == 3
    assert _max_mean_error(best.centers.inhomogeneous, M) < 0.3


def test_model_from_assignments():
    X, y, M = make_blobs(n_per=50, std=0.5, seed=10)
    ops = create_point_ops("DENSE_EUCLIDEAN")
    model = KMeansModel.from_assignments(ops, X, torch.as_tensor(y), n_clusters=4)
    assert model.k == 3
    assert np.allclose(model.cluster_centers.numpy(),
                       np.vstack([X[y == c].mean(axis=0) for c in range(3)]))
    assert "KMeansModel(k=3" in repr(model)


def test_invalid_input_raises():
    with pytest.raises(ValueError):
        train(np.array([[np.nan, 1.0]]), KMeansConfig(k=1))
    with pytest.raises(ValueError):
        train(np.zeros((3, 2)), KMeansConfig(k=0))


class TestBregmanKMeans:

    def test_fit_sets_attributes(self):
        X, y, M = make_blobs(n_per=60, std=0.5, seed=11)
        kmeans = BregmanKMeans(n_clusters=3, clusterer="COLUMN_TRACKING", n_init=2,
                               random_state=3)
        assert kmeans.fit(X) is kmeans

        assert kmeans.fitted_
        assert kmeans.cluster_centers_.shape == (3, 2)
        assert kmeans.labels_.shape == (180,)
        assert kmeans.n_iter_ >= 1
        assert kmeans.state_ in (RunState.CONVERGED, RunState.EXHAUSTED)
        assert len(kmeans.result_) == 2
        assert kmeans.inertia_ == pytest.approx(kmeans.model_.compute_cost(X))
        assert _is_pure(kmeans.labels_, y)

    def test_predict_and_score(self):
        X, _, M = make_blobs(n_per=40, std=0.5, seed=12)
        kmeans = BregmanKMeans(n_clusters=3, random_state=0).fit(X)
        labels = kmeans.predict(M)
        assert sorted(labels.tolist()) == [0, 1, 2]
        assert kmeans.score(X) == pytest.approx(-kmeans.inertia_)

    def test_fit_predict_matches_labels(self):
        X, _, _ = make_blobs(n_per=30, std=0.5, seed=13)
        kmeans = BregmanKMeans(n_clusters=3, init="random", random_state=1)
        labels = kmeans.fit_predict(X)
        assert torch.equal(labels, kmeans.labels_)
        assert torch.equal(labels, kmeans.predict(X))

    def test_unfitted_raises(self):
        kmeans = BregmanKMeans(n_clusters=2)
        with pytest.raises(RuntimeError):
            kmeans.predict(np.zeros((2, 2)))
        with pytest.raises(RuntimeError):
            kmeans.score(np.zeros((2, 2)))

    def test_unknown_divergence_raises(self):
        with pytest.raises(ValueError):
            BregmanKMeans(divergence="MAHALANOBIS").fit(np.zeros((4, 2)))

    def test_verbose_configures_package_logger(self):
        logger = logging.getLogger("kbregman")
        level, handlers, propagate = logger.level, list(logger.handlers), logger.propagate
        try:
            X, _, _ = make_blobs(n_per=10, seed=14)
            BregmanKMeans(n_clusters=3, verbose=2).fit(X)
            assert logger.level == logging.DEBUG
            assert len(logger.handlers) >= 1
        finally:
            logger.setLevel(level)
            logger.handlers[:] = handlers
            logger.propagate = propagate
