# tests/test_kmeans_plusplus.py
"""
K-means++ over a weighted candidate pool.

Covers:
- pick_weighted: first index strictly exceeding the draw, None on zero total
- identical candidates collapse to one center without raising
- configuration errors raise at call time; k > pool warns
- well-separated candidates yield one center per group
- cluster() refines the seeded centers
- several picks per round never repeat a candidate
"""

from __future__ import annotations

import pytest
import torch

from kbregman.base.data_structures import DTYPE
from kbregman.initialization import KMeansPlusPlus


def _candidates(ops, rows):
    return ops.to_center(ops.inhomogeneous_to_point(torch.as_tensor(rows, dtype=DTYPE)))


def test_pick_weighted_strict_boundary(monkeypatch):
    cumulative = torch.tensor([1.0, 1.0, 3.0, 4.0], dtype=DTYPE)

    def draw(value):
        monkeypatch.setattr(torch, "rand", lambda *a, **k: torch.tensor([value], dtype=DTYPE))
        return KMeansPlusPlus.pick_weighted(cumulative)

    assert draw(0.0) == 0
    # r == 1.0 equals the first two boundaries exactly: the first index strictly above
    assert draw(0.25) == 2
    assert draw(0.5) == 2
    assert draw(0.999) == 3


def test_pick_weighted_zero_total():
    assert KMeansPlusPlus.pick_weighted(torch.zeros(3, dtype=DTYPE)) is None


def test_cumulative_weights():
    out = KMeansPlusPlus.cumulative_weights(torch.tensor([1.0, 0.0, 2.5]))
    assert out.tolist() == [1.0, 1.0, 3.5]


def test_identical_candidates_give_one_center(euclidean_ops):
    kpp = KMeansPlusPlus(euclidean_ops)
    candidates = _candidates(euclidean_ops, [[1.0, 2.0]] * 4)
    centers = kpp.get_centers(candidates, torch.ones(4, dtype=DTYPE), k=4,
                              generator=torch.Generator().manual_seed(0))
    assert len(centers) == 1


@pytest.mark.parametrize("kwargs, message", [
    (dict(k=0), "k must be positive"),
    (dict(k=2, per_round=0), "per_round"),
])
def test_configuration_errors(euclidean_ops, kwargs, message):
    kpp = KMeansPlusPlus(euclidean_ops)
    candidates = _candidates(euclidean_ops, [[0.0], [1.0]])
    with pytest.raises(ValueError, match=message):
        kpp.get_centers(candidates, torch.ones(2, dtype=DTYPE), **kwargs)


def test_empty_pool_raises(euclidean_ops):
    kpp = KMeansPlusPlus(euclidean_ops)
    candidates = _candidates(euclidean_ops, torch.zeros(0, 2))
    with pytest.raises(ValueError, match="empty"):
        kpp.get_centers(candidates, torch.zeros(0, dtype=DTYPE), k=1)


def test_k_larger_than_pool_warns(euclidean_ops):
    kpp = KMeansPlusPlus(euclidean_ops)
    candidates = _candidates(euclidean_ops, [[0.0], [5.0]])
    with pytest.warns(UserWarning, match="exceeds"):
        centers = kpp.get_centers(candidates, torch.ones(2, dtype=DTYPE), k=3,
                                  generator=torch.Generator().manual_seed(1))
    assert len(centers) == 2


def test_one_center_per_separated_group(euclidean_ops):
    kpp = KMeansPlusPlus(euclidean_ops)
    rows = [[0.0, 0.0]] * 5 + [[100.0, 0.0]] * 5 + [[0.0, 100.0]] * 5
    candidates = _candidates(euclidean_ops, rows)
    centers = kpp.get_centers(candidates, torch.ones(15, dtype=DTYPE), k=3,
                              generator=torch.Generator().manual_seed(5))
    picked = sorted(tuple(r) for r in centers.inhomogeneous.tolist())
    assert picked == [(0.0, 0.0), (0.0, 100.0), (100.0, 0.0)]


def test_zero_weight_candidates_are_never_picked(euclidean_ops):
    kpp = KMeansPlusPlus(euclidean_ops)
    candidates = _candidates(euclidean_ops, [[0.0], [10.0], [20.0]])
    weights = torch.tensor([1.0, 0.0, 1.0], dtype=DTYPE)
    centers = kpp.get_centers(candidates, weights, k=3,
                              generator=torch.Generator().manual_seed(2))
    assert sorted(centers.inhomogeneous[:, 0].tolist()) == [0.0, 20.0]


def test_cluster_refines_with_weights(euclidean_ops):
    kpp = KMeansPlusPlus(euclidean_ops)
    candidates = _candidates(euclidean_ops, [[0.0], [1.0], [10.0], [11.0]])
    weights = torch.tensor([3.0, 1.0, 1.0, 1.0], dtype=DTYPE)
    centers = kpp.cluster(candidates, weights, k=2, generator=torch.Generator().manual_seed(3))
    assert sorted(centers.inhomogeneous[:, 0].tolist()) == pytest.approx([0.25, 10.5])


def test_several_picks_per_round(euclidean_ops):
    kpp = KMeansPlusPlus(euclidean_ops)
    candidates = _candidates(euclidean_ops, [[float(i)] for i in range(20)])
    centers = kpp.get_centers(candidates, torch.ones(20, dtype=DTYPE), k=5, per_round=3,
                              generator=torch.Generator().manual_seed(9))
    picked = centers.inhomogeneous[:, 0].tolist()
    assert len(picked) == 5
    assert len(set(picked)) == 5


@pytest.mark.parametrize("seed", range(20))
def test_picks_of_one_round_are_distinct(euclidean_ops, seed):
    kpp = KMeansPlusPlus(euclidean_ops)
    candidates = _candidates(euclidean_ops, [[0.0], [0.1], [100.0], [0.2]])
    centers = kpp.get_centers(candidates, torch.ones(4, dtype=DTYPE), k=4, per_round=3,
                              generator=torch.Generator().manual_seed(seed))
    assert sorted(centers.inhomogeneous[:, 0].tolist()) == [0.0, 0.1, 0.2, 100.0]
