# tests/test_centroids.py
"""
Centroid accumulators.

Covers:
- add skips zero-weight points and unassigned rows
- merge is commutative and associative on random accumulator states
- empty-cluster mask
- sparse accumulator agrees with dense and prunes to max_nonzero
- sparse accumulation raises no torch warnings
"""

from __future__ import annotations

import warnings

import pytest
import torch

from kbregman.base.data_structures import DTYPE, WeightedVectors
from kbregman.representations import (
    Centroids, DenseCentroidProvider, SparseCentroidProvider, SparseCentroids
)


def _random_state(provider, seed, k=4, d=5, n=30):
    gen = torch.Generator().manual_seed(seed)
    x = torch.rand(n, d, generator=gen, dtype=DTYPE)
    x = torch.where(x > 0.5, x, torch.zeros_like(x))
    w = torch.rand(n, generator=gen, dtype=DTYPE)
    clusters = torch.randint(0, k, (n,), generator=gen)
    return provider.make(k, d).add(WeightedVectors.from_inhomogeneous(x, w), clusters)


def test_add_accumulates_homogeneous_sums():
    acc = Centroids.zeros(2, 2)
    points = WeightedVectors.from_inhomogeneous(
        torch.tensor([[1.0, 0.0], [3.0, 2.0], [5.0, 5.0]]), torch.tensor([1.0, 2.0, 1.0]))
    acc.add(points, torch.tensor([0, 0, 1]))
    assert torch.allclose(acc.sums, torch.tensor([[7.0, 4.0], [5.0, 5.0]], dtype=DTYPE))
    assert torch.allclose(acc.weights, torch.tensor([3.0, 1.0], dtype=DTYPE))
    assert torch.allclose(acc.to_vectors().inhomogeneous[0],
                          torch.tensor([7.0 / 3.0, 4.0 / 3.0], dtype=DTYPE))


def test_add_ignores_zero_weight_and_unassigned():
    acc = Centroids.zeros(2, 1)
    points = WeightedVectors.from_inhomogeneous(
        torch.tensor([[1.0], [2.0], [4.0]]), torch.tensor([0.0, 1.0, 1.0]))
    acc.add(points, torch.tensor([0, -1, 1]))
    assert acc.weights.tolist() == [0.0, 1.0]
    assert acc.is_empty().tolist() == [True, False]


@pytest.mark.parametrize("provider", [DenseCentroidProvider(), SparseCentroidProvider(8)])
def test_merge_commutative_and_associative(provider):
    states = [_random_state(provider, s) for s in (1, 2, 3)]
    a, b, c = states

    left = a.copy().merge(b.copy()).merge(c.copy())
    right = a.copy().merge(b.copy().merge(c.copy()))
    other = c.copy().merge(a.copy()).merge(b.copy())

    for result in (right, other):
        assert torch.allclose(left.sums, result.sums)
        assert torch.allclose(left.weights, result.weights)


def test_merge_shape_mismatch():
    with pytest.raises(ValueError):
        Centroids.zeros(2, 3).merge(Centroids.zeros(3, 3))


def test_sparse_matches_dense_without_pruning():
    dense = _random_state(DenseCentroidProvider(), 7)
    sparse = _random_state(SparseCentroidProvider(64), 7)
    assert isinstance(sparse, SparseCentroids)
    assert torch.allclose(dense.sums, sparse.sums)
    assert torch.allclose(dense.weights, sparse.weights)


def test_sparse_prunes_to_largest_dimensions():
    acc = SparseCentroids.zeros(2, 10, max_nonzero=2)
    x = torch.tensor([[1.0, 2.0, 3.0, 4.0, 5.0, 0.0, 0.0, 0.0, 0.0, 0.0],
                      [0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 7.0, 6.0]], dtype=DTYPE)
    acc.add(WeightedVectors.from_inhomogeneous(x), torch.tensor([0, 1]))

    sums = acc.sums
    # Row 0 held 5 > 2 * 2 dimensions and keeps its two largest
    assert torch.nonzero(sums[0]).flatten().tolist() == [3, 4]
    # Row 1 is within bounds and untouched
    assert torch.nonzero(sums[1]).flatten().tolist() == [8, 9]
    # Weights are never pruned
    assert acc.weights.tolist() == [1.0, 1.0]


def test_sparse_provider_validates():
    with pytest.raises(ValueError):
        SparseCentroidProvider(0)


def test_sparse_accumulation_is_warning_free():
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        a = _random_state(SparseCentroidProvider(2), 4)
        b = _random_state(SparseCentroidProvider(2), 5)
        merged = a.merge(b)
    assert merged.nnz <= 2 * 2 * 4
