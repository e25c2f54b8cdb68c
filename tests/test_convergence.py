# tests/test_convergence.py
"""
Run state machine and iteration budget.

Covers:
- ACTIVE -> CONVERGED when nothing moved and nothing emptied
- ACTIVE while centers move or clusters empty
- exhaust() marks the remaining active runs only
- iteration and wall-clock budgets
"""

from __future__ import annotations

import pytest

from kbregman.base.data_structures import RunState
from kbregman.utils.convergence import IterationBudget, RunTracker


def test_run_converges_when_stable():
    tracker = RunTracker(2)
    assert tracker.update(0, 0, n_centers=3, n_moved=2, n_empty=0) is RunState.ACTIVE
    assert tracker.update(1, 0, n_centers=3, n_moved=0, n_empty=1) is RunState.ACTIVE
    assert tracker.update(0, 1, n_centers=3, n_moved=0, n_empty=0) is RunState.CONVERGED
    assert tracker.active_runs() == [1]
    assert tracker.iterations == [2, 1]
    assert len(tracker.history) == 3


def test_exhaust_marks_remaining_runs():
    tracker = RunTracker(3)
    tracker.update(1, 0, 2, 0, 0)
    assert tracker.exhaust() == [0, 2]
    assert tracker.states == [RunState.EXHAUSTED, RunState.CONVERGED, RunState.EXHAUSTED]
    assert not tracker.any_active()


def test_iteration_budget():
    budget = IterationBudget(max_iterations=2)
    budget.start()
    assert not budget.exhausted(0)
    assert not budget.exhausted(1)
    assert budget.exhausted(2)


def test_time_budget():
    budget = IterationBudget(max_iterations=100, max_seconds=1e-9)
    budget.start()
    sum(range(1000))
    assert budget.exhausted(0)


def test_budget_validation():
    with pytest.raises(ValueError):
        IterationBudget(max_iterations=-1)
    with pytest.raises(ValueError):
        IterationBudget(max_seconds=0)
