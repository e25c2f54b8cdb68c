"""
Convergence tracking for multi-run clustering.

Each run moves from ACTIVE to CONVERGED when an iteration neither moves a
center beyond the distance threshold nor empties a cluster, or to EXHAUSTED
when the iteration or time budget runs out first.
"""

import time
from typing import Any, Dict, List, Optional

from ..base.data_structures import RunState


class IterationBudget:
    """Global iteration and wall-clock budget shared by all runs."""

    def __init__(self, max_iterations: int = 20, max_seconds: Optional[float] = None):
        """
        Args:
            max_iterations: Maximum Lloyd's iterations
            max_seconds: Optional wall-clock limit, checked between iterations
        """
        if max_iterations < 0:
            raise ValueError(f"max_iterations must be non-negative, got {max_iterations}")
        if max_seconds is not None and max_seconds <= 0:
            raise ValueError(f"max_seconds must be positive, got {max_seconds}")
        self.max_iterations = max_iterations
        self.max_seconds = max_seconds
        self._start: Optional[float] = None

    def start(self) -> None:
        self._start = time.perf_counter()

    @property
    def elapsed(self) -> float:
        if self._start is None:
            return 0.0
        return time.perf_counter() - self._start

    def exhausted(self, iteration: int) -> bool:
        """True when no further iteration may start."""
        if iteration >= self.max_iterations:
            return True
        return self.max_seconds is not None and self.elapsed >= self.max_seconds


class RunTracker:
    """State machine for R independent runs."""

    def __init__(self, n_runs: int):
        self.states: List[RunState] = [RunState.ACTIVE] * n_runs
        self.iterations: List[int] = [0] * n_runs
        self.history: List[Dict[str, Any]] = []

    @property
    def n_runs(self) -> int:
        return len(self.states)

    def active_runs(self) -> List[int]:
        return [r for r, s in enumerate(self.states) if s is RunState.ACTIVE]

    def any_active(self) -> bool:
        return any(s is RunState.ACTIVE for s in self.states)

    def update(self, run: int, iteration: int, n_centers: int,
               n_moved: int, n_empty: int) -> RunState:
        """Record one completed iteration of a run.

        The run stays ACTIVE if any center moved or any cluster emptied, and
        converges otherwise.
        """
        self.iterations[run] = iteration + 1
        if n_moved == 0 and n_empty == 0:
            self.states[run] = RunState.CONVERGED

        self.history.append({
            'iteration': iteration,
            'run': run,
            'n_centers': n_centers,
            'n_moved': n_moved,
            'n_empty': n_empty,
            'state': self.states[run]
        })
        return self.states[run]

    def exhaust(self) -> List[int]:
        """Mark every still-active run EXHAUSTED and return their indices."""
        runs = self.active_runs()
        for r in runs:
            self.states[r] = RunState.EXHAUSTED
        return runs
