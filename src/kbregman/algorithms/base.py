"""
Base class for multi-run Lloyd's iteration.

Provides the iteration skeleton shared by all engine variants:

1. publish the current centers of every active run as a read-only snapshot,
2. per partition, assign each point to a center and accumulate centroids,
3. merge the partial accumulators across partitions,
4. recompute centers, drop empty clusters and update each run's state.

Variants differ only in how step 2 finds the closest center.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from functools import reduce
from typing import Any, List, Optional, Sequence, Tuple, Union

import torch
from torch import Tensor

from ..base.data_structures import (
    BregmanCenters, BregmanPoints, ClusteringResult, MultiRunResult, RunState
)
from ..representations.centroids import Centroids
from ..representations.point_ops import BregmanPointOps
from ..utils.convergence import IterationBudget, RunTracker
from ..utils.parallel import PartitionedDataset

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class RunView:
    """What a worker sees of one active run during one iteration.

    changed and remap describe the previous recomputation and are None before
    the first one. changed[j] is True when center j differs from its
    predecessor; remap[i] is the new index of old center i, or -1 if it was
    dropped.
    """

    run: int
    centers: BregmanCenters
    changed: Optional[Tensor] = None
    remap: Optional[Tensor] = None


class MultiKMeansClusterer(ABC):
    """Lloyd's iteration over R independent runs.

    Parameters
    ----------
    max_iterations : int, default=20
        Global iteration budget.
    max_seconds : float, optional
        Wall-clock budget, checked between iterations.
    """

    def __init__(self, max_iterations: int = 20, max_seconds: Optional[float] = None):
        self.max_iterations = max_iterations
        self.max_seconds = max_seconds

    @abstractmethod
    def _assign(self, ops: BregmanPointOps, views: Sequence[RunView],
                points: BregmanPoints, state: Any) -> Tuple[List[Tensor], Any]:
        """Closest center of each point for each active run.

        Args:
            ops: Point operations
            views: Snapshot of the active runs
            points: One partition
            state: This partition's state from the previous iteration (or None)

        Returns:
            clusters: one (n,) index tensor per view
            state: new partition state
        """
        pass

    def cluster(self,
                ops: BregmanPointOps,
                data: Union[PartitionedDataset, BregmanPoints],
                centers: Sequence[BregmanCenters]) -> MultiRunResult:
        """Refine each run's centers until convergence or budget exhaustion.

        Args:
            ops: Point operations
            data: Partitioned BregmanPoints (or a single batch)
            centers: Initial centers, one BregmanCenters per run

        Returns:
            MultiRunResult with the surviving centers and distortion per run
        """
        if isinstance(data, BregmanPoints):
            data = PartitionedDataset([data])

        budget = IterationBudget(self.max_iterations, self.max_seconds)
        budget.start()
        tracker = RunTracker(len(centers))
        current: List[BregmanCenters] = list(centers)
        changed: List[Optional[Tensor]] = [None] * len(current)
        remap: List[Optional[Tensor]] = [None] * len(current)
        states: List[Any] = [None] * data.n_partitions

        logger.info(f"{self.__class__.__name__}: clustering {len(current)} runs "
                    f"with {[len(c) for c in current]} initial centers")

        iteration = 0
        while tracker.any_active():
            if budget.exhausted(iteration):
                exhausted = tracker.exhaust()
                logger.info(f"Budget exhausted after {iteration} iterations "
                            f"({budget.elapsed:.3f}s); runs {exhausted} not converged")
                break

            active = tracker.active_runs()
            snapshot = data.context.broadcast(tuple(
                RunView(r, current[r], changed[r], remap[r]) for r in active
            ))

            def task(index: int, points: BregmanPoints):
                clusters, state = self._assign(ops, snapshot.value, points, states[index])
                accumulators = []
                for view, assigned in zip(snapshot.value, clusters):
                    acc = ops.make_centroids(len(view.centers), points.dimension)
                    accumulators.append(acc.add(points, assigned))
                return accumulators, state

            partials = data.map_partitions(task)
            states = [state for _, state in partials]
            merged = [
                reduce(lambda a, b: a.merge(b), (accs[j] for accs, _ in partials))
                for j in range(len(active))
            ]

            for r, centroids in zip(active, merged):
                current[r], changed[r], remap[r], n_moved, n_empty = self._recompute(
                    ops, current[r], centroids
                )
                state = tracker.update(r, iteration, len(current[r]), n_moved, n_empty)
                logger.debug(f"Iteration {iteration} run {r}: {len(current[r])} centers, "
                             f"{n_moved} moved, {n_empty} empty")
                if state is RunState.CONVERGED:
                    logger.info(f"Run {r} converged after {iteration + 1} iterations "
                                f"with {len(current[r])} centers")
            iteration += 1

        distortions = self._distortions(ops, data, current)
        return MultiRunResult([
            ClusteringResult(distortion=distortions[r], centers=current[r],
                             state=tracker.states[r], iterations=tracker.iterations[r])
            for r in range(len(current))
        ], history=tracker.history)

    def _recompute(self, ops: BregmanPointOps, old: BregmanCenters, centroids: Centroids):
        """New centers from merged accumulators; empty clusters are dropped."""
        empty = centroids.is_empty(ops.weight_threshold)
        keep = ~empty
        vectors = centroids.to_vectors().select(keep)
        previous = old.select(keep)

        moved = ops.center_moved(ops.to_point(vectors), previous)
        new = ops.to_center(vectors)

        changed = ~((new.homogeneous == previous.homogeneous).all(dim=1)
                    & (new.weights == previous.weights))
        remap = torch.full((len(old),), -1, dtype=torch.long)
        remap[keep] = torch.arange(len(new))
        return new, changed, remap, int(moved.sum().item()), int(empty.sum().item())

    def _distortions(self, ops: BregmanPointOps, data: PartitionedDataset,
                     centers: List[BregmanCenters]) -> List[float]:
        costs = data.aggregate(
            lambda _, points: torch.tensor([ops.distortion(points, c) for c in centers],
                                           dtype=torch.float64),
            lambda a, b: a + b
        )
        return costs.tolist()

    def __repr__(self) -> str:
        return (f"{self.__class__.__name__}(max_iterations={self.max_iterations}, "
                f"max_seconds={self.max_seconds})")
