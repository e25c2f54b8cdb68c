"""
Assignment tracking over all runs at once.

Same pruning rule as TrackingKMeans, but the per-point state of every run is
held in (n, R) columns and the candidate distances of all active runs are
stacked into one (n, R, k_max) tensor padded with +inf, so the bookkeeping
is a handful of tensor operations per iteration instead of one pass per run.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import torch
from torch import Tensor

from ..base.data_structures import DTYPE, BregmanPoints
from ..representations.point_ops import BregmanPointOps
from .base import MultiKMeansClusterer, RunView
from .tracking import remap_clusters


@dataclass
class ColumnState:
    """Assigned center and distance per (point, run)."""

    cluster: Tensor   # (n, R) long
    distance: Tensor  # (n, R)

    @classmethod
    def empty(cls, n: int, n_runs: int) -> 'ColumnState':
        return cls(torch.full((n, n_runs), -1, dtype=torch.long),
                   torch.full((n, n_runs), float('inf'), dtype=DTYPE))


class ColumnTrackingKMeans(MultiKMeansClusterer):
    """Tracking Lloyd's iteration with columnar per-run state."""

    def _assign(self, ops: BregmanPointOps, views: Sequence[RunView],
                points: BregmanPoints,
                state: Optional[ColumnState]) -> Tuple[List[Tensor], ColumnState]:
        n = len(points)
        runs = [view.run for view in views]
        if state is None:
            state = ColumnState.empty(n, max(runs) + 1)
        else:
            state = ColumnState(state.cluster.clone(), state.distance.clone())

        sizes = [len(view.centers) for view in views]
        k_max = max(sizes)
        if k_max == 0:
            return [torch.full((n,), -1, dtype=torch.long) for _ in views], state

        n_active = len(views)
        inf = float('inf')
        candidates = torch.full((n, n_active, k_max), inf, dtype=DTYPE)
        changed = torch.zeros(n_active, k_max, dtype=torch.bool)
        cluster = torch.zeros(n, n_active, dtype=torch.long)
        lost = torch.zeros(n, n_active, dtype=torch.bool)
        fresh = torch.zeros(n_active, dtype=torch.bool)

        for j, (view, k) in enumerate(zip(views, sizes)):
            if view.changed is None:
                changed[j, :k] = True
                fresh[j] = True
            else:
                changed[j, :k] = view.changed
                remapped = remap_clusters(state.cluster[:, view.run], view.remap)
                lost[:, j] = remapped < 0
                cluster[:, j] = remapped.clamp_min(0)
            idx = torch.nonzero(changed[j, :k], as_tuple=True)[0]
            if idx.numel() > 0:
                candidates[:, j][:, idx] = ops.distances(points, view.centers.select(idx))

        cols = torch.tensor(runs, dtype=torch.long)
        previous = torch.where(fresh.unsqueeze(0), torch.full((n, n_active), inf, dtype=DTYPE),
                               state.distance[:, cols])

        at = cluster.unsqueeze(2)
        assigned_changed = changed.unsqueeze(0).expand(n, -1, -1).gather(2, at).squeeze(2)
        d_new = candidates.gather(2, at).squeeze(2)
        d_assigned = torch.where(assigned_changed, d_new, previous)
        full = lost | (assigned_changed & (d_new > previous))

        # The assigned center competes with the changed ones
        candidates.scatter_(2, at, d_assigned.unsqueeze(2))
        best_distance, best_cluster = torch.min(candidates, dim=2)

        for j, (view, k) in enumerate(zip(views, sizes)):
            if k == 0:
                best_cluster[:, j] = -1
                best_distance[:, j] = inf
                continue
            rows = torch.nonzero(full[:, j], as_tuple=True)[0]
            if rows.numel() > 0:
                c_full, d_full = ops.find_closest(points.select(rows), view.centers)
                best_cluster[rows, j] = c_full
                best_distance[rows, j] = d_full

        state.cluster[:, cols] = best_cluster
        state.distance[:, cols] = best_distance
        return [best_cluster[:, j].clone() for j in range(n_active)], state
