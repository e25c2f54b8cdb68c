"""
Lloyd's iteration with per-point assignment tracking.

Each point remembers its assigned center and the distance to it. On the next
iteration only the centers that changed need to be compared against:

- assigned center unchanged: compare against the changed centers only,
- assigned center changed and the point got no farther from it: compare
  against the changed centers only,
- otherwise (farther, or its cluster was dropped): compare against all.

Unchanged centers cannot beat the old assignment, so the result is exactly
the one full evaluation would give.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

import torch
from torch import Tensor

from ..base.data_structures import BregmanPoints
from ..representations.point_ops import BregmanPointOps
from .base import MultiKMeansClusterer, RunView


@dataclass
class Assignment:
    """Assigned center and distance for every point of a partition."""

    cluster: Tensor   # (n,) long, -1 when unassigned
    distance: Tensor  # (n,)


def remap_clusters(cluster: Tensor, remap: Tensor) -> Tensor:
    """Old center indices to new ones; dropped or unassigned become -1."""
    valid = cluster >= 0
    return torch.where(valid, remap[cluster.clamp_min(0)], torch.full_like(cluster, -1))


def reassign(ops: BregmanPointOps, points: BregmanPoints, view: RunView,
             previous: Optional[Assignment]) -> Assignment:
    """Closest center per point, reusing the previous assignment where possible."""
    centers = view.centers
    if previous is None or view.changed is None or len(centers) == 0:
        return Assignment(*ops.find_closest(points, centers))

    cluster = remap_clusters(previous.cluster, view.remap)
    lost = cluster < 0
    assigned = cluster.clamp_min(0)

    changed_idx = torch.nonzero(view.changed, as_tuple=True)[0]
    d_changed = ops.distances(points, centers.select(changed_idx))

    # Column of each center within d_changed
    column = torch.cumsum(view.changed.long(), dim=0) - 1
    assigned_changed = view.changed[assigned]
    if d_changed.shape[1] > 0:
        d_new = d_changed.gather(1, column[assigned].clamp_min(0).unsqueeze(1)).squeeze(1)
    else:
        d_new = previous.distance
    d_assigned = torch.where(assigned_changed, d_new, previous.distance)

    full = lost | (assigned_changed & (d_new > previous.distance))

    best_cluster = assigned.clone()
    best_distance = d_assigned.clone()
    if d_changed.shape[1] > 0:
        d_min, arg = torch.min(d_changed, dim=1)
        c_min = changed_idx[arg]
        better = (d_min < d_assigned) | ((d_min == d_assigned) & (c_min < assigned))
        best_cluster = torch.where(better, c_min, best_cluster)
        best_distance = torch.where(better, d_min, best_distance)

    if full.any():
        rows = torch.nonzero(full, as_tuple=True)[0]
        c_full, d_full = ops.find_closest(points.select(rows), centers)
        best_cluster[rows] = c_full
        best_distance[rows] = d_full

    return Assignment(best_cluster, best_distance)


class TrackingKMeans(MultiKMeansClusterer):
    """Lloyd's iteration that skips comparisons against unchanged centers.

    Produces the same assignments as MultiKMeans with fewer distance
    evaluations once most centers have settled.
    """

    def _assign(self, ops: BregmanPointOps, views: Sequence[RunView],
                points: BregmanPoints,
                state: Optional[Dict[int, Assignment]]) -> Tuple[List[Tensor], Dict[int, Assignment]]:
        state = dict(state or {})
        clusters = []
        for view in views:
            assignment = reassign(ops, points, view, state.get(view.run))
            state[view.run] = assignment
            clusters.append(assignment.cluster)
        return clusters, state
