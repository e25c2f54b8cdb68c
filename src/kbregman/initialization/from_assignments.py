"""
Initialization from a known assignment of points to clusters.

Warm-starts clustering from a previous result, for example the labels of a
coarser model: each cluster's initial center is the centroid of the points
assigned to it.
"""

from typing import List, Optional, Sequence, Union

import torch
from torch import Tensor

from ..base.data_structures import BregmanCenters, BregmanPoints
from ..base.interfaces import InitializationStrategy
from ..representations.point_ops import BregmanPointOps
from ..utils.parallel import PartitionedDataset


class AssignmentInitializer(InitializationStrategy):
    """Centers computed from per-point cluster indices.

    Args:
        assignments: (n,) cluster index per point for a single run, or
            (R, n) / a sequence of (n,) tensors for R runs. Negative
            indices leave a point unassigned.
        n_clusters: Number of clusters; defaults to max index + 1 per run
    """

    def __init__(self, assignments: Union[Tensor, Sequence[Tensor]],
                 n_clusters: Optional[int] = None):
        if isinstance(assignments, Tensor) and assignments.dim() == 1:
            assignments = [assignments]
        self.assignments = [torch.as_tensor(a, dtype=torch.long) for a in assignments]
        if not self.assignments:
            raise ValueError("At least one assignment is required")
        self.n_clusters = n_clusters

    def init(self, ops: BregmanPointOps, data: PartitionedDataset) -> List[BregmanCenters]:
        n = data.count()
        for a in self.assignments:
            if a.shape != (n,):
                raise ValueError(f"Expected {n} assignments, got shape {tuple(a.shape)}")

        offsets = [0]
        for size in data.sizes():
            offsets.append(offsets[-1] + size)

        centers = []
        for assignment in self.assignments:
            k = self.n_clusters if self.n_clusters is not None else int(assignment.max().item()) + 1
            k = max(k, 0)

            def accumulate(index: int, points: BregmanPoints):
                local = assignment[offsets[index]:offsets[index + 1]]
                return ops.make_centroids(k, points.dimension).add(points, local)

            centroids = data.aggregate(accumulate, lambda a, b: a.merge(b))
            keep = ~centroids.is_empty(ops.weight_threshold)
            centers.append(ops.to_center(centroids.to_vectors().select(keep)))
        return centers

    def __repr__(self) -> str:
        return f"AssignmentInitializer(runs={len(self.assignments)}, n_clusters={self.n_clusters})"
