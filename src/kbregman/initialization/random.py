"""
Random initialization strategy.

Selects random points from the dataset as initial cluster centers.
"""

import logging
import warnings
from typing import List

import torch

from ..base.data_structures import BregmanCenters, BregmanPoints
from ..base.interfaces import InitializationStrategy
from ..representations.point_ops import BregmanPointOps
from ..utils.parallel import PartitionedDataset
from ..utils.validation import check_positive, check_random_state

logger = logging.getLogger(__name__)


class KMeansRandom(InitializationStrategy):
    """Random initialization by selecting points from the dataset.

    Each run gets k distinct points drawn uniformly without replacement.
    """

    def __init__(self, k: int, runs: int = 1, seed: int = 0):
        check_positive("k", k)
        check_positive("runs", runs)
        self.k = k
        self.runs = runs
        self.seed = seed

    def init(self, ops: BregmanPointOps, data: PartitionedDataset) -> List[BregmanCenters]:
        if data.count() == 0:
            raise ValueError("Cannot initialize from an empty dataset")
        # Degenerate points would make degenerate centers
        eligible = torch.nonzero(torch.cat(data.map_partitions(
            lambda _, points: points.weights > ops.weight_threshold
        ))).flatten()
        n = eligible.numel()
        if n == 0:
            raise ValueError(f"No point has weight above {ops.weight_threshold}")
        if self.k > n:
            warnings.warn(f"Number of clusters requested {self.k} exceeds number of points {n}")

        generator = check_random_state(self.seed)
        centers = []
        for r in range(self.runs):
            indices = eligible[torch.randperm(n, generator=generator)[:self.k]]
            centers.append(ops.to_center(BregmanPoints.cat(data.take(indices))))
        logger.info(f"Random initialization of {self.runs} runs with "
                    f"{min(self.k, n)} centers each")
        return centers

    def __repr__(self) -> str:
        return f"KMeansRandom(k={self.k}, runs={self.runs}, seed={self.seed})"
