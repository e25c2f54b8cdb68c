"""Plain multi-run Lloyd's iteration."""

from typing import Any, List, Sequence, Tuple

from torch import Tensor

from ..base.data_structures import BregmanPoints
from ..representations.point_ops import BregmanPointOps
from .base import MultiKMeansClusterer, RunView


class MultiKMeans(MultiKMeansClusterer):
    """Lloyd's iteration that recomputes every distance on every iteration.

    The reference engine: the tracking variants must produce the same
    assignments and centers.
    """

    def _assign(self, ops: BregmanPointOps, views: Sequence[RunView],
                points: BregmanPoints, state: Any) -> Tuple[List[Tensor], Any]:
        return [ops.find_closest(points, view.centers)[0] for view in views], None
