"""
Partitioned data and data-parallel execution.

A PartitionedDataset is an ordered list of partitions (batches of points, or
any per-partition state). Work is expressed as a function applied to every
partition followed by an explicit merge of the partial results, so the only
shared state between workers is the read-only Broadcast snapshot handed to
them for the current step.
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from functools import reduce
from typing import Any, Callable, Generic, List, Optional, Sequence, TypeVar

import torch
from torch import Tensor

T = TypeVar('T')
U = TypeVar('U')


@dataclass(frozen=True)
class Broadcast(Generic[T]):
    """Read-only value published to every worker for one step.

    A new Broadcast is created whenever the value changes; workers never
    write through it.
    """

    value: T


class ParallelContext:
    """Runs one task per partition.

    With n_workers == 1 tasks run inline in partition order; otherwise they
    run on a thread pool (tensor kernels release the GIL). The pool is
    created lazily and reused until close().
    """

    def __init__(self, n_workers: int = 1):
        if n_workers <= 0:
            raise ValueError(f"n_workers must be positive, got {n_workers}")
        self.n_workers = n_workers
        self._pool: Optional[ThreadPoolExecutor] = None

    def run(self, fn: Callable[[int, Any], U], partitions: Sequence[Any]) -> List[U]:
        if self.n_workers == 1 or len(partitions) <= 1:
            return [fn(i, p) for i, p in enumerate(partitions)]
        if self._pool is None:
            self._pool = ThreadPoolExecutor(max_workers=self.n_workers)
        futures = [self._pool.submit(fn, i, p) for i, p in enumerate(partitions)]
        return [f.result() for f in futures]

    def broadcast(self, value: T) -> Broadcast[T]:
        return Broadcast(value)

    def close(self) -> None:
        if self._pool is not None:
            self._pool.shutdown(wait=True)
        self._pool = None

    def __enter__(self) -> 'ParallelContext':
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()


SERIAL = ParallelContext(1)


class PartitionedDataset(Generic[T]):
    """An ordered collection of partitions processed in parallel.

    Args:
        partitions: Partition payloads (e.g. BregmanPoints)
        context: Execution context shared by derived datasets
    """

    def __init__(self, partitions: Sequence[T], context: Optional[ParallelContext] = None):
        self.partitions: List[T] = list(partitions)
        self.context = context if context is not None else SERIAL

    @staticmethod
    def split(n: int, n_partitions: int) -> List[Tensor]:
        """Contiguous index chunks, empty chunks dropped."""
        if n_partitions <= 0:
            raise ValueError(f"n_partitions must be positive, got {n_partitions}")
        chunks = torch.tensor_split(torch.arange(n), n_partitions)
        return [idx for idx in chunks if idx.numel() > 0]

    @classmethod
    def from_tensor(cls, x: Tensor, n_partitions: int = 1,
                    context: Optional[ParallelContext] = None) -> 'PartitionedDataset[Tensor]':
        """Split the rows of x into n_partitions contiguous partitions."""
        return cls([x[idx] for idx in cls.split(x.shape[0], n_partitions)], context)

    @property
    def n_partitions(self) -> int:
        return len(self.partitions)

    def map_partitions(self, fn: Callable[[int, T], U]) -> List[U]:
        """Apply fn(index, partition) to every partition and collect the results."""
        return self.context.run(fn, self.partitions)

    def map(self, fn: Callable[[T], U]) -> 'PartitionedDataset[U]':
        """New dataset with fn applied to every partition."""
        return PartitionedDataset(self.map_partitions(lambda _, p: fn(p)), self.context)

    def zip(self, other: 'PartitionedDataset[U]') -> 'PartitionedDataset[tuple]':
        if other.n_partitions != self.n_partitions:
            raise ValueError(f"Cannot zip {self.n_partitions} partitions "
                             f"with {other.n_partitions}")
        return PartitionedDataset(list(zip(self.partitions, other.partitions)), self.context)

    def aggregate(self, seq: Callable[[int, T], U], comb: Callable[[U, U], U]) -> U:
        """Per-partition partial results combined with comb.

        comb must be commutative and associative; partials are combined
        left to right in partition order.
        """
        partials = self.map_partitions(seq)
        if not partials:
            raise ValueError("Cannot aggregate an empty dataset")
        return reduce(comb, partials)

    def collect(self) -> Any:
        """All partitions concatenated into one batch."""
        if not self.partitions:
            raise ValueError("Cannot collect an empty dataset")
        first = self.partitions[0]
        if isinstance(first, Tensor):
            return torch.cat(self.partitions)
        return type(first).cat(self.partitions)

    def count(self) -> int:
        return sum(len(p) for p in self.partitions)

    def sizes(self) -> List[int]:
        return [len(p) for p in self.partitions]

    def take(self, indices: Tensor) -> List[Any]:
        """Rows at the given global indices, as single-row selections."""
        offsets = torch.cumsum(torch.tensor([0] + self.sizes()), dim=0)
        rows = []
        for i in indices.tolist():
            part = int(torch.searchsorted(offsets, torch.tensor([i]), right=True)[0].item()) - 1
            rows.append(self.partitions[part].select(i - int(offsets[part].item())))
        return rows

    def __repr__(self) -> str:
        return f"PartitionedDataset(n_partitions={self.n_partitions})"
