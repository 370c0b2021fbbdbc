"""Rank-striped partition / map / reduce over a fixed-size index space.

Each worker handles ``range(rank, n, size)`` and accumulates into its own
buffers; buffers are merged by element-wise sum.  The result does not depend
on the number of workers up to floating-point rounding.
"""

from __future__ import annotations

from typing import Any, Callable, List, Protocol, Sequence

import numpy as np

from .sparse import add_rows, copy_rows

try:
    import mpi4py

    mpi4py.rc.initialize = False
    mpi4py.rc.finalize = False
    from mpi4py import MPI
except ImportError:
    MPI = None

# a buffer is a dense ndarray (summed element-wise) or sparse rows (merged by slot)
Kernel = Callable[[int, Sequence[Any]], None]
BufferFactory = Callable[[], Sequence[Any]]


def striped(n: int, rank: int, size: int) -> range:
    size = int(size)
    rank = int(rank)
    if size < 1:
        raise ValueError("worker count must be >= 1")
    if not 0 <= rank < size:
        raise ValueError(f"rank {rank} out of range for {size} workers")
    return range(rank, int(n), size)


class Communicator(Protocol):
    rank: int
    size: int

    def sum(self, buf: np.ndarray) -> None: ...
    def allgather(self, obj: Any) -> List[Any]: ...


class SerialComm:
    rank = 0
    size = 1

    def sum(self, buf: np.ndarray) -> None:
        return None

    def allgather(self, obj: Any) -> List[Any]:
        return [obj]


class MPIComm:
    """In-place sums over an mpi4py communicator (COMM_WORLD by default)."""

    def __init__(self, comm=None):
        if MPI is None:
            raise RuntimeError("mpi4py required")
        if not MPI.Is_initialized():
            MPI.Init()
        self.comm = MPI.COMM_WORLD if comm is None else comm
        self.rank = int(self.comm.Get_rank())
        self.size = int(self.comm.Get_size())

    def sum(self, buf: np.ndarray) -> None:
        if self.size > 1:
            self.comm.Allreduce(MPI.IN_PLACE, buf, op=MPI.SUM)

    def allgather(self, obj: Any) -> List[Any]:
        return list(self.comm.allgather(obj))


def _copy_buffer(b: Any) -> Any:
    if isinstance(b, dict):
        return copy_rows(b)
    return np.array(b, copy=True)


def merge_buffers(partials: List[Sequence[Any]]) -> List[Any]:
    """Sum of per-worker buffers, merged in rank order."""
    if not partials:
        raise ValueError("nothing to merge")
    out = [_copy_buffer(b) for b in partials[0]]
    for bufs in partials[1:]:
        if len(bufs) != len(out):
            raise ValueError("workers produced a different number of buffers")
        for acc, b in zip(out, bufs):
            if isinstance(acc, dict):
                add_rows(acc, b)
            else:
                acc += b
    return out


def partition_map_reduce(n: int, kernel: Kernel, make_buffers: BufferFactory,
                         n_workers: int = 1) -> List[Any]:
    """Run ``kernel(index, buffers)`` over ``range(n)`` split across workers."""
    n_workers = int(n_workers)
    if n_workers < 1:
        raise ValueError("n_workers must be >= 1")
    partials = []
    for rank in range(n_workers):
        bufs = make_buffers()
        for k in striped(n, rank, n_workers):
            kernel(k, bufs)
        partials.append(bufs)
    return merge_buffers(partials)
