from __future__ import annotations

import numpy as np
import pytest

from cvgraph import parallel
from cvgraph.parallel import SerialComm, merge_buffers, partition_map_reduce, striped


def test_striped_partitions_index_space():
    assert list(striped(10, 1, 3)) == [1, 4, 7]
    covered = sorted(k for rank in range(4) for k in striped(11, rank, 4))
    assert covered == list(range(11))
    with pytest.raises(ValueError):
        striped(5, 3, 3)
    with pytest.raises(ValueError):
        striped(5, 0, 0)


def _kernel(k, bufs):
    acc, hist = bufs
    acc[0] += 0.1 * k
    acc[1] += np.sin(k)
    hist[k % 5] += 1


def _buffers():
    return [np.zeros(2), np.zeros(5, dtype=np.int64)]


@pytest.mark.parametrize("workers", [1, 2, 3, 8, 40])
def test_partition_map_reduce_matches_serial(workers):
    ref = _buffers()
    for k in range(33):
        _kernel(k, ref)
    out = partition_map_reduce(33, _kernel, _buffers, n_workers=workers)
    assert np.allclose(out[0], ref[0])
    assert np.array_equal(out[1], ref[1])


def test_partition_map_reduce_rejects_no_workers():
    with pytest.raises(ValueError):
        partition_map_reduce(3, _kernel, _buffers, n_workers=0)


def test_merge_buffers_copies_first_partial():
    a = [np.ones(3)]
    b = [np.full(3, 2.0)]
    out = merge_buffers([a, b])
    assert out[0].tolist() == [3.0, 3.0, 3.0]
    assert a[0].tolist() == [1.0, 1.0, 1.0]
    with pytest.raises(ValueError):
        merge_buffers([])


def test_serial_comm_is_noop():
    comm = SerialComm()
    buf = np.arange(3.0)
    comm.sum(buf)
    assert comm.rank == 0 and comm.size == 1
    assert buf.tolist() == [0.0, 1.0, 2.0]
    assert comm.allgather({"a": 1}) == [{"a": 1}]


def test_mpi_comm_requires_mpi4py(monkeypatch):
    monkeypatch.setattr(parallel, "MPI", None)
    with pytest.raises(RuntimeError, match="mpi4py required"):
        parallel.MPIComm()


def test_merge_buffers_merges_sparse_rows_by_slot():
    a = [np.zeros(2), {3: (np.array([1, 5]), np.array([[1.0, 2.0]]))}]
    b = [np.ones(2), {3: (np.array([5, 8]), np.array([[10.0, 4.0]])),
                      0: (np.array([2]), np.array([[7.0]]))}]
    out = merge_buffers([a, b])
    assert out[0].tolist() == [1.0, 1.0]
    cols, block = out[1][3]
    assert cols.tolist() == [1, 5, 8]
    assert block.tolist() == [[1.0, 12.0, 4.0]]
    assert out[1][0][1].tolist() == [[7.0]]
    # inputs are untouched
    assert a[1][3][0].tolist() == [1, 5]
