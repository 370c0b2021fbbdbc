"""Sparse per-slot derivative rows.

A row set maps ``slot -> (cols, block)`` where ``cols`` is a sorted int64
array of derivative components and ``block`` has shape
``(n_values, cols.size)``.  Only components touched for a slot are stored, so
memory follows the number of active matrix elements, not ``n_slots * n_der``.
"""

from __future__ import annotations

from typing import Dict, Tuple

import numpy as np

SparseRows = Dict[int, Tuple[np.ndarray, np.ndarray]]


def add_row(rows: SparseRows, slot: int, cols: np.ndarray, block: np.ndarray) -> None:
    """Add ``block`` on components ``cols`` into ``rows[slot]``."""
    slot = int(slot)
    cols = np.asarray(cols, dtype=np.int64)
    if cols.size == 0:
        return
    old = rows.get(slot)
    if old is None:
        rows[slot] = (cols.copy(), np.array(block, dtype=float, copy=True))
        return
    ocols, oblock = old
    merged = np.union1d(ocols, cols)
    out = np.zeros((oblock.shape[0], merged.size), dtype=float)
    out[:, np.searchsorted(merged, ocols)] += oblock
    out[:, np.searchsorted(merged, cols)] += block
    rows[slot] = (merged, out)


def add_rows(acc: SparseRows, other: SparseRows) -> None:
    for slot, (cols, block) in other.items():
        add_row(acc, slot, cols, block)


def copy_rows(rows: SparseRows) -> SparseRows:
    return {slot: (cols.copy(), block.copy()) for slot, (cols, block) in rows.items()}


def rows_nbytes(rows: SparseRows) -> int:
    return sum(int(cols.nbytes + block.nbytes) for cols, block in rows.values())
