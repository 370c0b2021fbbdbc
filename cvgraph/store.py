from __future__ import annotations

from typing import Tuple

import numpy as np

from .constants import WEIGHT_TOLERANCE
from .multivalue import MultiValue
from .sparse import SparseRows, add_row, rows_nbytes

Buffers = Tuple[np.ndarray, SparseRows]


class SlotValueStore:
    """Per-slot accumulation of (weight, weighted quantity, ...) and derivatives.

    Value 0 of every slot is the weight.  A slot is active when its
    accumulated weight exceeds ``tolerance``; activity is only recomputed by
    :meth:`finalize`, after all partial buffers have been merged.

    Values are dense ``(n_slots, n_values)``.  Derivatives are sparse rows
    holding only the components a slot actually touched.
    """

    def __init__(self, n_slots: int, n_values: int = 2, n_derivatives: int = 0,
                 tolerance: float = WEIGHT_TOLERANCE):
        if int(n_slots) < 0:
            raise ValueError("n_slots must be >= 0")
        if int(n_values) < 1:
            raise ValueError("n_values must be >= 1")
        if int(n_derivatives) < 0:
            raise ValueError("n_derivatives must be >= 0")
        if not float(tolerance) >= 0.0:
            raise ValueError("tolerance must be >= 0")
        self.n_slots = int(n_slots)
        self.n_values = int(n_values)
        self.n_derivatives = int(n_derivatives)
        self.tolerance = float(tolerance)
        self.values, self.derivatives = self.new_buffers()
        self.active = np.zeros(self.n_slots, dtype=bool)

    def new_buffers(self) -> Buffers:
        return np.zeros((self.n_slots, self.n_values), dtype=float), {}

    def reset(self) -> None:
        self.values[:] = 0.0
        self.derivatives.clear()
        self.active[:] = False

    def load(self, values: np.ndarray, derivatives: SparseRows) -> None:
        if values.shape != self.values.shape:
            raise ValueError("buffer shapes do not match the store layout")
        if any(not 0 <= s < self.n_slots for s in derivatives):
            raise ValueError("derivative rows reference slots outside the store")
        self.values[...] = values
        self.derivatives = dict(derivatives)

    @staticmethod
    def accumulate(buffers: Buffers, slot: int, myvals: MultiValue) -> None:
        values, derivatives = buffers
        values[slot] += myvals.values
        cols = myvals.active_indices()
        if cols.size:
            add_row(derivatives, slot, cols, myvals.derivatives[:, cols])

    def store_values(self, slot: int, myvals: MultiValue) -> None:
        self.accumulate((self.values, self.derivatives), slot, myvals)

    def finalize(self) -> None:
        self.active = self.values[:, 0] > self.tolerance

    def stored_value_is_active(self, slot: int) -> bool:
        return bool(self.active[int(slot)])

    def active_slots(self) -> np.ndarray:
        return np.flatnonzero(self.active)

    def derivative_nbytes(self) -> int:
        return rows_nbytes(self.derivatives)

    def get_derivative(self, slot: int, ival: int, jder: int) -> float:
        row = self.derivatives.get(int(slot))
        if row is None:
            return 0.0
        cols, block = row
        k = int(np.searchsorted(cols, jder))
        if k < cols.size and cols[k] == jder:
            return float(block[ival, k])
        return 0.0

    def retrieve_value(self, slot: int, normed: bool = False) -> np.ndarray:
        vals = self.values[int(slot)].copy()
        if normed and self.n_values > 1:
            vals[1:] /= vals[0]
        return vals

    def retrieve_derivatives(self, slot: int, normed: bool, myvals: MultiValue) -> None:
        """Copy the stored values and raw derivatives of ``slot`` into ``myvals``."""
        if myvals.n_values != self.n_values or myvals.n_derivatives != self.n_derivatives:
            raise ValueError("workspace layout does not match the store layout")
        myvals.clear_all()
        myvals.values[:] = self.retrieve_value(slot, normed)
        row = self.derivatives.get(int(slot))
        if row is None:
            return
        cols, block = row
        for k, jder in enumerate(cols.tolist()):
            for ival in range(self.n_values):
                if block[ival, k] != 0.0:
                    myvals.set_derivative(ival, jder, block[ival, k])
