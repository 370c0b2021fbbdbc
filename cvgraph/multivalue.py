from __future__ import annotations

from typing import List

import numpy as np


class MultiValue:
    """Workspace for one matrix element: a few values and their derivatives.

    Derivative components that have been touched are tracked so consumers can
    loop over the active ones only.
    """

    def __init__(self, n_values: int, n_derivatives: int):
        if int(n_values) < 1 or int(n_derivatives) < 0:
            raise ValueError("MultiValue needs n_values >= 1 and n_derivatives >= 0")
        self.values = np.zeros(int(n_values), dtype=float)
        self.derivatives = np.zeros((int(n_values), int(n_derivatives)), dtype=float)
        self._active = np.zeros(int(n_derivatives), dtype=bool)
        self._touched: List[int] = []

    @property
    def n_values(self) -> int:
        return int(self.values.size)

    @property
    def n_derivatives(self) -> int:
        return int(self.derivatives.shape[1])

    def clear_all(self) -> None:
        # only touched components can be nonzero
        self.values[:] = 0.0
        if self._touched:
            cols = np.asarray(self._touched, dtype=np.int64)
            self.derivatives[:, cols] = 0.0
            self._active[cols] = False
            self._touched = []

    def get(self, ival: int) -> float:
        return float(self.values[ival])

    def set_value(self, ival: int, value: float) -> None:
        self.values[ival] = float(value)

    def add_value(self, ival: int, value: float) -> None:
        self.values[ival] += float(value)

    def add_derivative(self, ival: int, jder: int, value: float) -> None:
        self.derivatives[ival, jder] += float(value)
        self.activate(jder)

    def set_derivative(self, ival: int, jder: int, value: float) -> None:
        self.derivatives[ival, jder] = float(value)
        self.activate(jder)

    def get_derivative(self, ival: int, jder: int) -> float:
        return float(self.derivatives[ival, jder])

    def activate(self, jder: int) -> None:
        jder = int(jder)
        if not self._active[jder]:
            self._active[jder] = True
            self._touched.append(jder)

    def active_indices(self) -> np.ndarray:
        return np.asarray(sorted(self._touched), dtype=np.int64)

    def get_number_active(self) -> int:
        return len(self._touched)

    def get_active_index(self, i: int) -> int:
        return int(self.active_indices()[i])

    def active_list(self) -> List[int]:
        return self.active_indices().tolist()
