from __future__ import annotations

import numpy as np


class ActiveList:
    """Subset of ``range(n)`` that is switched on and off between passes.

    ``activate``/``deactivate`` only flag members; :meth:`update_active_members`
    rebuilds the sorted array returned by :meth:`members`.
    """

    def __init__(self, n: int):
        self._flags = np.zeros(int(n), dtype=bool)
        self._members = np.zeros(0, dtype=np.int64)

    def __len__(self) -> int:
        return int(self._members.size)

    @property
    def full_size(self) -> int:
        return int(self._flags.size)

    def activate(self, i: int) -> None:
        self._flags[int(i)] = True

    def deactivate(self, i: int) -> None:
        self._flags[int(i)] = False

    def activate_all(self) -> None:
        self._flags[:] = True
        self.update_active_members()

    def deactivate_all(self) -> None:
        self._flags[:] = False
        self._members = np.zeros(0, dtype=np.int64)

    def is_active(self, i: int) -> bool:
        return bool(self._flags[int(i)])

    def update_active_members(self) -> None:
        self._members = np.flatnonzero(self._flags).astype(np.int64)

    def members(self) -> np.ndarray:
        return self._members
