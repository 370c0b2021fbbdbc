from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence, Union

import numpy as np

BoxLike = Union[float, Sequence[float], np.ndarray, None]


@dataclass(frozen=True)
class Box:
    """Orthorhombic simulation cell.

    A length of 0 along an axis means that axis is not periodic.
    """

    lengths: np.ndarray  # (3,)

    @classmethod
    def from_lengths(cls, lengths: BoxLike) -> "Box":
        if lengths is None:
            return cls.none()
        arr = np.asarray(lengths, dtype=float)
        if arr.ndim == 0:
            arr = np.full(3, float(arr))
        if arr.shape != (3,):
            raise ValueError("box must be a scalar or have shape (3,)")
        if np.any(arr < 0.0):
            raise ValueError("box lengths must be non-negative")
        return cls(lengths=arr)

    @classmethod
    def none(cls) -> "Box":
        return cls(lengths=np.zeros(3, dtype=float))

    @property
    def periodic(self) -> np.ndarray:
        return self.lengths > 0.0

    def is_periodic(self) -> bool:
        return bool(np.any(self.periodic))

    def min_length(self) -> float:
        per = self.lengths[self.periodic]
        return float(per.min()) if per.size else float("inf")

    def minimum_image(self, dr: np.ndarray) -> np.ndarray:
        """Shortest periodic image of displacement(s) ``dr`` (..., 3)."""
        dr = np.asarray(dr, dtype=float)
        per = self.periodic
        if not np.any(per):
            return dr
        L = np.where(per, self.lengths, 1.0)
        shift = np.where(per, np.round(dr / L), 0.0)
        return dr - L * shift

    def distance(self, a: np.ndarray, b: np.ndarray) -> np.ndarray:
        """Minimum-image displacement pointing from ``a`` to ``b``."""
        return self.minimum_image(np.asarray(b, dtype=float) - np.asarray(a, dtype=float))

    def wrap(self, r: np.ndarray) -> np.ndarray:
        r = np.asarray(r, dtype=float)
        per = self.periodic
        if not np.any(per):
            return r
        L = np.where(per, self.lengths, 1.0)
        return np.where(per, r - L * np.floor(r / L), r)


def init_positions(n_atoms: int, box: Box, seed: int = 1, extent: float = 10.0) -> np.ndarray:
    rng = np.random.default_rng(seed)
    L = np.where(box.periodic, box.lengths, float(extent))
    return rng.random((int(n_atoms), 3)) * L
