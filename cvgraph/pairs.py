"""Candidate pair enumeration.

Every candidate pair is addressed by one linear index.  Three schemes exist:

* ``cross``    two groups, ``k = i*nb + j``
* ``diagonal`` two groups of equal size, ``k = i = j``
* ``triangle`` one group, unordered ``i < j``, ``k = j*(j-1)/2 + i``

The triangular packing is shared with the symmetric adjacency matrix store:
the larger index is always mapped first, so ``(i, j)`` and ``(j, i)`` give the
same slot.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Literal, Tuple

import numpy as np

PairScheme = Literal["cross", "diagonal", "triangle"]


def n_triangle_pairs(n: int) -> int:
    n = int(n)
    return n * (n - 1) // 2 if n > 1 else 0


def triangular_index(i: int, j: int) -> int:
    i = int(i); j = int(j)
    if i == j:
        raise ValueError(f"diagonal element ({i},{j}) has no triangular slot")
    hi, lo = (i, j) if i > j else (j, i)
    return hi * (hi - 1) // 2 + lo


def triangular_pair(k: int) -> Tuple[int, int]:
    """Inverse of :func:`triangular_index`; returns ``(lo, hi)``."""
    k = int(k)
    if k < 0:
        raise IndexError("pair index must be non-negative")
    hi = (1 + math.isqrt(8 * k + 1)) // 2
    lo = k - hi * (hi - 1) // 2
    return lo, hi


def triangular_pairs(n: int) -> Tuple[np.ndarray, np.ndarray]:
    """All ``(lo, hi)`` pairs of ``n`` items, in linear-index order."""
    n = int(n)
    if n < 2:
        empty = np.zeros(0, dtype=np.int64)
        return empty, empty.copy()
    hi, lo = np.tril_indices(n, k=-1)
    return lo.astype(np.int64), hi.astype(np.int64)


@dataclass(frozen=True)
class PairSpace:
    """Candidate index space over one or two groups of local indices.

    Pairs are returned as local indices into the concatenated ordering
    ``group A + group B`` (two groups) or into group A (one group).
    """

    scheme: PairScheme
    na: int
    nb: int = 0

    @classmethod
    def build(cls, na: int, nb: int | None = None, pair: bool = False) -> "PairSpace":
        na = int(na)
        if na < 0 or (nb is not None and int(nb) < 0):
            raise ValueError("group sizes must be non-negative")
        if nb is None:
            if pair:
                raise ValueError("diagonal pairing requires two groups")
            return cls(scheme="triangle", na=na, nb=0)
        nb = int(nb)
        if pair:
            if na != nb:
                raise ValueError(
                    f"diagonal pairing requires groups of equal size (got {na} and {nb})"
                )
            return cls(scheme="diagonal", na=na, nb=nb)
        return cls(scheme="cross", na=na, nb=nb)

    @property
    def two_groups(self) -> bool:
        return self.scheme != "triangle"

    def size(self) -> int:
        if self.scheme == "cross":
            return self.na * self.nb
        if self.scheme == "diagonal":
            return min(self.na, self.nb)
        return n_triangle_pairs(self.na)

    def index_pair(self, k: int) -> Tuple[int, int]:
        k = int(k)
        if k < 0 or k >= self.size():
            raise IndexError(f"candidate pair index {k} out of range [0, {self.size()})")
        if self.scheme == "cross":
            return k // self.nb, self.na + k % self.nb
        if self.scheme == "diagonal":
            return k, self.na + k
        return triangular_pair(k)

    def linear_index(self, i: int, j: int) -> int:
        """Linear index of group-local pair ``(i, j)``, or -1 if it is not a candidate.

        For two groups ``i`` indexes group A and ``j`` group B; for one group
        both index the same group and the order of ``i``, ``j`` is irrelevant.
        """
        i = int(i); j = int(j)
        if self.scheme == "triangle":
            if i == j or not (0 <= i < self.na and 0 <= j < self.na):
                return -1
            return triangular_index(i, j)
        if not (0 <= i < self.na and 0 <= j < self.nb):
            return -1
        if self.scheme == "cross":
            return i * self.nb + j
        return i if i == j else -1

    def all_pairs(self) -> Tuple[np.ndarray, np.ndarray]:
        """Vectorized :meth:`index_pair` over the whole space."""
        if self.scheme == "cross":
            k = np.arange(self.size(), dtype=np.int64)
            if self.nb == 0:
                return k, k.copy()
            return k // self.nb, self.na + k % self.nb
        if self.scheme == "diagonal":
            k = np.arange(self.size(), dtype=np.int64)
            return k, self.na + k
        return triangular_pairs(self.na)
