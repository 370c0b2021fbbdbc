from __future__ import annotations

import warnings
from typing import List, Sequence, Tuple

import numpy as np

from .constants import DEFAULT_CUTOFF
from .pairs import PairSpace
from .pbc import Box


def _read_only(arr: np.ndarray) -> np.ndarray:
    view = arr.view()
    view.setflags(write=False)
    return view


class NeighborList:
    """Neighbor list built from two lists or a single list of atom ids.

    Local indices returned by :meth:`get_close_pair` refer to the ordering of
    the positions handed to the last :meth:`update` (the full atom list) until
    :meth:`get_reduced_atom_list` is called, after which they refer to the
    reduced atom list.  Stride gating is left to the caller, see
    :func:`rebuild_due`.
    """

    def __init__(
        self,
        group_a: Sequence[int],
        group_b: Sequence[int] | None = None,
        *,
        pair: bool = False,
        pbc: bool = True,
        box: Box | None = None,
        cutoff: float = DEFAULT_CUTOFF,
        stride: int = 0,
    ):
        cutoff = float(cutoff)
        stride = int(stride)
        if not cutoff > 0.0:
            raise ValueError("cutoff must be positive")
        if stride < 0:
            raise ValueError("stride must be >= 0")
        self.group_a = np.asarray(group_a, dtype=np.int64).reshape(-1)
        self.group_b = None if group_b is None else np.asarray(group_b, dtype=np.int64).reshape(-1)
        self.pairs = PairSpace.build(
            self.group_a.size,
            None if self.group_b is None else self.group_b.size,
            pair=pair,
        )
        self.do_pair = bool(pair)
        self.do_pbc = bool(pbc)
        self.box = Box.none() if box is None else box
        self.cutoff = cutoff
        self.stride = stride
        self.last_update = 0

        if self.group_b is None:
            self._full = self.group_a.copy()
        else:
            self._full = np.concatenate([self.group_a, self.group_b])

        if self.do_pbc and self.box.is_periodic() and cutoff < DEFAULT_CUTOFF:
            if cutoff > 0.5 * self.box.min_length():
                warnings.warn(
                    f"neighbor list cutoff {cutoff} exceeds half the smallest box length "
                    f"{self.box.min_length()}; minimum-image distances are ambiguous",
                    RuntimeWarning,
                )

        self._initialize()

    def _initialize(self) -> None:
        # before the first update every candidate pair counts as close
        ci, cj = self.pairs.all_pairs()
        self._cand_i = ci
        self._cand_j = cj
        self._pi = ci.copy()
        self._pj = cj.copy()
        self._active = np.arange(ci.size, dtype=np.int64)
        self._request = self._full.copy()
        self._reduced_order = False

    # -- sizes ---------------------------------------------------------------

    def n_candidates(self) -> int:
        return self.pairs.size()

    def size(self) -> int:
        return int(self._pi.size)

    def __len__(self) -> int:
        return self.size()

    def n_reduced(self) -> int:
        return int(self._request.size)

    # -- atom lists ----------------------------------------------------------

    def get_full_atom_list(self) -> np.ndarray:
        """Ids whose positions are needed to evaluate every candidate pair."""
        return _read_only(self._full)

    def update(self, positions: np.ndarray) -> np.ndarray:
        """Rebuild the close-pair table from positions ordered as the full list.

        Returns the reduced atom list (ids touched by at least one close pair).
        """
        r = np.asarray(positions, dtype=float)
        if r.ndim != 2 or r.shape[0] != self._full.size:
            raise ValueError(
                f"positions must have shape ({self._full.size}, 3), got {tuple(r.shape)}"
            )
        ci = self._cand_i
        cj = self._cand_j
        if ci.size:
            dr = r[cj] - r[ci]
            if self.do_pbc:
                dr = self.box.minimum_image(dr)
            d2 = (dr * dr).sum(axis=1)
            keep = d2 < self.cutoff * self.cutoff
            self._active = np.flatnonzero(keep)
            self._pi = ci[keep]
            self._pj = cj[keep]
        else:
            self._active = np.zeros(0, dtype=np.int64)
            self._pi = ci.copy()
            self._pj = cj.copy()
        self._reduced_order = False
        self._set_request_list()
        return _read_only(self._request)

    def _set_request_list(self) -> None:
        used = np.zeros(self._full.size, dtype=bool)
        used[self._pi] = True
        used[self._pj] = True
        self._request = self._full[used]

    def get_reduced_atom_list(self) -> np.ndarray:
        """Reduced atom list; close pairs are remapped into its ordering."""
        if not self._reduced_order:
            used = np.zeros(self._full.size, dtype=bool)
            used[self._pi] = True
            used[self._pj] = True
            newindex = np.cumsum(used) - 1
            self._pi = newindex[self._pi]
            self._pj = newindex[self._pj]
            self._reduced_order = True
        return _read_only(self._request)

    # -- close pairs ---------------------------------------------------------

    def get_close_pair(self, i: int) -> Tuple[int, int]:
        i = int(i)
        if i < 0 or i >= self.size():
            raise IndexError(f"close pair index {i} out of range [0, {self.size()})")
        return int(self._pi[i]), int(self._pj[i])

    def close_pairs(self) -> np.ndarray:
        """All close pairs as an (n, 2) array of local indices."""
        return np.stack([self._pi, self._pj], axis=1) if self._pi.size else np.zeros((0, 2), dtype=np.int64)

    def get_active_candidates(self) -> np.ndarray:
        """Linear candidate indices of the close pairs (independent of ordering)."""
        return _read_only(self._active)

    def get_neighbors(self, index: int) -> List[int]:
        index = int(index)
        out: List[int] = []
        for a, b in zip(self._pi.tolist(), self._pj.tolist()):
            if a == index:
                out.append(b)
            if b == index:
                out.append(a)
        return out

    # -- cadence -------------------------------------------------------------

    def get_stride(self) -> int:
        return self.stride

    def get_last_update(self) -> int:
        return self.last_update

    def set_last_update(self, step: int) -> None:
        step = int(step)
        if step < self.last_update:
            raise ValueError(
                f"last update step must not decrease ({step} < {self.last_update})"
            )
        self.last_update = step


def rebuild_due(nl: NeighborList, step: int, first: bool = False) -> bool:
    """Caller-side stride gating: should ``nl`` be rebuilt at ``step``?"""
    stride = nl.get_stride()
    if stride <= 0:
        return True
    return bool(first) or int(step) % stride == 0
