from __future__ import annotations

from typing import Tuple

import numpy as np

from .constants import NUMERICAL_ZERO
from .multivalue import MultiValue
from .neighborlist import NeighborList
from .pairs import PairSpace, n_triangle_pairs, triangular_pair
from .pbc import Box
from .switching import RationalSwitch


class ContactMatrix:
    """Contact matrix between the atoms of one group or of two groups.

    The weight of element (i, j) is ``s(r_ij)`` and the weighted quantity
    ``s(r_ij) * r_ij``, so the normalized element is the contact distance.
    Derivatives are taken with respect to the positions passed to
    :meth:`set_positions` (group A followed by group B), component
    ``3*atom + axis``.

    Tasks are ordered like the store slots: triangular for a symmetric
    matrix, row-major otherwise.  When a neighbor list over the same groups
    is attached, only its close pairs are computed.
    """

    weight_has_derivatives = True

    def __init__(self, switch: RationalSwitch, n_a: int, n_b: int | None = None, *,
                 symmetric: bool = False, box: Box | None = None, pbc: bool = True,
                 neighbor_list: NeighborList | None = None):
        self.switch = switch
        self.n_a = int(n_a)
        self.n_b = None if n_b is None else int(n_b)
        if symmetric and self.n_b is not None:
            raise ValueError("a symmetric contact matrix is built from a single group")
        self.symmetric = bool(symmetric)
        self.box = Box.none() if box is None else box
        self.pbc = bool(pbc)
        self.nrows = self.n_a
        self.ncols = self.n_a if self.n_b is None else self.n_b
        self.n_atoms = self.n_a + (0 if self.n_b is None else self.n_b)
        self.neighbor_list = neighbor_list
        if neighbor_list is not None:
            expected = PairSpace.build(self.n_a, self.n_b, pair=neighbor_list.do_pair)
            if neighbor_list.pairs != expected:
                raise ValueError("neighbor list groups do not match the contact matrix groups")
        self.positions = np.zeros((self.n_atoms, 3), dtype=float)
        self._mask = self._close_mask()

    def get_number_of_nodes(self) -> int:
        return self.n_atoms

    def get_number_of_tasks(self) -> int:
        if self.symmetric:
            return n_triangle_pairs(self.n_a)
        return self.nrows * self.ncols

    def get_number_of_derivatives(self) -> int:
        return 3 * self.n_atoms

    def get_task_code(self, slot: int) -> int:
        slot = int(slot)
        if slot < 0 or slot >= self.get_number_of_tasks():
            raise IndexError(f"task {slot} out of range [0, {self.get_number_of_tasks()})")
        return slot

    def decode_index_to_atoms(self, code: int) -> Tuple[int, int]:
        if self.symmetric:
            return triangular_pair(code)
        return int(code) // self.ncols, int(code) % self.ncols

    def set_positions(self, positions: np.ndarray) -> None:
        """Positions for the next recompute; also refreshes the close-pair mask."""
        r = np.asarray(positions, dtype=float)
        if r.shape != (self.n_atoms, 3):
            raise ValueError(f"positions must have shape ({self.n_atoms}, 3)")
        self.positions = r
        self._mask = self._close_mask()

    def _close_mask(self) -> np.ndarray | None:
        nl = self.neighbor_list
        if nl is None:
            return None
        mask = np.zeros(nl.n_candidates(), dtype=bool)
        mask[nl.get_active_candidates()] = True
        return mask

    def get_candidate_tasks(self) -> np.ndarray:
        """Sorted task codes of the neighbor list's close pairs."""
        nl = self.neighbor_list
        if nl is None:
            return np.arange(self.get_number_of_tasks(), dtype=np.int64)
        k = nl.get_active_candidates()
        if self.symmetric:
            # triangular candidates and tasks share one packing
            return np.sort(k)
        ci, cj = nl.pairs.all_pairs()
        i = ci[k]
        j = cj[k]
        if self.n_b is not None:
            return np.sort(i * self.ncols + (j - self.n_a))
        return np.sort(np.concatenate([i * self.ncols + j, j * self.ncols + i]))

    def is_candidate(self, i: int, j: int) -> bool:
        if self.n_b is None and i == j:
            return False
        if self._mask is None:
            return True
        k = self.neighbor_list.pairs.linear_index(i, j)
        return k >= 0 and bool(self._mask[k])

    def recalculate_matrix_element(self, slot: int, myvals: MultiValue) -> None:
        i, j = self.decode_index_to_atoms(self.get_task_code(slot))
        if not self.is_candidate(i, j):
            return
        ai = i
        aj = j if self.n_b is None else self.n_a + j
        dr = self.positions[aj] - self.positions[ai]
        if self.pbc:
            dr = self.box.minimum_image(dr)
        r = float(np.sqrt((dr * dr).sum()))
        s, dsdr = self.switch.calculate(r)
        s = float(s)
        dsdr = float(dsdr)
        if s <= 0.0:
            return
        u = dr / (r + NUMERICAL_ZERO)
        myvals.add_value(0, s)
        myvals.add_value(1, s * r)
        dq = dsdr * r + s
        for k in range(3):
            myvals.add_derivative(0, 3 * aj + k, dsdr * u[k])
            myvals.add_derivative(0, 3 * ai + k, -dsdr * u[k])
            myvals.add_derivative(1, 3 * aj + k, dq * u[k])
            myvals.add_derivative(1, 3 * ai + k, -dq * u[k])
