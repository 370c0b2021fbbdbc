from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable

import numpy as np

from .neighborlist import NeighborList, rebuild_due
from .trace import RebuildTraceLogger

PositionProvider = Callable[[np.ndarray], np.ndarray]


@dataclass
class StepResult:
    step: int
    rebuilt: bool
    atoms: np.ndarray      # ids the positions are ordered by
    positions: np.ndarray  # (len(atoms), 3)


@dataclass
class PairAction:
    """Owning action of a neighbor list.

    On rebuild steps the full atom list is requested and the list updated;
    otherwise only the reduced atom list is requested and the close pairs
    from the last rebuild are reused.  ``provider(ids)`` must return the
    positions of ``ids`` in that order.
    """

    nl: NeighborList
    provider: PositionProvider
    trace: RebuildTraceLogger | None = None
    n_rebuilds: int = 0
    _first: bool = field(default=True, repr=False)

    def requested_atoms(self, step: int) -> tuple[np.ndarray, bool]:
        if rebuild_due(self.nl, step, first=self._first):
            return self.nl.get_full_atom_list(), True
        return self.nl.get_reduced_atom_list(), False

    def evaluate(self, step: int) -> StepResult:
        atoms, rebuild = self.requested_atoms(step)
        positions = np.asarray(self.provider(atoms), dtype=float)
        if rebuild:
            self.nl.update(positions)
            self.nl.set_last_update(step)
            self.n_rebuilds += 1
            self._first = False
        if self.trace is not None:
            self.trace.log(
                step=step,
                event="rebuild" if rebuild else "reuse",
                n_candidates=self.nl.n_candidates(),
                n_active=self.nl.size(),
                n_reduced=self.nl.n_reduced(),
            )
        return StepResult(step=int(step), rebuilt=rebuild, atoms=atoms, positions=positions)
