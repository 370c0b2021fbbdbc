from __future__ import annotations

from typing import List, Protocol, Tuple

import numpy as np

from .constants import WEIGHT_TOLERANCE
from .dynamic_list import ActiveList
from .multivalue import MultiValue
from .pairs import n_triangle_pairs, triangular_index
from .parallel import Communicator, merge_buffers, partition_map_reduce, striped
from .store import SlotValueStore


class MatrixProducer(Protocol):
    """Action that computes the elements of an adjacency matrix.

    Element ``slot`` is computed into a two-value workspace: value 0 is the
    weight, value 1 the weighted quantity.  Task ``k`` must decode to the
    matrix element stored in slot ``k``.

    A producer may also define ``get_candidate_tasks()`` returning the tasks
    that can be nonzero; the store then skips every other task.
    """

    weight_has_derivatives: bool

    def get_number_of_nodes(self) -> int: ...
    def get_task_code(self, slot: int) -> int: ...
    def decode_index_to_atoms(self, code: int) -> Tuple[int, int]: ...
    def recalculate_matrix_element(self, slot: int, myvals: MultiValue) -> None: ...


class AdjacencyMatrixStore:
    """Storage of an adjacency matrix in dense or triangular slots.

    ``symmetric`` stores one slot per unordered pair; ``hbonds`` stores every
    ordered pair but treats the matrix as an undirected graph.  Both require a
    square matrix.
    """

    def __init__(self, function: MatrixProducer, nrows: int, ncols: int, *,
                 symmetric: bool = False, hbonds: bool = False,
                 n_derivatives: int = 0, tolerance: float = WEIGHT_TOLERANCE):
        nrows = int(nrows)
        ncols = int(ncols)
        if nrows < 1 or ncols < 1:
            raise ValueError("NROWS and NCOLS must be positive")
        if symmetric and hbonds:
            raise ValueError("matrix should be either symmetric or hbonds")
        if symmetric and nrows != ncols:
            raise ValueError("matrix is supposed to be symmetric but nrows!=ncols")
        if hbonds and nrows != ncols:
            raise ValueError("matrix is supposed to be hbonds but nrows!=ncols")
        if symmetric and int(function.get_number_of_nodes()) != nrows:
            raise ValueError(
                f"symmetric matrix has {nrows} rows but the producer has "
                f"{function.get_number_of_nodes()} nodes"
            )
        self.function = function
        self.nrows = nrows
        self.ncols = ncols
        self.symmetric = bool(symmetric)
        self.hbonds = bool(hbonds)
        self.store = SlotValueStore(
            self.get_number_of_stored_values(), n_values=2,
            n_derivatives=n_derivatives, tolerance=tolerance,
        )

    # -- layout --------------------------------------------------------------

    def is_symmetric(self) -> bool:
        return self.symmetric

    def undirected_graph(self) -> bool:
        return self.symmetric or self.hbonds

    def get_matrix_action(self) -> MatrixProducer:
        return self.function

    def get_number_of_stored_values(self) -> int:
        if self.symmetric:
            return n_triangle_pairs(self.nrows)
        return self.nrows * self.ncols

    def get_store_index_from_matrix_indices(self, ielem: int, jelem: int) -> int:
        if not self.symmetric:
            return self.ncols * int(ielem) + int(jelem)
        return triangular_index(ielem, jelem)

    def get_matrix_indices(self, code: int) -> Tuple[int, int]:
        i, j = self.function.decode_index_to_atoms(self.function.get_task_code(code))
        return int(i), int(j)

    def get_store_index(self, myelem: int) -> int:
        i, j = self.get_matrix_indices(myelem)
        return self.get_store_index_from_matrix_indices(i, j)

    # -- computation ---------------------------------------------------------

    def recalculate_stored_quantity(self, myelem: int, myvals: MultiValue) -> None:
        self.function.recalculate_matrix_element(myelem, myvals)

    def get_candidate_tasks(self) -> np.ndarray:
        """Tasks worth computing: all of them unless the producer narrows the set."""
        narrow = getattr(self.function, "get_candidate_tasks", None)
        if narrow is None:
            return np.arange(self.get_number_of_stored_values(), dtype=np.int64)
        return np.asarray(narrow(), dtype=np.int64)

    def _kernel(self, myvals: MultiValue, tasks: np.ndarray):
        def run(k: int, buffers) -> None:
            task = int(tasks[k])
            myvals.clear_all()
            self.recalculate_stored_quantity(task, myvals)
            if myvals.values.any() or myvals.get_number_active():
                SlotValueStore.accumulate(buffers, self.get_store_index(task), myvals)
        return run

    def recompute(self, comm: Communicator | None = None, n_workers: int = 1) -> None:
        """Recompute every candidate element and refresh the active-slot set.

        With a communicator spanning several ranks each rank computes its
        stripe of the candidate tasks; values are summed and derivative rows
        gathered across ranks.  Otherwise the stripes of ``n_workers`` local
        workers are merged.
        """
        tasks = self.get_candidate_tasks()
        myvals = MultiValue(2, self.store.n_derivatives)
        kernel = self._kernel(myvals, tasks)
        if comm is not None and int(comm.size) > 1:
            values, rows = self.store.new_buffers()
            for k in striped(tasks.size, comm.rank, comm.size):
                kernel(k, (values, rows))
            comm.sum(values)
            rows = merge_buffers([[part] for part in comm.allgather(rows)])[0]
            buffers = [values, rows]
        else:
            buffers = partition_map_reduce(tasks.size, kernel, self.store.new_buffers, n_workers)
        self.store.load(*buffers)
        self.store.finalize()

    # -- extraction ----------------------------------------------------------

    def retrieve_matrix(self, myactive_elements: ActiveList, mymatrix: np.ndarray) -> np.ndarray:
        myactive_elements.deactivate_all()
        for i in self.store.active_slots().tolist():
            myactive_elements.activate(i)
            k, j = self.get_matrix_indices(i)
            vals = self.store.retrieve_value(i, False)
            mymatrix[k, j] = vals[1] / vals[0]
            if self.symmetric:
                mymatrix[j, k] = mymatrix[k, j]
        myactive_elements.update_active_members()
        return mymatrix

    def retrieve_adjacency_lists(self, nneigh: np.ndarray | None = None,
                                 adj_list: np.ndarray | None = None) -> Tuple[np.ndarray, np.ndarray]:
        assert self.undirected_graph(), "adjacency lists need a symmetric or hbonds matrix"
        nnodes = self.nrows
        if nneigh is None:
            nneigh = np.zeros(nnodes, dtype=np.int64)
        if adj_list is None:
            # an hbonds matrix may hold both (i, j) and (j, i)
            width = nnodes if self.symmetric else 2 * nnodes
            adj_list = np.zeros((nnodes, width), dtype=np.int64)
        nneigh[:] = 0
        for i in self.store.active_slots().tolist():
            k, j = self.get_matrix_indices(i)
            adj_list[k, nneigh[k]] = j
            nneigh[k] += 1
            adj_list[j, nneigh[j]] = k
            nneigh[j] += 1
        return nneigh, adj_list

    def retrieve_edge_list(self) -> Tuple[int, List[Tuple[int, int]]]:
        assert self.undirected_graph(), "edge lists need a symmetric or hbonds matrix"
        edges = [self.get_matrix_indices(i) for i in self.store.active_slots().tolist()]
        return len(edges), edges

    def retrieve_derivatives(self, myelem: int, normed: bool, myvals: MultiValue) -> None:
        self.store.retrieve_derivatives(myelem, normed, myvals)
        if not self.function.weight_has_derivatives:
            return
        vals = self.store.retrieve_value(myelem, False)
        pref = vals[1] / (vals[0] * vals[0])
        for jder in myvals.active_list():
            myvals.set_derivative(
                1, jder, myvals.get_derivative(1, jder) / vals[0] - pref * myvals.get_derivative(0, jder)
            )
