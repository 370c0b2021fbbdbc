from __future__ import annotations

import numpy as np
import pytest

from cvgraph.adjmat import AdjacencyMatrixStore
from cvgraph.contact_matrix import ContactMatrix
from cvgraph.dynamic_list import ActiveList
from cvgraph.multivalue import MultiValue
from cvgraph.neighborlist import NeighborList
from cvgraph.pbc import Box
from cvgraph.switching import RationalSwitch

_R = np.array([[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [0.0, 1.2, 0.0]])


def _symmetric(nl=None, r=_R):
    cm = ContactMatrix(RationalSwitch(r0=1.5), 3, symmetric=True, pbc=False, neighbor_list=nl)
    cm.set_positions(r)
    st = AdjacencyMatrixStore(cm, 3, 3, symmetric=True,
                              n_derivatives=cm.get_number_of_derivatives())
    return cm, st


def test_normalized_elements_are_contact_distances():
    _, st = _symmetric()
    st.recompute()
    mat = np.zeros((3, 3))
    st.retrieve_matrix(ActiveList(3), mat)
    assert mat[0, 1] == pytest.approx(1.0)
    assert mat[0, 2] == pytest.approx(1.2)
    assert mat[1, 2] == pytest.approx(np.hypot(1.0, 1.2))
    assert np.allclose(mat, mat.T)
    nedge, _ = st.retrieve_edge_list()
    assert nedge == 3


def test_derivative_of_normalized_element_is_unit_vector():
    cm, st = _symmetric()
    st.recompute()
    slot = st.get_store_index_from_matrix_indices(0, 2)
    mv = MultiValue(2, cm.get_number_of_derivatives())
    st.retrieve_derivatives(slot, False, mv)
    u = (_R[2] - _R[0]) / np.linalg.norm(_R[2] - _R[0])
    assert np.allclose(mv.derivatives[1, 6:9], u)
    assert np.allclose(mv.derivatives[1, 0:3], -u)
    assert np.allclose(mv.derivatives[1, 3:6], 0.0)


def test_weight_derivative_matches_finite_difference():
    cm, st = _symmetric()
    st.recompute()
    slot = st.get_store_index_from_matrix_indices(0, 1)
    w0 = st.store.retrieve_value(slot)[0]
    mv = MultiValue(2, cm.get_number_of_derivatives())
    st.store.retrieve_derivatives(slot, False, mv)
    h = 1e-6
    r = _R.copy()
    r[1, 0] += h
    cm.set_positions(r)
    st.recompute()
    w1 = st.store.retrieve_value(slot)[0]
    assert mv.get_derivative(0, 3) == pytest.approx((w1 - w0) / h, rel=1e-4)


def test_neighbor_list_masks_far_pairs():
    nl = NeighborList([0, 1, 2], pbc=False, cutoff=1.1)
    nl.update(_R)
    _, st = _symmetric(nl=nl)
    st.recompute()
    nedge, edges = st.retrieve_edge_list()
    assert nedge == 1
    assert tuple(sorted(edges[0])) == (0, 1)


def test_neighbor_list_groups_must_match():
    nl = NeighborList([0, 1, 2, 3], pbc=False)
    with pytest.raises(ValueError, match="groups"):
        ContactMatrix(RationalSwitch(r0=1.0), 3, symmetric=True, neighbor_list=nl)


def test_two_group_general_matrix():
    ra = np.array([[0.0, 0.0, 0.0], [5.0, 0.0, 0.0]])
    rb = np.array([[0.5, 0.0, 0.0], [5.0, 0.8, 0.0], [20.0, 0.0, 0.0]])
    sw = RationalSwitch(r0=1.0, d_max=3.0)
    cm = ContactMatrix(sw, 2, 3, pbc=False)
    assert cm.get_number_of_tasks() == 6
    assert cm.decode_index_to_atoms(4) == (1, 1)
    cm.set_positions(np.vstack([ra, rb]))
    st = AdjacencyMatrixStore(cm, 2, 3, n_derivatives=cm.get_number_of_derivatives())
    st.recompute()
    mat = np.zeros((2, 3))
    st.retrieve_matrix(ActiveList(6), mat)
    assert mat[0, 0] == pytest.approx(0.5)
    assert mat[1, 1] == pytest.approx(0.8)
    assert np.count_nonzero(mat) == 2


def test_two_group_pair_mode_neighbor_list_mask():
    r = np.array([[0.0, 0.0, 0.0], [2.0, 0.0, 0.0], [0.5, 0.0, 0.0], [2.0, 3.0, 0.0]])
    nl = NeighborList([0, 1], [2, 3], pair=True, pbc=False, cutoff=1.0)
    nl.update(r)
    cm = ContactMatrix(RationalSwitch(r0=1.0), 2, 2, pbc=False, neighbor_list=nl)
    cm.set_positions(r)
    st = AdjacencyMatrixStore(cm, 2, 2, hbonds=True, n_derivatives=cm.get_number_of_derivatives())
    st.recompute()
    nedge, edges = st.retrieve_edge_list()
    assert nedge == 1 and edges == [(0, 0)]


def test_periodic_contact():
    box = Box.from_lengths(10.0)
    r = np.array([[0.2, 0.0, 0.0], [9.8, 0.0, 0.0]])
    cm = ContactMatrix(RationalSwitch(r0=1.0), 2, symmetric=True, box=box, pbc=True)
    cm.set_positions(r)
    st = AdjacencyMatrixStore(cm, 2, 2, symmetric=True, n_derivatives=6)
    st.recompute()
    mat = np.zeros((2, 2))
    st.retrieve_matrix(ActiveList(1), mat)
    assert mat[0, 1] == pytest.approx(0.4)


def test_symmetric_contact_matrix_needs_one_group():
    with pytest.raises(ValueError):
        ContactMatrix(RationalSwitch(r0=1.0), 2, 2, symmetric=True)


def test_set_positions_shape_checked():
    cm = ContactMatrix(RationalSwitch(r0=1.0), 3, symmetric=True)
    with pytest.raises(ValueError):
        cm.set_positions(np.zeros((2, 3)))
    with pytest.raises(IndexError):
        cm.get_task_code(3)


class _CountingContactMatrix(ContactMatrix):
    def __init__(self, *args, **kw):
        super().__init__(*args, **kw)
        self.calls = 0

    def recalculate_matrix_element(self, slot, myvals):
        self.calls += 1
        super().recalculate_matrix_element(slot, myvals)


def test_sparse_system_keeps_derivative_storage_small():
    n = 150
    grid = np.indices((6, 5, 5)).reshape(3, -1).T.astype(float) * 2.0
    r = grid.copy()
    r[1] = [0.3, 0.0, 0.0]
    box = Box.from_lengths(20.0)
    nl = NeighborList(np.arange(n), box=box, cutoff=0.5)
    nl.update(r)
    assert nl.size() == 1
    cm = _CountingContactMatrix(RationalSwitch(r0=0.3), n, symmetric=True, box=box,
                                neighbor_list=nl)
    cm.set_positions(r)
    st = AdjacencyMatrixStore(cm, n, n, symmetric=True,
                              n_derivatives=cm.get_number_of_derivatives())
    st.recompute(n_workers=4)
    assert cm.calls == 1
    assert list(st.store.derivatives) == [0]
    assert st.store.derivative_nbytes() < 1000
    mat = np.zeros((n, n))
    st.retrieve_matrix(ActiveList(st.get_number_of_stored_values()), mat)
    assert mat[0, 1] == pytest.approx(0.3)
    assert np.count_nonzero(mat) == 2


def test_candidate_tasks_follow_neighbor_list():
    nl = NeighborList([0, 1, 2], [3, 4], pbc=False, cutoff=1.0)
    ra = np.array([[0.0, 0.0, 0.0], [5.0, 0.0, 0.0], [9.0, 0.0, 0.0]])
    rb = np.array([[5.5, 0.0, 0.0], [0.0, 0.5, 0.0]])
    r = np.vstack([ra, rb])
    nl.update(r)
    cm = ContactMatrix(RationalSwitch(r0=1.0), 3, 2, pbc=False, neighbor_list=nl)
    # (0, 1) and (1, 0) in row-major 3x2 task codes
    assert cm.get_candidate_tasks().tolist() == [1, 2]
    one = NeighborList([0, 1, 2], pbc=False, cutoff=1.0)
    one.update(np.array([[0.0, 0.0, 0.0], [0.5, 0.0, 0.0], [9.0, 0.0, 0.0]]))
    general = ContactMatrix(RationalSwitch(r0=1.0), 3, pbc=False, neighbor_list=one)
    assert general.get_candidate_tasks().tolist() == [1, 3]
    sym = ContactMatrix(RationalSwitch(r0=1.0), 3, symmetric=True, pbc=False, neighbor_list=one)
    assert sym.get_candidate_tasks().tolist() == [0]
