from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict

import numpy as np

from .action import PairAction
from .adjmat import AdjacencyMatrixStore
from .config import Config
from .contact_matrix import ContactMatrix
from .graph import cluster_sizes
from .neighborlist import NeighborList
from .parallel import Communicator
from .pbc import Box, init_positions
from .switching import RationalSwitch
from .trace import RebuildTraceLogger


@dataclass
class FrameState:
    r: np.ndarray
    t: int = 0


@dataclass
class Pipeline:
    box: Box
    nl: NeighborList
    matrix: ContactMatrix
    store: AdjacencyMatrixStore


def build_pipeline(cfg: Config) -> Pipeline:
    box = Box.from_lengths(cfg.system.box)
    nlc = cfg.neighbor_list
    group_a = np.arange(cfg.system.n_atoms) if nlc.group_a is None else np.asarray(nlc.group_a)
    nl = NeighborList(
        group_a, nlc.group_b,
        pair=nlc.pair, pbc=nlc.pbc, box=box, cutoff=nlc.cutoff, stride=nlc.stride,
    )
    mc = cfg.matrix
    switch = RationalSwitch(r0=mc.r0, d0=mc.d0, nn=mc.nn, mm=mc.mm)
    cm = ContactMatrix(
        switch, len(group_a), None if nlc.group_b is None else len(nlc.group_b),
        symmetric=mc.symmetric, box=box, pbc=nlc.pbc, neighbor_list=nl,
    )
    if (mc.nrows, mc.ncols) != (cm.nrows, cm.ncols):
        raise ValueError(
            f"matrix is {mc.nrows}x{mc.ncols} but the groups give {cm.nrows}x{cm.ncols}"
        )
    store = AdjacencyMatrixStore(
        cm, mc.nrows, mc.ncols,
        symmetric=mc.symmetric, hbonds=mc.hbonds,
        n_derivatives=cm.get_number_of_derivatives(), tolerance=mc.tolerance,
    )
    return Pipeline(box=box, nl=nl, matrix=cm, store=store)


def describe(cfg: Config) -> Dict[str, Any]:
    p = build_pipeline(cfg)
    return {
        "n_atoms": cfg.system.n_atoms,
        "pair_scheme": p.nl.pairs.scheme,
        "n_candidates": p.nl.n_candidates(),
        "n_slots": p.store.get_number_of_stored_values(),
        "symmetric": p.store.is_symmetric(),
        "undirected": p.store.undirected_graph(),
        "stride": p.nl.get_stride(),
    }


def run_pipeline(cfg: Config, *, n_steps: int | None = None, workers: int | None = None,
                 trace_path: str = "", comm: Communicator | None = None) -> Dict[str, Any]:
    """Random-walk the particles and evaluate the contact graph every step."""
    p = build_pipeline(cfg)
    steps = cfg.run.n_steps if n_steps is None else int(n_steps)
    n_workers = cfg.run.workers if workers is None else int(workers)
    rank = 0 if comm is None else int(comm.rank)

    state = FrameState(r=init_positions(cfg.system.n_atoms, p.box, seed=cfg.system.seed))
    rng = np.random.default_rng(cfg.system.seed + 1234)

    def provider(ids: np.ndarray) -> np.ndarray:
        return state.r[ids]

    trace = RebuildTraceLogger(trace_path, rank=rank, enabled=bool(trace_path))
    action = PairAction(nl=p.nl, provider=provider, trace=trace)
    n_edges = 0
    sizes: list[int] = []
    try:
        for step in range(steps):
            if step > 0:
                amp = float(cfg.run.displacement)
                state.r = p.box.wrap(state.r + rng.uniform(-amp, amp, size=state.r.shape))
            state.t = step
            action.evaluate(step)
            p.matrix.set_positions(state.r[p.nl.get_full_atom_list()])
            p.store.recompute(comm=comm, n_workers=n_workers)
            if p.store.undirected_graph():
                n_edges, _ = p.store.retrieve_edge_list()
                nneigh, adj = p.store.retrieve_adjacency_lists()
                sizes = cluster_sizes(nneigh, adj)
            trace.log(
                step=step,
                event="matrix",
                n_candidates=p.store.get_number_of_stored_values(),
                n_active=int(p.store.store.active_slots().size),
                n_edges=n_edges,
            )
    finally:
        trace.close()

    return {
        "steps": steps,
        "workers": n_workers,
        "n_rebuilds": action.n_rebuilds,
        "last_update": p.nl.get_last_update(),
        "n_close_pairs": p.nl.size(),
        "n_active_slots": int(p.store.store.active_slots().size),
        "n_edges": int(n_edges),
        "cluster_sizes": sizes,
    }
