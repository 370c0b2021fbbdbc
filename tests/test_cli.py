from __future__ import annotations

import json
from pathlib import Path

import pytest

from cvgraph.config import load_config
from cvgraph.main import main
from cvgraph.runner import build_pipeline, run_pipeline

_CFG = """
system:
  n_atoms: 12
  box: 4.0
  seed: 3
neighbor_list:
  cutoff: 1.9
  stride: 2
matrix:
  symmetric: true
  r0: 1.0
run:
  n_steps: 4
  displacement: 0.1
"""


@pytest.fixture
def cfg_path(tmp_path: Path) -> str:
    p = tmp_path / "cfg.yaml"
    p.write_text(_CFG, encoding="utf-8")
    return str(p)


def test_inspect_prints_layout(cfg_path, capsys):
    main(["inspect", cfg_path])
    out = json.loads(capsys.readouterr().out)
    assert out["n_candidates"] == 66
    assert out["n_slots"] == 66
    assert out["pair_scheme"] == "triangle"
    assert out["symmetric"] is True
    assert out["stride"] == 2


def test_run_writes_trace(cfg_path, tmp_path: Path, capsys):
    trace = tmp_path / "trace.csv"
    main(["run", cfg_path, "--steps", "3", "--trace", str(trace)])
    out = capsys.readouterr().out
    summary = json.loads(out[: out.rindex("}") + 1])
    assert summary["steps"] == 3
    assert summary["n_rebuilds"] == 2
    assert summary["last_update"] == 2
    assert sum(summary["cluster_sizes"]) == 12
    assert "[trace] wrote" in out
    lines = trace.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 1 + 6


def test_run_is_independent_of_worker_count(cfg_path):
    cfg = load_config(cfg_path)
    one = run_pipeline(cfg, workers=1)
    many = run_pipeline(cfg, workers=5)
    one.pop("workers")
    many.pop("workers")
    assert one == many


def test_edges_match_close_pairs_below_cutoff(cfg_path):
    cfg = load_config(cfg_path)
    summary = run_pipeline(cfg, n_steps=1)
    # every stored edge must come from a close pair of the neighbor list
    assert summary["n_edges"] <= summary["n_close_pairs"]
    assert summary["n_active_slots"] == summary["n_edges"]


def test_matrix_size_mismatch_rejected(cfg_path):
    cfg = load_config(cfg_path)
    cfg.matrix.symmetric = False
    cfg.matrix.ncols = 5
    with pytest.raises(ValueError, match="groups give"):
        build_pipeline(cfg)
