from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
import yaml

from .constants import DEFAULT_CUTOFF, WEIGHT_TOLERANCE

_SECTIONS = {"system", "neighbor_list", "matrix", "run"}
_NL_KEYS = {"group_a", "group_b", "pair", "pbc", "cutoff", "stride"}
_MATRIX_KEYS = {"nrows", "ncols", "symmetric", "hbonds", "r0", "d0", "nn", "mm", "tolerance"}


@dataclass
class SystemConfig:
    n_atoms: int
    box: List[float] = field(default_factory=lambda: [0.0, 0.0, 0.0])
    seed: int = 1


@dataclass
class NeighborListConfig:
    group_a: Optional[List[int]] = None
    group_b: Optional[List[int]] = None
    pair: bool = False
    pbc: bool = True
    cutoff: float = DEFAULT_CUTOFF
    stride: int = 0


@dataclass
class MatrixConfig:
    nrows: int
    ncols: int
    symmetric: bool = False
    hbonds: bool = False
    r0: float = 1.0
    d0: float = 0.0
    nn: int = 6
    mm: int = 12
    tolerance: float = WEIGHT_TOLERANCE


@dataclass
class RunConfig:
    n_steps: int = 10
    displacement: float = 0.05
    workers: int = 1


@dataclass
class Config:
    system: SystemConfig
    neighbor_list: NeighborListConfig
    matrix: MatrixConfig
    run: RunConfig


def _check_keys(section: Any, key: str, allowed: set) -> dict:
    if section is None:
        return {}
    if not isinstance(section, dict):
        raise ValueError(f"{key} must be a mapping")
    extra = sorted(set(section.keys()) - allowed)
    if extra:
        raise ValueError(f"{key} contains unsupported keys: {extra}")
    return section


def _parse_box(raw: Any) -> List[float]:
    if raw is None:
        return [0.0, 0.0, 0.0]
    if isinstance(raw, (int, float)):
        return [float(raw)] * 3
    vals = [float(x) for x in raw]
    if len(vals) != 3:
        raise ValueError("system.box must be a scalar or a list of 3 lengths")
    if any(v < 0.0 for v in vals):
        raise ValueError("system.box lengths must be non-negative")
    return vals


def _parse_group(raw: Any, key: str) -> Optional[List[int]]:
    if raw is None:
        return None
    if not isinstance(raw, (list, tuple)):
        raise ValueError(f"{key} must be a list of atom ids")
    return [int(x) for x in raw]


def validate_matrix(m: MatrixConfig) -> None:
    if m.nrows < 1 or m.ncols < 1:
        raise ValueError("matrix.nrows and matrix.ncols must be positive")
    if m.symmetric and m.hbonds:
        raise ValueError("matrix.symmetric and matrix.hbonds are mutually exclusive")
    if (m.symmetric or m.hbonds) and m.nrows != m.ncols:
        raise ValueError("matrix.symmetric/matrix.hbonds require nrows == ncols")
    if m.r0 <= 0.0:
        raise ValueError("matrix.r0 must be positive")
    if m.nn < 1 or m.mm < 1 or m.nn == m.mm:
        raise ValueError("matrix.nn and matrix.mm must be positive and different")
    if not m.tolerance >= 0.0:
        raise ValueError("matrix.tolerance must be >= 0")


def parse_config(d: Dict[str, Any]) -> Config:
    if not isinstance(d, dict):
        raise ValueError("config root must be a mapping")
    extra = sorted(set(d.keys()) - _SECTIONS)
    if extra:
        raise ValueError(f"config contains unsupported sections: {extra}")
    if "system" not in d:
        raise ValueError("config requires a system section")

    sysd = _check_keys(d["system"], "system", {"n_atoms", "box", "seed"})
    if "n_atoms" not in sysd:
        raise ValueError("system.n_atoms is required")
    system = SystemConfig(
        n_atoms=int(sysd["n_atoms"]),
        box=_parse_box(sysd.get("box", None)),
        seed=int(sysd.get("seed", 1)),
    )
    if system.n_atoms < 1:
        raise ValueError("system.n_atoms must be >= 1")

    nl = _check_keys(d.get("neighbor_list", None), "neighbor_list", _NL_KEYS)
    nlc = NeighborListConfig(
        group_a=_parse_group(nl.get("group_a", None), "neighbor_list.group_a"),
        group_b=_parse_group(nl.get("group_b", None), "neighbor_list.group_b"),
        pair=bool(nl.get("pair", False)),
        pbc=bool(nl.get("pbc", True)),
        cutoff=float(nl.get("cutoff", DEFAULT_CUTOFF)),
        stride=int(nl.get("stride", 0)),
    )
    if nlc.cutoff <= 0.0:
        raise ValueError("neighbor_list.cutoff must be positive")
    if nlc.stride < 0:
        raise ValueError("neighbor_list.stride must be >= 0")
    for key, grp in (("group_a", nlc.group_a), ("group_b", nlc.group_b)):
        if grp is not None and any(i < 0 or i >= system.n_atoms for i in grp):
            raise ValueError(f"neighbor_list.{key} contains ids outside [0, {system.n_atoms})")

    n_a = system.n_atoms if nlc.group_a is None else len(nlc.group_a)
    mat = _check_keys(d.get("matrix", None), "matrix", _MATRIX_KEYS)
    default_cols = n_a if nlc.group_b is None else len(nlc.group_b)
    mc = MatrixConfig(
        nrows=int(mat.get("nrows", n_a)),
        ncols=int(mat.get("ncols", default_cols)),
        symmetric=bool(mat.get("symmetric", False)),
        hbonds=bool(mat.get("hbonds", False)),
        r0=float(mat.get("r0", 1.0)),
        d0=float(mat.get("d0", 0.0)),
        nn=int(mat.get("nn", 6)),
        mm=int(mat.get("mm", 12)),
        tolerance=float(mat.get("tolerance", WEIGHT_TOLERANCE)),
    )
    validate_matrix(mc)

    run = _check_keys(d.get("run", None), "run", {"n_steps", "displacement", "workers"})
    rc = RunConfig(
        n_steps=int(run.get("n_steps", 10)),
        displacement=float(run.get("displacement", 0.05)),
        workers=int(run.get("workers", 1)),
    )
    if rc.n_steps < 0:
        raise ValueError("run.n_steps must be >= 0")
    if rc.workers < 1:
        raise ValueError("run.workers must be >= 1")

    return Config(system=system, neighbor_list=nlc, matrix=mc, run=rc)


def load_config(path: str) -> Config:
    with open(path, "r", encoding="utf-8") as f:
        d = yaml.safe_load(f)
    return parse_config(d)
