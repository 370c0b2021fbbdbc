from __future__ import annotations

import argparse
from typing import Callable


def build_parser(*, cmd_run: Callable, cmd_inspect: Callable) -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="cvgraph")
    sub = p.add_subparsers(dest="cmd", required=True)

    pr = sub.add_parser("run")
    pr.add_argument("config", help="YAML config (system, neighbor_list, matrix, run)")
    pr.add_argument("--steps", type=int, default=None, help="Override run.n_steps")
    pr.add_argument("--workers", type=int, default=None, help="Override run.workers")
    pr.add_argument("--trace", default="", help="Rebuild trace CSV output path")
    pr.add_argument("--mpi", action="store_true", help="Stripe matrix elements over MPI ranks")
    pr.set_defaults(func=cmd_run)

    pi = sub.add_parser("inspect")
    pi.add_argument("config")
    pi.set_defaults(func=cmd_inspect)

    return p
