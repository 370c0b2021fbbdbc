from __future__ import annotations

import json

from .cli_parser import build_parser
from .config import load_config
from .parallel import MPIComm
from .runner import describe, run_pipeline


def _cmd_inspect(args) -> None:
    cfg = load_config(args.config)
    print(json.dumps(describe(cfg), indent=2, sort_keys=True))


def _cmd_run(args) -> None:
    cfg = load_config(args.config)
    comm = MPIComm() if args.mpi else None
    summary = run_pipeline(
        cfg,
        n_steps=args.steps,
        workers=args.workers,
        trace_path=args.trace,
        comm=comm,
    )
    if comm is None or comm.rank == 0:
        print(json.dumps(summary, indent=2, sort_keys=True))
        if args.trace:
            print(f"[trace] wrote {args.trace}")


def main(argv=None) -> None:
    p = build_parser(cmd_run=_cmd_run, cmd_inspect=_cmd_inspect)
    args = p.parse_args(argv)
    func = getattr(args, "func", None)
    if func is None:
        raise SystemExit(f"unsupported cmd: {getattr(args, 'cmd', None)}")
    func(args)


if __name__ == "__main__":
    main()
