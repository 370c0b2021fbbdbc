from __future__ import annotations
import csv
import os
import time
import warnings

_EVENTS = ("rebuild", "reuse", "matrix")


class RebuildTraceLogger:
    """CSV trace of neighbor-list rebuilds and adjacency-matrix recomputes."""

    COLUMNS = [
        "wall_time", "rank", "step", "event",
        "n_candidates", "n_active", "n_reduced", "n_edges",
    ]

    def __init__(self, path: str, *, rank: int = 0, enabled: bool = True):
        self.enabled = bool(enabled)
        self.rank = int(rank)
        self.start = time.perf_counter()
        self.path = path
        self.rows_written = 0
        if not self.enabled:
            self._f = None
            self._w = None
            return
        os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
        self._f = open(path, "w", newline="", encoding="utf-8")
        self._w = csv.writer(self._f)
        self._w.writerow(self.COLUMNS)
        self._f.flush()

    def log(self, *, step: int, event: str, n_candidates: int = 0, n_active: int = 0,
            n_reduced: int = 0, n_edges: int = 0):
        if not self.enabled or self._w is None:
            return
        if event not in _EVENTS:
            raise ValueError(f"unknown trace event {event!r}; expected one of {_EVENTS}")
        wall = time.perf_counter() - self.start
        self._w.writerow([
            f"{wall:.6f}",
            int(self.rank),
            int(step),
            str(event),
            int(n_candidates),
            int(n_active),
            int(n_reduced),
            int(n_edges),
        ])
        self._f.flush()
        self.rows_written += 1

    def close(self):
        try:
            if self._f is not None:
                self._f.close()
        except OSError as exc:
            warnings.warn(
                f"RebuildTraceLogger.close() failed for {self.path!r}: {exc!r}",
                RuntimeWarning,
            )

    def __enter__(self) -> "RebuildTraceLogger":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
