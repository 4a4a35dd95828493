"""
Per-phase timing of a decomposition call.

A driver creates one PhaseTimer per call. The clock starts at
construction; each phase (input copy, workspace query, kernel compute) is
timed in a with-block, and a phase entered more than once, as the compute
phase is when the workspace is retried, accumulates.
"""

import time
from contextlib import contextmanager
from typing import Iterator


class PhaseTimer:
    """
    Wall-clock breakdown of one call.

    Usage:
        timer = PhaseTimer()
        with timer.phase('workspace_query'):
            info = kernel(job, m, n, a, ..., slot, -1)
        with timer.phase('compute'):
            info = kernel(job, m, n, a, ..., work, lwork)
        timer.stop()
        timer.result()
        # {'total_seconds': 0.05, 'workspace_query': 0.0001, 'compute': 0.049}
    """

    def __init__(self) -> None:
        self._origin = time.perf_counter()
        self._phases: dict[str, float] = {}
        self._entries: dict[str, int] = {}
        self._total: float | None = None

    @contextmanager
    def phase(self, name: str) -> Iterator[None]:
        """Time a named phase; time is recorded even if the block raises."""
        began = time.perf_counter()
        try:
            yield
        finally:
            self._phases[name] = self._phases.get(name, 0.0) + time.perf_counter() - began
            self._entries[name] = self._entries.get(name, 0) + 1

    def entries(self, name: str) -> int:
        """How many times a phase was entered."""
        return self._entries.get(name, 0)

    def stop(self) -> None:
        """Freeze the total. Later calls keep the first total."""
        if self._total is None:
            self._total = time.perf_counter() - self._origin

    def result(self) -> dict[str, float]:
        """
        Total and per-phase seconds.

        Raises:
            RuntimeError: If called before stop()
        """
        if self._total is None:
            raise RuntimeError("PhaseTimer.result() called before stop()")
        return {'total_seconds': self._total, **self._phases}
