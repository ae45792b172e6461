"""
Wall-clock timing helper used for the per-request "time cost" log lines.
"""

from __future__ import annotations

import time


class Stopwatch:
    """Monotonic stopwatch; usable directly or as a context manager.

    Usage::

        with Stopwatch() as sw:
            do_work()
        logger.info("Total time cost: %.6f (sec)", sw.elapsed)
    """

    def __init__(self) -> None:
        self._started: float | None = None
        self._stopped: float | None = None

    def start(self) -> "Stopwatch":
        self._started = time.perf_counter()
        self._stopped = None
        return self

    def stop(self) -> float:
        if self._started is None:
            raise RuntimeError("Stopwatch.stop() called before start().")
        self._stopped = time.perf_counter()
        return self.elapsed

    @property
    def elapsed(self) -> float:
        """Seconds since start (frozen once stopped); 0.0 if never started."""
        if self._started is None:
            return 0.0
        end = self._stopped if self._stopped is not None else time.perf_counter()
        return end - self._started

    def __enter__(self) -> "Stopwatch":
        return self.start()

    def __exit__(self, *exc_info) -> None:
        self.stop()
