"""Opt-in background reaper for expired cache entries.

The in-memory engine expires entries lazily: an expired entry stays in the
table until a read, delete, or ``expire`` touches its key.  Write-heavy,
read-rarely workloads can enable ``ExpirySweeper`` (memory option
``sweep_interval``) to bound that retention.

┌──────────────────────────────────────────────────────────────────┐
│  ExpirySweeper                                                   │
│                                                                  │
│   start()                                                        │
│      │                                                           │
│      ▼                                                           │
│   Daemon Thread (loop)                                           │
│      while not stop_event.wait(interval):                        │
│          removed = purge()                                       │
│          tick_count += 1; swept_total += removed                 │
│                                                                  │
│   stop()                                                         │
│      stop_event.set(); thread.join(timeout)                      │
└──────────────────────────────────────────────────────────────────┘

A failing sweep is logged and the loop keeps running.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from cachext.logging import get_logger

logger = get_logger(__name__)


class ExpirySweeper:
    """Periodically calls ``purge`` from a daemon thread.

    Example:
        >>> sweeper = ExpirySweeper(backend.purge_expired, interval_seconds=30.0)
        >>> sweeper.start()
        >>> # ... later ...
        >>> sweeper.stop()
    """

    def __init__(
        self,
        purge: Callable[[], int],
        interval_seconds: float,
        *,
        name: str = "cachext-sweeper",
        join_timeout: float = 5.0,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError(f"Sweep interval must be positive, got {interval_seconds}")

        self._purge = purge
        self._interval = interval_seconds
        self._name = name
        self._join_timeout = join_timeout
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._lock = threading.Lock()
        self._tick_count = 0
        self._swept_total = 0
        self._last_sweep: datetime | None = None

    def start(self) -> None:
        """Start the sweep loop. Starting a running sweeper is a no-op."""
        if self.is_running:
            logger.warning("sweeper_already_started", sweeper=self._name)
            return

        self._stop_event.clear()
        self._thread = threading.Thread(target=self._loop, daemon=True, name=self._name)
        self._thread.start()

    def _loop(self) -> None:
        logger.info("sweeper_started", sweeper=self._name, interval_seconds=self._interval)
        while not self._stop_event.wait(self._interval):
            self.sweep_once()
        logger.info("sweeper_stopped", sweeper=self._name)

    def sweep_once(self) -> int:
        """Run one purge now; returns how many entries were removed."""
        try:
            removed = self._purge()
        except Exception:
            logger.exception("sweep_failed", sweeper=self._name)
            return 0

        with self._lock:
            self._tick_count += 1
            self._swept_total += removed
            self._last_sweep = datetime.now(UTC)

        if removed:
            logger.debug("expired_entries_swept", sweeper=self._name, count=removed)
        return removed

    def stop(self) -> None:
        """Stop the loop, waiting up to ``join_timeout`` for an in-flight sweep."""
        thread = self._thread
        if thread is None:
            return

        self._stop_event.set()
        thread.join(timeout=self._join_timeout)
        if thread.is_alive():
            logger.warning("sweeper_stop_timeout", sweeper=self._name)
        self._thread = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def interval_seconds(self) -> float:
        return self._interval

    @property
    def tick_count(self) -> int:
        return self._tick_count

    @property
    def swept_total(self) -> int:
        return self._swept_total

    @property
    def last_sweep(self) -> datetime | None:
        return self._last_sweep

    def health(self) -> dict[str, Any]:
        """Snapshot of loop state for health endpoints."""
        with self._lock:
            return {
                "running": self.is_running,
                "interval_seconds": self._interval,
                "tick_count": self._tick_count,
                "swept_total": self._swept_total,
                "last_sweep": self._last_sweep.isoformat() if self._last_sweep else None,
            }


__all__ = ["ExpirySweeper"]
