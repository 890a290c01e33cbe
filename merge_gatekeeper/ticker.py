"""A ticker whose first tick arrives immediately."""

from __future__ import annotations

import threading
import time


class InstantTicker:
    """Ticks once at once, then every ``interval`` seconds until stopped."""

    def __init__(self, interval: float) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self._interval = float(interval)
        self._start = time.monotonic()
        self._delivered = 0
        self._instant_pending = True
        self._stopped = threading.Event()
        self._lock = threading.Lock()

    def tick(self, timeout: float | None = None) -> float | None:
        """Wait for the next tick and return its wall-clock time.

        Returns None if the ticker is stopped, or if no tick arrives within
        ``timeout`` seconds.
        """
        with self._lock:
            if self._stopped.is_set():
                return None
            if self._instant_pending:
                self._instant_pending = False
                return time.time()
            due = self._start + (self._delivered + 1) * self._interval

        wait = max(due - time.monotonic(), 0.0)
        if timeout is not None and timeout < wait:
            self._stopped.wait(max(timeout, 0.0))
            return None
        if self._stopped.wait(wait):
            return None

        with self._lock:
            if self._stopped.is_set():
                return None
            elapsed = time.monotonic() - self._start
            # Ticks missed by a slow reader are dropped, not queued.
            self._delivered = max(self._delivered + 1, int(elapsed // self._interval))
        return time.time()

    def stop(self) -> None:
        """Stop the ticker; safe to call more than once."""
        self._stopped.set()

    def __enter__(self) -> InstantTicker:
        return self

    def __exit__(self, *args: object) -> None:
        self.stop()