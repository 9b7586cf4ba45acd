"""Counts outstanding units of work and lets a caller wait for zero."""

from __future__ import annotations

import threading
from typing import Optional


class WorkTracker:

    def __init__(self):
        self._pending = 0
        self._cond = threading.Condition()

    @property
    def pending(self) -> int:
        with self._cond:
            return self._pending

    def add(self, n: int = 1):
        """Register n new units. Must happen before the work is started."""
        if n < 0:
            raise ValueError("use done() to release work")
        with self._cond:
            self._pending += n

    def done(self):
        with self._cond:
            if self._pending == 0:
                raise ValueError("done() called more times than add()")
            self._pending -= 1
            if self._pending == 0:
                self._cond.notify_all()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until nothing is pending. Returns False on timeout."""
        with self._cond:
            return self._cond.wait_for(lambda: self._pending == 0, timeout=timeout)
