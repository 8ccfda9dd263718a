from __future__ import annotations

import threading
import time
from typing import Optional


class Ticker:
    """Fixed-rate ticker that can be interrupted by a cancellation event.

    Ticks fall on multiples of ``interval`` after construction; ticks missed
    while the caller was busy are dropped rather than queued up."""

    def __init__(self, interval: float, start: Optional[float] = None) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self._interval = interval
        self._next = (time.monotonic() if start is None else start) + interval

    def wait(self, cancel: threading.Event) -> bool:
        """Block until the next tick. Returns False if cancelled first."""
        now = time.monotonic()
        if self._next <= now:
            missed = int((now - self._next) // self._interval)
            self._next += missed * self._interval
        if cancel.wait(max(self._next - now, 0.0)):
            return False
        self._next += self._interval
        return True
