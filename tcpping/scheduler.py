from __future__ import annotations

import threading
from typing import Optional

from .base import BaseProber
from .jitter import JitterStrategy
from .log import get_logger
from .ticker import Ticker

log = get_logger("scheduler")


class Scheduler:
    """Drives one prober until cancelled.

    On every tick it waits a random jitter delay, bumps the attempt counter
    and runs one probe cycle. Probes for a task never overlap. When the
    cancellation event is set the loop stops, emits a final stats snapshot
    and returns the number of attempts made.
    """

    def __init__(self, prober: BaseProber, jitter: Optional[JitterStrategy] = None) -> None:
        self._prober = prober
        self._jitter = jitter or JitterStrategy()
        self._lock = threading.Lock()
        self._attempts = 0

    @property
    def prober(self) -> BaseProber:
        return self._prober

    @property
    def attempts(self) -> int:
        with self._lock:
            return self._attempts

    def _next_attempt(self) -> int:
        with self._lock:
            self._attempts += 1
            return self._attempts

    def run(self, cancel: threading.Event) -> int:
        interval = self._prober.interval
        ticker = Ticker(interval)
        log.info("probing %s every %ss", self._prober.task.raw, interval)
        try:
            while ticker.wait(cancel):
                if cancel.wait(self._jitter.get_delay(interval)):
                    break
                self._prober.run(self._next_attempt(), cancel)
        finally:
            self._prober.print_stats()
        return self.attempts
