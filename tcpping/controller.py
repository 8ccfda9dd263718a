from __future__ import annotations

import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Dict, List, Optional, Sequence

from .log import get_logger
from .scheduler import Scheduler

log = get_logger("controller")


class ProbeController:
    """Runs every task loop on its own worker thread.

    All loops share one cancellation event; ``wait()`` is the completion
    barrier and returns the attempt count per task descriptor.
    """

    def __init__(self, schedulers: Sequence[Scheduler], cancel: Optional[threading.Event] = None) -> None:
        self._schedulers = list(schedulers)
        self._cancel = cancel or threading.Event()
        self._executor: Optional[ThreadPoolExecutor] = None
        self._futures: List[Future] = []

    @property
    def cancel_event(self) -> threading.Event:
        return self._cancel

    def start(self) -> None:
        if self._executor is not None:
            raise RuntimeError("controller already started")
        self._executor = ThreadPoolExecutor(
            max_workers=max(1, len(self._schedulers)),
            thread_name_prefix="tcpping",
        )
        for scheduler in self._schedulers:
            self._futures.append(self._executor.submit(self._wrap_task, scheduler))

    def stop(self) -> None:
        """Signal every task loop to finish."""
        self._cancel.set()

    def wait(self) -> Dict[str, int]:
        """Block until every task loop has returned."""
        results: Dict[str, int] = {}
        if self._executor is None:
            return results
        for scheduler, fut in zip(self._schedulers, self._futures):
            results[scheduler.prober.task.raw] = fut.result()
        self._executor.shutdown(wait=True)
        return results

    def close(self) -> None:
        for scheduler in self._schedulers:
            scheduler.prober.sink.close()

    def _wrap_task(self, scheduler: Scheduler) -> int:
        raw = scheduler.prober.task.raw
        start = time.monotonic()
        try:
            count = scheduler.run(self._cancel)
        except Exception:  # noqa: BLE001
            log.exception("task loop for '%s' crashed", raw)
            return scheduler.attempts
        log.info("Probed '%s' %d times ( %.3fs )", raw, count, time.monotonic() - start)
        return count
