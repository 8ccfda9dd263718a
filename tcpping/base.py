from __future__ import annotations

import threading
import time
from abc import ABC, abstractmethod
from typing import Optional

from .errors import ProbeError, ProbeTimeout
from .log import get_logger
from .models import ProbeEvent, StatsSnapshot, Target, TaskDefinition, TaskState
from .resolver import DnsRefreshPolicy
from .sinks import EventSink

log = get_logger("prober")


class BaseProber(ABC):
    """Runs one probe cycle per attempt for a single task.

    A cycle is: DNS refresh check, stats snapshot when due, ``dial()``,
    latency clamping, ``record()`` and the probe event. Subclasses only
    implement ``dial``.
    """

    def __init__(
        self,
        task: TaskDefinition,
        state: TaskState,
        sink: EventSink,
        dns_policy: DnsRefreshPolicy,
    ) -> None:
        self.task = task
        self.state = state
        self.sink = sink
        self._dns_policy = dns_policy

    @property
    def interval(self) -> float:
        return self.task.params.interval

    def run(self, attempt: int, cancel: Optional[threading.Event] = None) -> ProbeEvent:
        cancel = cancel or threading.Event()
        target = self.before_probing(attempt)

        error: Optional[ProbeError] = None
        start = time.perf_counter()
        try:
            self.dial(target, self.task.params.timeout, cancel)
        except ProbeError as exc:
            error = exc
        latency_ms = self.clamp_latency((time.perf_counter() - start) * 1000.0, error)

        return self.after_probing(attempt, target, latency_ms, error)

    def before_probing(self, attempt: int) -> Target:
        update = self._dns_policy.check(self.state, attempt)
        if update.required:
            self.sink.on_dns_update(self.task, update)

        stats_interval = self.task.params.stats_interval
        if attempt > 1 and attempt % stats_interval == 1:
            self.print_stats()

        return self.state.target

    def after_probing(
        self,
        attempt: int,
        target: Target,
        latency_ms: float,
        error: Optional[ProbeError],
    ) -> ProbeEvent:
        engine = self.state.stats
        engine.record(attempt, latency_ms, error)

        event = ProbeEvent(
            attempt=attempt,
            target=target,
            latency_ms=latency_ms,
            delta_ms=engine.stats.delta_latency,
            error=error,
        )
        if error is None:
            log.debug("%s #%d @%s %.3fms", self.task.host, attempt, target, latency_ms)
        else:
            log.debug("%s #%d @%s failed after %.3fms: %s", self.task.host, attempt, target, latency_ms, error)
        self.sink.on_probe(self.task, event)
        return event

    def clamp_latency(self, latency_ms: float, error: Optional[ProbeError]) -> float:
        """Keep recorded latency within ``[0, timeout]``."""
        timeout_ms = float(self.task.params.timeout_ms)
        if isinstance(error, ProbeTimeout) or latency_ms >= timeout_ms:
            return timeout_ms
        return max(latency_ms, 0.0)

    def print_stats(self) -> StatsSnapshot:
        snapshot = self.state.stats.snapshot()
        self.sink.on_stats(self.task, snapshot)
        return snapshot

    @abstractmethod
    def dial(self, target: Target, timeout: float, cancel: threading.Event) -> None:
        """Establish and immediately close one connection, raising ProbeError on failure."""
        ...
