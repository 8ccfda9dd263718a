from __future__ import annotations

from dataclasses import asdict
import statistics
from typing import List, Optional, Sequence

from .models import Stats, StatsSnapshot


def skewness(samples: Sequence[float], mean: float, sigma: float) -> float:
    """Population skewness (third standardized moment).

    Defined as 0 for fewer than two samples or a flat sample.
    """
    n = len(samples)
    if n < 2 or sigma == 0.0:
        return 0.0
    m3 = sum((x - mean) ** 3 for x in samples) / n
    return m3 / sigma ** 3


class LatencyStats:
    """Fixed-window latency history plus running counters for one task.

    The window is a pre-allocated list of ``window_size`` slots written by a
    cursor that wraps around, so the oldest observation is overwritten once
    the window is full. Not thread-safe: only the owning loop touches it.
    """

    def __init__(self, window_size: int) -> None:
        if window_size < 1:
            raise ValueError("window_size must be positive")
        self._window: List[Optional[float]] = [None] * window_size
        self._cursor = 0
        self._filled = 0
        self._stats = Stats()

    @property
    def window_size(self) -> int:
        return len(self._window)

    @property
    def stats(self) -> Stats:
        return self._stats

    def samples(self) -> List[float]:
        """Return the populated part of the window, oldest first."""
        if self._filled < len(self._window):
            return list(self._window[: self._filled])
        return list(self._window[self._cursor :] + self._window[: self._cursor])

    def record(self, attempt: int, latency_ms: float, error: Optional[BaseException] = None) -> None:
        """Record the outcome of one attempt. Called exactly once per attempt."""
        self._window[self._cursor] = latency_ms
        self._cursor = (self._cursor + 1) % len(self._window)
        if self._filled < len(self._window):
            self._filled += 1

        stats = self._stats
        stats.delta_latency = stats.last_latency - latency_ms
        stats.last_latency = latency_ms
        # tied to attempt numbering, not to a separate execution counter
        stats.total_probes = attempt

        if latency_ms > stats.overall_max_latency:
            stats.overall_max_latency = latency_ms
        if latency_ms < stats.overall_min_latency:
            stats.overall_min_latency = latency_ms

        if error is not None:
            stats.total_failures += 1
            stats.consecutive_failures += 1
            stats.consecutive_successful = 0
        else:
            stats.total_successful += 1
            stats.consecutive_successful += 1
            stats.consecutive_failures = 0

    def snapshot(self) -> StatsSnapshot:
        """Recompute the windowed aggregates and return a frozen copy of the stats."""
        samples = self.samples()
        stats = self._stats

        if samples:
            low, high = min(samples), max(samples)
            # exact mean: a rounded one leaves a flat window with tiny equal deviations
            mean = float(statistics.mean(samples))
            sigma = statistics.pstdev(samples) if len(samples) > 1 and low != high else 0.0
            stats.min_latency = low
            stats.max_latency = high
            stats.average_latency = mean
            stats.standard_deviation = sigma
            stats.skewness = skewness(samples, mean, sigma)
        else:
            stats.min_latency = 0.0
            stats.max_latency = 0.0
            stats.average_latency = 0.0
            stats.standard_deviation = 0.0
            stats.skewness = 0.0

        return StatsSnapshot(sample_count=len(samples), **asdict(stats))
