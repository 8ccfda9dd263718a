from __future__ import annotations

import random

DEFAULT_JITTER_FACTOR = 0.8787


class JitterStrategy:
    """Random extra delay applied before each probe.

    Spreads concurrently ticking tasks apart so their probes do not fire
    in bursts."""

    def __init__(self, factor: float = DEFAULT_JITTER_FACTOR) -> None:
        self._factor = factor

    def get_delay(self, interval: float) -> float:
        """Return a delay in seconds, uniformly drawn from [0, factor * interval]."""
        return random.uniform(0, max(interval, 0.0) * self._factor)
