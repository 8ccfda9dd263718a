from __future__ import annotations

from typing import Callable, Iterable, List, Optional

from .base import BaseProber
from .errors import TcpPingError
from .log import get_logger
from .models import TaskDefinition
from .parser import parse_descriptor
from .probers import TCPProber
from .resolver import DnsRefreshPolicy, HostnameResolver
from .sinks import EventSink, create_sink

log = get_logger("factory")

SinkFactory = Callable[[TaskDefinition], EventSink]


class ProberFactory:
    """Builds probers from target descriptors.

    Every task gets its own sink; the DNS resolver is shared since it keeps
    no per-task state.
    """

    def __init__(
        self,
        resolver: Optional[HostnameResolver] = None,
        project_id: str = "",
        sink_factory: Optional[SinkFactory] = None,
    ) -> None:
        self._resolver = resolver or HostnameResolver()
        self._project_id = project_id
        self._sink_factory = sink_factory

    def create(self, raw: str) -> BaseProber:
        task, state = parse_descriptor(raw, self._resolver)
        if self._sink_factory is not None:
            sink = self._sink_factory(task)
        else:
            sink = create_sink(task, self._project_id)
        # every kind, HTTP(S) included, is probed with a plain TCP connect
        return TCPProber(task, state, sink, DnsRefreshPolicy(task, self._resolver))

    def create_all(self, descriptors: Iterable[str]) -> List[BaseProber]:
        """Build a prober per descriptor, logging and skipping the invalid ones."""
        probers: List[BaseProber] = []
        for raw in descriptors:
            try:
                probers.append(self.create(raw))
            except (TcpPingError, OSError) as exc:
                log.warning("invalid task URL: %s (%s)", raw, exc)
        return probers
