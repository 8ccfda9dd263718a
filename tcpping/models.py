from __future__ import annotations

import enum
import ipaddress
import sys
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, Optional

if TYPE_CHECKING:
    from .stats import LatencyStats


class ProbeKind(enum.IntEnum):
    RAW_IPV4 = 1
    RAW_IPV6 = 2
    DNS_IPV4 = 3
    DNS_IPV6 = 4
    # declared for descriptor compatibility; probed with the TCP executor
    HTTP_IPV4 = 5
    HTTP_IPV6 = 6
    HTTPS_IPV4 = 7
    HTTPS_IPV6 = 8


def is_ipv4(kind: ProbeKind) -> bool:
    return kind in (ProbeKind.RAW_IPV4, ProbeKind.DNS_IPV4)


def is_ipv6(kind: ProbeKind) -> bool:
    return kind in (ProbeKind.RAW_IPV6, ProbeKind.DNS_IPV6)


def uses_dns(kind: ProbeKind) -> bool:
    return kind not in (ProbeKind.RAW_IPV4, ProbeKind.RAW_IPV6)


@dataclass(frozen=True)
class ProbeParams:
    interval: float = 1.0
    timeout_ms: int = 5000
    dns_interval: int = 10
    stats_interval: int = 10
    log_size: int = 255
    use_tls: bool = False
    output_format: str = "json"
    extras: Dict[str, str] = field(default_factory=dict)

    @property
    def timeout(self) -> float:
        """Probe timeout in seconds."""
        return self.timeout_ms / 1000.0


@dataclass(frozen=True)
class TaskDefinition:
    task_id: str
    raw: str
    kind: ProbeKind
    hostname: str
    ipv4: bool
    ipv6: bool
    port: int
    params: ProbeParams = field(default_factory=ProbeParams)

    @property
    def host(self) -> str:
        if ":" in self.hostname:
            return f"[{self.hostname}]:{self.port}"
        return f"{self.hostname}:{self.port}"


@dataclass(frozen=True)
class Target:
    address: str
    port: int

    @property
    def version(self) -> int:
        return ipaddress.ip_address(self.address).version

    def __str__(self) -> str:
        if self.version == 6:
            return f"[{self.address}]:{self.port}"
        return f"{self.address}:{self.port}"


@dataclass
class Stats:
    total_probes: int = 0
    total_successful: int = 0
    total_failures: int = 0
    consecutive_successful: int = 0
    consecutive_failures: int = 0
    last_latency: float = 0.0
    delta_latency: float = 0.0
    overall_min_latency: float = sys.float_info.max
    overall_max_latency: float = 0.0
    min_latency: float = 0.0
    max_latency: float = 0.0
    average_latency: float = 0.0
    standard_deviation: float = 0.0
    skewness: float = 0.0


class TaskState:
    """Mutable per-task state, owned by a single scheduling loop."""

    def __init__(self, address: str, port: int, stats: "LatencyStats") -> None:
        self.address = address
        self.target = Target(address, port)
        self.stats = stats

    def update_address(self, address: str) -> None:
        self.address = address
        self.target = Target(address, self.target.port)


@dataclass(frozen=True)
class ProbeEvent:
    attempt: int
    target: Target
    latency_ms: float
    delta_ms: float
    error: Optional[Exception] = None

    @property
    def success(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class StatsSnapshot:
    total_probes: int
    total_successful: int
    total_failures: int
    consecutive_successful: int
    consecutive_failures: int
    last_latency: float
    delta_latency: float
    overall_min_latency: float
    overall_max_latency: float
    min_latency: float
    max_latency: float
    average_latency: float
    standard_deviation: float
    skewness: float
    sample_count: int


@dataclass(frozen=True)
class DNSUpdateEvent:
    hostname: str
    previous_address: str
    new_address: Optional[str]
    required: bool
    error: Optional[Exception] = None
    latency_ms: float = 0.0
