from __future__ import annotations

import ipaddress
import uuid
from typing import Dict, Optional, Tuple
from urllib.parse import SplitResult, urlsplit

from .errors import InvalidAddress, InvalidPort, UnknownHostname, UnknownTaskType
from .models import ProbeKind, TaskDefinition, TaskState, is_ipv4, is_ipv6, uses_dns
from .params import parse_query, resolve_params
from .resolver import HostnameResolver, resolve_address
from .stats import LatencyStats

RAW_IPV4_SCHEME = "ipv4"
RAW_IPV6_SCHEME = "ipv6"
DNS_IPV4_SCHEME = "dns+ipv4"
DNS_IPV6_SCHEME = "dns+ipv6"

SCHEMES: Dict[str, ProbeKind] = {
    RAW_IPV4_SCHEME: ProbeKind.RAW_IPV4,
    RAW_IPV6_SCHEME: ProbeKind.RAW_IPV6,
    DNS_IPV4_SCHEME: ProbeKind.DNS_IPV4,
    DNS_IPV6_SCHEME: ProbeKind.DNS_IPV6,
}


def probe_kind(scheme: str) -> ProbeKind:
    try:
        return SCHEMES[scheme]
    except KeyError:
        raise UnknownTaskType(scheme) from None


def probe_port(url: SplitResult) -> int:
    try:
        port = url.port
    except ValueError:
        raise InvalidPort(url.netloc.rpartition(":")[2]) from None
    if port is None:
        raise InvalidPort("")
    return port


def literal_address(kind: ProbeKind, hostname: str) -> str:
    version = 6 if is_ipv6(kind) else 4
    family = f"IPv{version}"
    try:
        ip = ipaddress.ip_address(hostname)
    except ValueError:
        raise InvalidAddress(hostname, family) from None
    if ip.version != version:
        raise InvalidAddress(hostname, family)
    return str(ip)


def parse_descriptor(
    raw: str,
    resolver: Optional[HostnameResolver] = None,
) -> Tuple[TaskDefinition, TaskState]:
    """Turn a descriptor such as ``dns+ipv4://host:443?probe_interval=2`` into a task.

    DNS kinds are resolved right away; a failure raises UnknownHostname and
    no task is built. Returns the immutable definition together with the
    freshly initialised mutable state.
    """
    url = urlsplit(raw.strip())
    kind = probe_kind(url.scheme)
    port = probe_port(url)
    hostname = url.hostname or ""

    if uses_dns(kind):
        if not hostname:
            raise UnknownHostname(hostname, "empty hostname")
        address = resolve_address(resolver or HostnameResolver(), hostname, is_ipv6(kind))
    else:
        address = literal_address(kind, hostname)

    params = resolve_params(parse_query(url.query))
    task = TaskDefinition(
        task_id=uuid.uuid4().hex,
        raw=raw,
        kind=kind,
        hostname=hostname,
        ipv4=is_ipv4(kind),
        ipv6=is_ipv6(kind),
        port=port,
        params=params,
    )
    state = TaskState(address, port, LatencyStats(params.log_size))
    return task, state
