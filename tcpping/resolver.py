from __future__ import annotations

import ipaddress
import random
import socket
from time import perf_counter
from typing import List, Optional, Sequence, Union

import dns.exception
import dns.resolver

from .errors import ResolutionError, UnknownHostname
from .log import get_logger
from .models import DNSUpdateEvent, TaskDefinition, TaskState, uses_dns

RESOLVE_TIMEOUT_S = 3.0

log = get_logger("resolver")


class HostnameResolver:
    """Resolves hostnames to addresses of one family using dnspython.

    Names DNS does not know fall back to the system lookup so hosts-file
    entries still resolve. The dnspython resolver is built on first use;
    literal addresses never need it.
    """

    def __init__(self, timeout: float = RESOLVE_TIMEOUT_S) -> None:
        self._timeout = timeout
        self._resolver: Optional[dns.resolver.Resolver] = None

    def _dns(self) -> dns.resolver.Resolver:
        if self._resolver is None:
            resolver = dns.resolver.Resolver()
            resolver.timeout = self._timeout
            resolver.lifetime = self._timeout
            resolver.retry_servfail = False
            self._resolver = resolver
        return self._resolver

    def resolve(self, hostname: str, ipv6: bool = False) -> List[str]:
        literal = _literal_address(hostname)
        if literal is not None:
            return [literal]

        record_type = "AAAA" if ipv6 else "A"
        try:
            answer = self._dns().resolve(hostname, record_type)
        except dns.resolver.NoResolverConfiguration as exc:
            return self._lookup_local(hostname, ipv6, "no resolver configuration", exc)
        except dns.resolver.NXDOMAIN as exc:
            return self._lookup_local(hostname, ipv6, "nxdomain", exc)
        except dns.resolver.NoAnswer as exc:
            return self._lookup_local(hostname, ipv6, f"no {record_type} records", exc)
        except dns.resolver.NoNameservers as exc:
            raise UnknownHostname(hostname, "servfail") from exc
        except dns.exception.Timeout as exc:
            raise UnknownHostname(hostname, "timeout") from exc
        except dns.exception.DNSException as exc:
            raise UnknownHostname(hostname, str(exc) or type(exc).__name__) from exc
        return [rdata.address for rdata in answer]

    def _lookup_local(self, hostname: str, ipv6: bool, reason: str, cause: Exception) -> List[str]:
        """Consult the system resolver (hosts file, nsswitch) for names DNS does not know."""
        family = socket.AF_INET6 if ipv6 else socket.AF_INET
        try:
            infos = socket.getaddrinfo(hostname, None, family, socket.SOCK_STREAM)
        except (socket.gaierror, UnicodeError):
            raise UnknownHostname(hostname, reason) from cause
        addresses = []
        for info in infos:
            address = info[4][0].split("%", 1)[0]
            if address not in addresses:
                addresses.append(address)
        if not addresses:
            raise UnknownHostname(hostname, reason) from cause
        log.debug("%s not in DNS (%s), using system lookup: %s", hostname, reason, addresses)
        return addresses


def _literal_address(hostname: str) -> Optional[str]:
    try:
        return str(ipaddress.ip_address(hostname))
    except ValueError:
        return None


def _unmap(address: str) -> Union[ipaddress.IPv4Address, ipaddress.IPv6Address]:
    ip = ipaddress.ip_address(address)
    if ip.version == 6 and ip.ipv4_mapped is not None:
        return ip.ipv4_mapped
    return ip


def select_address(hostname: str, addresses: Sequence[str], ipv6: bool = False) -> str:
    """Pick one address of the wanted family, uniformly at random."""
    version = 6 if ipv6 else 4
    candidates = []
    for address in addresses:
        try:
            ip = _unmap(address)
        except ValueError:
            continue
        if ip.version == version:
            candidates.append(str(ip))
    if not candidates:
        raise UnknownHostname(hostname, f"no IPv{version} address found")
    if len(candidates) == 1:
        return candidates[0]
    return random.choice(candidates)


def resolve_address(resolver: HostnameResolver, hostname: str, ipv6: bool = False) -> str:
    return select_address(hostname, resolver.resolve(hostname, ipv6), ipv6)


class DnsRefreshPolicy:
    """Decides, per attempt, whether a task's hostname must be re-resolved.

    A refresh is due when ``attempt > 1 and attempt % dns_interval == 1``.
    Raw address tasks never refresh. When nothing is due, ``check`` returns
    the same pre-built event every time without touching the network.
    """

    def __init__(self, task: TaskDefinition, resolver: HostnameResolver) -> None:
        self._task = task
        self._resolver = resolver
        self._interval = task.params.dns_interval
        self._enabled = uses_dns(task.kind)
        self._not_required = DNSUpdateEvent(
            hostname=task.hostname,
            previous_address="",
            new_address=None,
            required=False,
        )

    def is_due(self, attempt: int) -> bool:
        return self._enabled and attempt > 1 and attempt % self._interval == 1

    def check(self, state: TaskState, attempt: int) -> DNSUpdateEvent:
        if not self.is_due(attempt):
            return self._not_required

        hostname = self._task.hostname
        previous = state.address
        start = perf_counter()
        try:
            address = resolve_address(self._resolver, hostname, self._task.ipv6)
        except ResolutionError as exc:
            latency_ms = (perf_counter() - start) * 1000.0
            log.warning("attempt %d: refreshing %s failed, keeping %s: %s", attempt, hostname, previous, exc)
            return DNSUpdateEvent(
                hostname=hostname,
                previous_address=previous,
                new_address=None,
                required=True,
                error=exc,
                latency_ms=latency_ms,
            )
        latency_ms = (perf_counter() - start) * 1000.0

        state.update_address(address)
        log.debug("attempt %d: %s resolved to %s (was %s)", attempt, hostname, address, previous)
        return DNSUpdateEvent(
            hostname=hostname,
            previous_address=previous,
            new_address=address,
            required=True,
            latency_ms=latency_ms,
        )
