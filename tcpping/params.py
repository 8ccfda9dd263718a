from __future__ import annotations

from typing import Callable, Dict, Mapping, Optional
from urllib.parse import parse_qsl

from .models import ProbeParams

PARAM_INTERVAL = "probe_interval"  # seconds between probes
PARAM_TIMEOUT = "probe_timeout"  # milliseconds before an attempt fails
PARAM_USE_TLS = "use_tls"
PARAM_DNS_INTERVAL = "dns_interval"  # attempts between re-resolutions, dns+ schemes only
PARAM_LOG_SIZE = "log_size"  # latencies kept for windowed stats
PARAM_STATS_INTERVAL = "stats_interval"  # attempts between stats snapshots
PARAM_OUTPUT_FORMAT = "output_format"

# passed through to the event sink untouched
PARAM_LOGZ_DIR = "logz_dir"
PARAM_LOGZ_NAME = "logz_name"
PARAM_LOGZ_ROTATE_SECS = "logz_rotate_secs"
PARAM_LOGZ_SYNC = "logz_sync"

DEFAULT_INTERVAL = 1
DEFAULT_TIMEOUT_MS = 5000
DEFAULT_DNS_INTERVAL = 10
DEFAULT_STATS_INTERVAL = 10
DEFAULT_LOG_SIZE = 255
DEFAULT_OUTPUT_FORMAT = "json"

MAX_ATTEMPT_INTERVAL = 255
MAX_LOG_SIZE = 65535

_KNOWN = frozenset(
    {
        PARAM_INTERVAL,
        PARAM_TIMEOUT,
        PARAM_USE_TLS,
        PARAM_DNS_INTERVAL,
        PARAM_LOG_SIZE,
        PARAM_STATS_INTERVAL,
        PARAM_OUTPUT_FORMAT,
    }
)

_TRUE = frozenset({"1", "t", "T", "TRUE", "true", "True"})


def parse_query(query: str) -> Dict[str, str]:
    """Parse a raw query string, keeping the first value of repeated keys."""
    values: Dict[str, str] = {}
    for key, value in parse_qsl(query, keep_blank_values=True):
        values.setdefault(key, value)
    return values


def _int_param(
    query: Mapping[str, str],
    name: str,
    default: int,
    valid: Callable[[int], bool],
) -> int:
    raw = query.get(name)
    if raw is None:
        return default
    try:
        value = int(raw.strip())
    except ValueError:
        return default
    return value if valid(value) else default


def parse_bool(raw: Optional[str]) -> bool:
    return raw is not None and raw in _TRUE


def probe_interval(query: Mapping[str, str]) -> float:
    return float(_int_param(query, PARAM_INTERVAL, DEFAULT_INTERVAL, lambda v: v > 0))


def probe_timeout_ms(query: Mapping[str, str]) -> int:
    return _int_param(query, PARAM_TIMEOUT, DEFAULT_TIMEOUT_MS, lambda v: v > 0)


def dns_interval(query: Mapping[str, str]) -> int:
    return _int_param(
        query, PARAM_DNS_INTERVAL, DEFAULT_DNS_INTERVAL, lambda v: 0 < v <= MAX_ATTEMPT_INTERVAL
    )


def stats_interval(query: Mapping[str, str]) -> int:
    return _int_param(
        query, PARAM_STATS_INTERVAL, DEFAULT_STATS_INTERVAL, lambda v: 0 < v <= MAX_ATTEMPT_INTERVAL
    )


def log_size(query: Mapping[str, str]) -> int:
    return _int_param(query, PARAM_LOG_SIZE, DEFAULT_LOG_SIZE, lambda v: 0 < v <= MAX_LOG_SIZE)


def output_format(query: Mapping[str, str]) -> str:
    return query.get(PARAM_OUTPUT_FORMAT) or DEFAULT_OUTPUT_FORMAT


def resolve_params(query: Mapping[str, str]) -> ProbeParams:
    """Build ProbeParams from descriptor query values.

    Every option is read on its own: a malformed value only resets that option
    to its default. Options this module does not know are kept in ``extras``
    for the event sink.
    """
    extras = {k: v for k, v in query.items() if k not in _KNOWN}
    return ProbeParams(
        interval=probe_interval(query),
        timeout_ms=probe_timeout_ms(query),
        dns_interval=dns_interval(query),
        stats_interval=stats_interval(query),
        log_size=log_size(query),
        use_tls=parse_bool(query.get(PARAM_USE_TLS)),
        output_format=output_format(query),
        extras=extras,
    )
