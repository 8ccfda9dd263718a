from __future__ import annotations


class TcpPingError(Exception):
    """Base class for every error raised by the prober core."""


class ConfigError(TcpPingError):
    """A target descriptor could not be turned into a task."""


class UnknownTaskType(ConfigError):
    def __init__(self, scheme: str) -> None:
        super().__init__(f"unknown task type: {scheme!r}")
        self.scheme = scheme


class InvalidPort(ConfigError):
    def __init__(self, port: str) -> None:
        super().__init__(f"invalid port: {port!r}")
        self.port = port


class InvalidAddress(ConfigError):
    def __init__(self, address: str, family: str) -> None:
        super().__init__(f"invalid {family} address: {address!r}")
        self.address = address
        self.family = family


class ResolutionError(TcpPingError):
    """DNS lookup failed or returned nothing usable."""


class UnknownHostname(ResolutionError):
    def __init__(self, hostname: str, reason: str) -> None:
        super().__init__(f"unknown hostname {hostname!r}: {reason}")
        self.hostname = hostname
        self.reason = reason


class ProbeError(TcpPingError):
    """A single connect attempt failed. Never fatal to the task."""


class ProbeTimeout(ProbeError):
    pass


class ProbeCancelled(ProbeError):
    pass
