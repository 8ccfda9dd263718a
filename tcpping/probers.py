from __future__ import annotations

import errno
import os
import selectors
import socket
import struct
import threading
import time
from typing import Optional

from .base import BaseProber
from .errors import ProbeCancelled, ProbeError, ProbeTimeout
from .log import get_logger
from .models import Target

log = get_logger("prober.tcp")

# l_onoff=1, l_linger=0: close() sends RST and skips TIME_WAIT
SO_LINGER_ABORT = struct.pack("ii", 1, 0)

# how often an in-flight connect looks at the cancellation signal
CANCEL_POLL_S = 0.05

_IN_PROGRESS = (0, errno.EINPROGRESS, errno.EWOULDBLOCK, errno.EALREADY)


def set_socket_options(sock: socket.socket) -> Optional[OSError]:
    """Disable lingering on ``sock``; returns the error instead of raising."""
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_LINGER, SO_LINGER_ABORT)
    except OSError as exc:
        return exc
    return None


def tcp_family(ipv4: bool, ipv6: bool, target: Target) -> int:
    if ipv4:
        return socket.AF_INET
    if ipv6:
        return socket.AF_INET6
    return socket.AF_INET6 if target.version == 6 else socket.AF_INET


def _connect_error(code: int, target: Target) -> ProbeError:
    if code == errno.ETIMEDOUT:
        return ProbeTimeout(f"dial tcp {target}: {os.strerror(code)}")
    return ProbeError(f"dial tcp {target}: {os.strerror(code)}")


class TCPProber(BaseProber):
    """Connect-only TCP probe: no payload is sent, the socket is reset right away."""

    def create_socket(self, target: Target) -> socket.socket:
        family = tcp_family(self.task.ipv4, self.task.ipv6, target)
        sock = socket.socket(family, socket.SOCK_STREAM)
        err = set_socket_options(sock)
        if err is not None:
            log.warning("%s: could not disable SO_LINGER: %s", self.task.host, err)
        return sock

    def dial(self, target: Target, timeout: float, cancel: threading.Event) -> None:
        deadline = time.monotonic() + timeout
        try:
            sock = self.create_socket(target)
        except OSError as exc:
            raise ProbeError(f"dial tcp {target}: {exc}") from exc

        try:
            sock.setblocking(False)
            code = sock.connect_ex((target.address, target.port))
            if code not in _IN_PROGRESS:
                raise _connect_error(code, target)
            if code != 0:
                self._await_connect(sock, target, deadline, cancel)
        except OSError as exc:
            raise ProbeError(f"dial tcp {target}: {exc}") from exc
        finally:
            sock.close()

    def _await_connect(
        self,
        sock: socket.socket,
        target: Target,
        deadline: float,
        cancel: threading.Event,
    ) -> None:
        with selectors.DefaultSelector() as selector:
            selector.register(sock, selectors.EVENT_WRITE)
            while True:
                if cancel.is_set():
                    raise ProbeCancelled(f"dial tcp {target}: operation was canceled")
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    raise ProbeTimeout(f"dial tcp {target}: i/o timeout")
                if selector.select(min(remaining, CANCEL_POLL_S)):
                    break

        code = sock.getsockopt(socket.SOL_SOCKET, socket.SO_ERROR)
        if code != 0:
            raise _connect_error(code, target)
