from __future__ import annotations

import logging
import random
import socket
import time
from dataclasses import dataclass, field
from typing import Optional, Tuple

from .constants import BUFSIZE, DEFAULT_TIMEOUT_MS

Address = Tuple[str, int]

log = logging.getLogger(__name__)


@dataclass(slots=True)
class Impairment:
    """Simulated loss and delay, applied to both directions of an endpoint."""

    loss_rate: float = 0.0
    delay_ms: int = 0
    seed: Optional[int] = None
    rng: random.Random = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.rng = random.Random(self.seed)

    def should_drop(self) -> bool:
        return self.loss_rate > 0 and self.rng.random() < self.loss_rate

    def sleep_if_needed(self) -> None:
        if self.delay_ms > 0:
            time.sleep(self.delay_ms / 1000.0)


class UdpEndpoint:
    """A datagram socket with a fixed receive timeout.

    ``recvfrom`` raises ``TimeoutError`` when nothing arrives within the
    timeout and ``OSError`` for socket failures; callers decide how to fold
    either into their retry logic.
    """

    def __init__(self, sock: socket.socket, impairment: Impairment | None = None):
        self.sock = sock
        self.impairment = impairment or Impairment()

    @classmethod
    def listening(
        cls,
        host: str,
        port: int,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        impairment: Impairment | None = None,
    ) -> "UdpEndpoint":
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        sock.bind((host, port))
        if timeout_ms > 0:
            sock.settimeout(timeout_ms / 1000.0)
        return cls(sock, impairment)

    @classmethod
    def sending(
        cls,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        impairment: Impairment | None = None,
        dest: Address | None = None,
    ) -> "UdpEndpoint":
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        sock.bind(("0.0.0.0", 0))
        if dest is not None:
            # the kernel then drops datagrams from any other peer
            sock.connect(dest)
        if timeout_ms > 0:
            sock.settimeout(timeout_ms / 1000.0)
        return cls(sock, impairment)

    @property
    def address(self) -> Address:
        host, port = self.sock.getsockname()[:2]
        return host, port

    @property
    def peer(self) -> Address:
        host, port = self.sock.getpeername()[:2]
        return host, port

    def sendto(self, data: bytes, addr: Address) -> None:
        if self.impairment.should_drop():
            log.debug("dropped outbound %d bytes to %s", len(data), addr)
            return
        self.impairment.sleep_if_needed()
        self.sock.sendto(data, addr)

    def recvfrom(self, bufsize: int = BUFSIZE) -> Tuple[bytes, Address]:
        # a dropped datagram does not end the wait; the caller still sees
        # one full timeout window of silence
        timeout = self.sock.gettimeout()
        deadline = None if timeout is None else time.monotonic() + timeout
        try:
            while True:
                data, addr = self.sock.recvfrom(bufsize)
                if not self.impairment.should_drop():
                    self.impairment.sleep_if_needed()
                    return data, addr
                log.debug("dropped inbound %d bytes from %s", len(data), addr)
                if deadline is not None:
                    remaining = deadline - time.monotonic()
                    if remaining <= 0:
                        raise TimeoutError("timed out")
                    self.sock.settimeout(remaining)
        finally:
            if self.sock.gettimeout() != timeout:
                self.sock.settimeout(timeout)

    def close(self) -> None:
        self.sock.close()

    def __enter__(self) -> "UdpEndpoint":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()
