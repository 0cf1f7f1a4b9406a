from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Optional

from .client import Client
from .constants import DEFAULT_TIMEOUT_MS, LAST_SEQ
from .net import Impairment, UdpEndpoint
from .server import Server
from .stats import Stats


@dataclass(frozen=True, slots=True)
class SessionResult:
    client: Stats
    server: Stats
    client_ranges: str
    server_ranges: str
    server_finished: bool

    def as_dict(self) -> dict[str, object]:
        return {
            "client": self.client.as_dict(),
            "server": self.server.as_dict(),
            "client_ranges": self.client_ranges,
            "server_ranges": self.server_ranges,
            "server_finished": self.server_finished,
        }


def run_session(
    *,
    count: int = LAST_SEQ,
    loss_rate: float = 0.0,
    delay_ms: int = 0,
    timeout_ms: int = DEFAULT_TIMEOUT_MS,
    seed: Optional[int] = None,
    join_timeout_s: float = 10.0,
) -> SessionResult:
    """Run one full client/server session over loopback."""
    server_seed = None if seed is None else seed + 1
    server_ep = UdpEndpoint.listening(
        "127.0.0.1",
        0,
        timeout_ms=timeout_ms,
        impairment=Impairment(loss_rate, delay_ms, server_seed),
    )
    server = Server(server_ep)

    t = threading.Thread(target=server.run, daemon=True)
    t.start()

    client_ep = UdpEndpoint.sending(
        timeout_ms=timeout_ms,
        impairment=Impairment(loss_rate, delay_ms, seed),
        dest=server_ep.address,
    )
    try:
        client = Client(client_ep, client_ep.peer, last_seq=count)
        client.run()
    finally:
        client_ep.close()

    t.join(timeout=join_timeout_s)
    # the fin itself may have been lost; nothing would ever stop the server
    server_finished = not t.is_alive() and server.finished
    if t.is_alive():
        server.shutdown()
        t.join(timeout=join_timeout_s)
    server_ep.close()

    return SessionResult(
        client=client.stats,
        server=server.stats,
        client_ranges=client.ledger.ranges_summary(),
        server_ranges=server.ledger.ranges_summary(),
        server_finished=server_finished,
    )
