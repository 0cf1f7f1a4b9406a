from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Optional

from .ledger import ReceptionLedger
from .message import DecodeError, Message, Origin
from .net import Address, UdpEndpoint
from .stats import Stats

log = logging.getLogger(__name__)


@dataclass(slots=True)
class Server:
    """Echo side of the lockstep exchange.

    Holds a single reply slot: only the most recent echo is kept, and on
    every silent timeout window it goes out again with ``retry`` bumped by
    one. Interleaved peers would overwrite each other's slot.
    """

    udp: UdpEndpoint
    ledger: ReceptionLedger = field(default_factory=lambda: ReceptionLedger("SERVER-RECV"))
    last_reply: Optional[Message] = None
    last_peer: Optional[Address] = None
    finished: bool = False
    stats: Stats = field(default_factory=Stats)

    def _send(self, msg: Message, addr: Address) -> None:
        try:
            self.udp.sendto(msg.to_bytes(), addr)
        except OSError as e:
            log.error("[SERVER] send error to %s: %s", addr, e)
            self.stats.socket_errors += 1
            return
        self.stats.sent += 1
        if msg.retry > 0:
            self.stats.retransmits += 1

    def _on_silence(self) -> None:
        self.stats.timeouts += 1
        if self.last_reply is None or self.last_peer is None:
            return
        if not self.last_reply.is_data:
            return
        resend = self.last_reply.retried()
        log.info("[SERVER] timeout, resending to %s: %s", self.last_peer, resend)
        self._send(resend, self.last_peer)
        self.last_reply = resend

    def _on_message(self, msg: Message, addr: Address) -> None:
        if msg.is_fin:
            log.info("[SERVER] fin from %s: %s", addr, msg)
            log.info("[SERVER] session closed")
            self.finished = True
            return

        self.ledger.record(msg.no)
        reply = Message.data(msg.no, 0, Origin.SERVER)
        self._send(reply, addr)
        log.info("[SERVER] sent to %s: %s", addr, reply)
        # kept even when the send failed so silence still triggers a resend
        self.last_reply = reply
        self.last_peer = addr

    def step(self) -> None:
        if self.finished:
            return

        try:
            raw, addr = self.udp.recvfrom()
        except TimeoutError:
            self._on_silence()
            return
        except OSError as e:
            log.error("[SERVER] recvfrom error: %s", e)
            self.stats.socket_errors += 1
            return

        self.stats.received += 1
        try:
            msg = Message.from_bytes(raw)
        except DecodeError as e:
            log.warning("[SERVER] decode error: %s / raw: %s", e, raw.decode("utf-8", "replace"))
            self.stats.decode_errors += 1
            return

        log.info("[SERVER] received from %s: %s", addr, msg)
        self._on_message(msg, addr)

    def shutdown(self) -> None:
        self.finished = True

    def run(self) -> Stats:
        host, port = self.udp.address
        log.info("[SERVER] listening on %s:%d", host, port)
        while not self.finished:
            self.step()
        self.stats.end_ts = time.monotonic()
        return self.stats
