from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field

from .constants import FIRST_SEQ, LAST_SEQ
from .ledger import ReceptionLedger
from .message import DecodeError, Message, Origin
from .net import Address, UdpEndpoint
from .stats import Stats

log = logging.getLogger(__name__)


@dataclass(slots=True)
class Client:
    """Lockstep request driver.

    Sends ``data`` messages numbered ``FIRST_SEQ..last_seq`` with at most one
    outstanding at a time. A number only advances once the server echoes
    exactly that number back; every other outcome (timeout, garbage,
    mismatched echo, socket error) bumps ``retry`` and the same number goes
    out again on the next step. After the echo of ``last_seq`` a single
    ``fin`` is sent and the client stops.
    """

    udp: UdpEndpoint
    dest: Address
    last_seq: int = LAST_SEQ
    ledger: ReceptionLedger = field(default_factory=lambda: ReceptionLedger("CLIENT"))
    seq: int = FIRST_SEQ
    retry: int = 0
    done: bool = False
    stats: Stats = field(default_factory=Stats)

    def _send(self, msg: Message) -> None:
        try:
            self.udp.sendto(msg.to_bytes(), self.dest)
        except OSError as e:
            log.error("[CLIENT] send error: %s", e)
            self.stats.socket_errors += 1
            return
        self.stats.sent += 1
        if msg.retry > 0:
            self.stats.retransmits += 1
        log.info("[CLIENT] sent: %s", msg)

    def _finish(self) -> None:
        log.info("[CLIENT] echo for no=%d received; sending fin", self.seq)
        self._send(Message.fin(Origin.CLIENT))
        self.done = True

    def _handle(self, reply: Message) -> None:
        if reply.is_data:
            self.ledger.record(reply.no)

        if reply.is_data and reply.origin is Origin.SERVER and reply.no == self.seq:
            if self.seq >= self.last_seq:
                self._finish()
                return
            self.seq += 1
            self.retry = 0
            return

        log.warning(
            "[CLIENT] unexpected message (kind=%s, from=%s, no=%d) while waiting for no=%d",
            reply.kind.value,
            reply.origin.value,
            reply.no,
            self.seq,
        )
        self.stats.unexpected += 1
        self.retry += 1

    def step(self) -> None:
        if self.done:
            return

        # a failed send is left to the receive wait below to time out
        self._send(Message.data(self.seq, self.retry, Origin.CLIENT))

        try:
            raw, addr = self.udp.recvfrom()
        except TimeoutError:
            self.stats.timeouts += 1
            self.retry += 1
            log.debug("[CLIENT] timeout: resending no=%d with retry=%d", self.seq, self.retry)
            return
        except OSError as e:
            log.error("[CLIENT] recv error: %s", e)
            self.stats.socket_errors += 1
            self.retry += 1
            return

        self.stats.received += 1
        if addr != self.dest:
            log.warning("[CLIENT] datagram from %s ignored; expecting replies from %s", addr, self.dest)
            self.stats.unexpected += 1
            self.retry += 1
            return

        try:
            reply = Message.from_bytes(raw)
        except DecodeError as e:
            log.warning("[CLIENT] decode error: %s / raw: %s", e, raw.decode("utf-8", "replace"))
            self.stats.decode_errors += 1
            self.retry += 1
            return

        log.info("[CLIENT] received: %s", reply)
        self._handle(reply)

    def run(self) -> Stats:
        log.info("[CLIENT] started: server=%s:%d", *self.dest)
        while not self.done:
            self.step()
        self.stats.end_ts = time.monotonic()
        log.info("[CLIENT] done")
        return self.stats
