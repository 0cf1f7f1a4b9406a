from __future__ import annotations

import time
from dataclasses import dataclass, field


@dataclass(slots=True)
class Stats:
    """Counters one endpoint keeps over a session.

    ``unexpected`` only moves on the client; the server echoes every
    well-formed data message, so nothing it receives is unexpected.
    """

    sent: int = 0
    received: int = 0
    timeouts: int = 0
    retransmits: int = 0
    decode_errors: int = 0
    unexpected: int = 0
    socket_errors: int = 0
    start_ts: float = field(default_factory=time.monotonic)
    end_ts: float | None = None

    @property
    def duration_s(self) -> float:
        if self.end_ts is None:
            return 0.0
        return max(0.0, self.end_ts - self.start_ts)

    def as_dict(self) -> dict[str, float]:
        return {
            "sent": self.sent,
            "received": self.received,
            "timeouts": self.timeouts,
            "retransmits": self.retransmits,
            "decode_errors": self.decode_errors,
            "unexpected": self.unexpected,
            "socket_errors": self.socket_errors,
            "seconds": self.duration_s,
        }
