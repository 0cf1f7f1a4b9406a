"""Lockstep echo over UDP.

A client walks sequence numbers 1..100 through a server one at a time,
retransmitting on timeout, and closes the session with a ``fin`` message.
Both sides keep a reception ledger and log which numbers they have seen
as compressed ranges.
"""

from .client import Client
from .ledger import ReceptionLedger
from .message import DecodeError, Kind, Message, Origin
from .server import Server
from .stats import Stats

__all__ = [
    "Client",
    "DecodeError",
    "Kind",
    "Message",
    "Origin",
    "ReceptionLedger",
    "Server",
    "Stats",
]
