from __future__ import annotations

from collections import deque
from typing import Deque, List, Tuple, Union

import pytest

from lockstep.message import Message

Address = Tuple[str, int]
Inbound = Union[Tuple[bytes, Address], BaseException]

SERVER_ADDR: Address = ("127.0.0.1", 4000)
PEER_ADDR: Address = ("127.0.0.1", 50000)


class ScriptedEndpoint:
    """In-memory stand-in for UdpEndpoint.

    Inbound items are handed out one per ``recvfrom``; an exception item is
    raised instead, and an empty script behaves like a timeout.
    """

    def __init__(self) -> None:
        self.inbound: Deque[Inbound] = deque()
        self.sent: List[Tuple[bytes, Address]] = []
        self.send_error: OSError | None = None
        self.address: Address = SERVER_ADDR

    def feed(self, item: Union[Message, bytes, BaseException], addr: Address = SERVER_ADDR) -> None:
        if isinstance(item, Message):
            item = item.to_bytes()
        if isinstance(item, BaseException):
            self.inbound.append(item)
        else:
            self.inbound.append((item, addr))

    def sendto(self, data: bytes, addr: Address) -> None:
        if self.send_error is not None:
            raise self.send_error
        self.sent.append((data, addr))

    def recvfrom(self, bufsize: int = 1024) -> Tuple[bytes, Address]:
        if not self.inbound:
            raise TimeoutError("timed out")
        item = self.inbound.popleft()
        if isinstance(item, BaseException):
            raise item
        return item

    def sent_messages(self) -> List[Message]:
        return [Message.from_bytes(raw) for raw, _ in self.sent]

    def close(self) -> None:
        pass


@pytest.fixture
def endpoint() -> ScriptedEndpoint:
    return ScriptedEndpoint()
