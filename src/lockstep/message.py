from __future__ import annotations

import enum
import json
from dataclasses import dataclass, replace
from typing import Any

from .constants import FIN_SEQ, MAX_U32


class DecodeError(ValueError):
    """Raised when a datagram does not match the message schema."""


class Origin(str, enum.Enum):
    CLIENT = "client"
    SERVER = "server"


class Kind(str, enum.Enum):
    DATA = "data"
    FIN = "fin"


def _uint(obj: dict[str, Any], key: str) -> int:
    if key not in obj:
        raise DecodeError(f"missing field {key!r}")
    value = obj[key]
    # bool is an int subclass; JSON true/false must not pass as a number
    if isinstance(value, bool) or not isinstance(value, int):
        raise DecodeError(f"field {key!r} must be an integer, got {value!r}")
    if not 0 <= value <= MAX_U32:
        raise DecodeError(f"field {key!r} out of range: {value}")
    return value


@dataclass(frozen=True, slots=True)
class Message:
    no: int
    retry: int
    origin: Origin
    kind: Kind = Kind.DATA

    @property
    def is_data(self) -> bool:
        return self.kind is Kind.DATA

    @property
    def is_fin(self) -> bool:
        return self.kind is Kind.FIN

    def to_bytes(self) -> bytes:
        body = {
            "no": self.no,
            "retry": self.retry,
            "from": self.origin.value,
            "kind": self.kind.value,
        }
        return json.dumps(body, separators=(",", ":")).encode("utf-8")

    @staticmethod
    def from_bytes(raw: bytes) -> "Message":
        try:
            obj = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError, RecursionError) as e:
            # deeply nested arrays exhaust the decoder before any schema check
            raise DecodeError(str(e)) from e

        if not isinstance(obj, dict):
            raise DecodeError("message must be a JSON object")

        no = _uint(obj, "no")
        retry = _uint(obj, "retry")

        if "from" not in obj:
            raise DecodeError("missing field 'from'")
        try:
            origin = Origin(obj["from"])
        except ValueError as e:
            raise DecodeError(f"unknown origin: {obj['from']!r}") from e

        # older senders omit kind entirely
        try:
            kind = Kind(obj.get("kind", Kind.DATA.value))
        except ValueError as e:
            raise DecodeError(f"unknown kind: {obj['kind']!r}") from e

        return Message(no=no, retry=retry, origin=origin, kind=kind)

    @staticmethod
    def data(no: int, retry: int, origin: Origin) -> "Message":
        return Message(no=no, retry=retry, origin=origin, kind=Kind.DATA)

    @staticmethod
    def fin(origin: Origin) -> "Message":
        return Message(no=FIN_SEQ, retry=0, origin=origin, kind=Kind.FIN)

    def retried(self) -> "Message":
        return replace(self, retry=self.retry + 1)

    def __str__(self) -> str:
        return f"{self.kind.value}(no={self.no}, retry={self.retry}, from={self.origin.value})"
