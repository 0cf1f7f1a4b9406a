from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable

log = logging.getLogger(__name__)

# reported for min/max while nothing has been recorded
EMPTY_FALLBACK = 0


def ranges_summary(numbers: Iterable[int]) -> str:
    """Compress integers into maximal consecutive runs.

    ``{1, 2, 3, 5, 7, 8, 9, 12}`` renders as ``"1-3, 5, 7-9, 12"``.
    Duplicates collapse; an empty input renders as ``""``.
    """
    runs: list[str] = []
    start: int | None = None
    prev: int | None = None

    def flush() -> None:
        if start is None or prev is None:
            return
        runs.append(str(start) if start == prev else f"{start}-{prev}")

    for n in sorted(set(numbers)):
        if prev is not None and n == prev + 1:
            prev = n
            continue
        flush()
        start = prev = n

    flush()
    return ", ".join(runs)


def parse_ranges(text: str) -> set[int]:
    """Expand a string produced by :func:`ranges_summary` back into a set."""
    out: set[int] = set()
    if not text.strip():
        return out
    for token in text.split(","):
        token = token.strip()
        lo, sep, hi = token.partition("-")
        if not lo.isdigit() or (sep and not hi.isdigit()):
            raise ValueError(f"malformed range token: {token!r}")
        start = int(lo)
        end = int(hi) if sep else start
        if end < start:
            raise ValueError(f"descending range: {token!r}")
        out.update(range(start, end + 1))
    return out


@dataclass(slots=True)
class ReceptionLedger:
    """Distinct sequence numbers one endpoint has observed."""

    label: str
    seen: set[int] = field(default_factory=set)

    @property
    def min(self) -> int:
        return min(self.seen, default=EMPTY_FALLBACK)

    @property
    def max(self) -> int:
        return max(self.seen, default=EMPTY_FALLBACK)

    @property
    def total(self) -> int:
        return len(self.seen)

    def ranges_summary(self) -> str:
        return ranges_summary(self.seen)

    def summary(self) -> str:
        return (
            f"[{self.label}] received: min={self.min}, max={self.max}, "
            f"total={self.total}, ranges=[{self.ranges_summary()}]"
        )

    def record(self, no: int) -> str:
        self.seen.add(no)
        line = self.summary()
        log.info("%s", line)
        return line
