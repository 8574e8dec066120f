"""
Clock sources for the FocusLedger timer engine.

All readings are integer milliseconds of wall-clock time. The engine only
ever calls ``now_ms()``, so tests can swap in ``ManualClock`` and move time
by hand instead of sleeping.
"""

from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Protocol


class Clock(Protocol):
    def now_ms(self) -> int: ...


class SystemClock:
    """Wall-clock time from ``time.time()``."""

    def now_ms(self) -> int:
        return int(time.time() * 1000)


class ManualClock:
    """Synthetic clock that only moves when told to."""

    def __init__(self, start_ms: int = 1_700_000_000_000) -> None:
        self._now_ms = int(start_ms)

    def now_ms(self) -> int:
        return self._now_ms

    def advance(self, ms: int = 0, *, seconds: float = 0, minutes: float = 0) -> int:
        self._now_ms += int(ms + seconds * 1000 + minutes * 60_000)
        return self._now_ms

    def set(self, now_ms: int) -> None:
        # Allowed to move backwards; the engine clamps negative deltas.
        self._now_ms = int(now_ms)


def to_iso(ms: int) -> str:
    """Format an epoch-milliseconds reading as ISO-8601 UTC, e.g. 2026-10-19T08:00:00.000Z."""
    dt = datetime.fromtimestamp(ms / 1000, tz=timezone.utc)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")
