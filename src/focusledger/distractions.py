"""
Distraction log for a focus session.

Records are immutable and kept in insertion order, which is also
chronological order. The elapsed minute stamped on a record is the one passed
in at logging time and is never recomputed.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional, Tuple

from .clock import to_iso
from .errors import ValidationError


@dataclass(frozen=True)
class DistractionRecord:
    id: str
    timestamp: str  # ISO-8601 UTC wall-clock at creation
    description: str
    session_time_minutes: int

    def to_dict(self) -> Dict[str, Any]:
        # Keys match the payload the dashboard and session cache expect.
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "description": self.description,
            "sessionTime": self.session_time_minutes,
        }


def clean_text(value: Optional[str], what: str) -> str:
    """Trim user text, raising ValidationError when nothing is left."""
    if not isinstance(value, str):
        raise ValidationError(f"Please enter a {what}")
    text = value.strip()
    if not text:
        raise ValidationError(f"Please enter a {what}")
    return text


class DistractionLog:
    """Append-only, ordered list of DistractionRecord."""

    def __init__(self) -> None:
        self._records: List[DistractionRecord] = []

    def append(self, description: str, session_time_minutes: int, now_ms: int) -> DistractionRecord:
        text = clean_text(description, "distraction description")
        record = DistractionRecord(
            id=f"{now_ms}-{uuid.uuid4().hex[:8]}",
            timestamp=to_iso(now_ms),
            description=text,
            session_time_minutes=max(0, int(session_time_minutes)),
        )
        self._records.append(record)
        return record

    def snapshot(self) -> Tuple[DistractionRecord, ...]:
        return tuple(self._records)

    def recent(self, limit: int = 5) -> List[DistractionRecord]:
        """Most recent records first, as shown in the distraction panel."""
        if limit <= 0:
            return []
        return list(reversed(self._records[-limit:]))

    def clear(self) -> None:
        self._records.clear()

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[DistractionRecord]:
        return iter(list(self._records))
