import pytest

from focusledger.clock import ManualClock, to_iso
from focusledger.distractions import DistractionLog, clean_text
from focusledger.errors import ValidationError


def test_append_keeps_insertion_order():
    clock = ManualClock(start_ms=0)
    log = DistractionLog()
    first = log.append("phone", 1, clock.now_ms())
    second = log.append("door", 3, clock.advance(seconds=5))
    assert log.snapshot() == (first, second)
    assert len(log) == 2
    assert list(log) == [first, second]


def test_record_fields():
    log = DistractionLog()
    rec = log.append("  email  ", 4, 1_000)
    assert rec.description == "email"
    assert rec.session_time_minutes == 4
    assert rec.timestamp == "1970-01-01T00:00:01.000Z"
    assert rec.id.startswith("1000-")
    assert rec.to_dict() == {
        "id": rec.id,
        "timestamp": rec.timestamp,
        "description": "email",
        "sessionTime": 4,
    }


def test_ids_are_unique_for_same_instant():
    log = DistractionLog()
    ids = {log.append("x", 0, 5).id for _ in range(20)}
    assert len(ids) == 20


def test_negative_minutes_clamped():
    assert DistractionLog().append("x", -3, 0).session_time_minutes == 0


def test_blank_description_rejected_without_append():
    log = DistractionLog()
    with pytest.raises(ValidationError):
        log.append("   ", 0, 0)
    assert len(log) == 0


def test_clean_text():
    assert clean_text(" a ", "task") == "a"
    with pytest.raises(ValidationError, match="task"):
        clean_text("", "task")
    with pytest.raises(ValidationError):
        clean_text(None, "task")


def test_snapshot_is_detached_and_clear():
    log = DistractionLog()
    log.append("a", 0, 0)
    snap = log.snapshot()
    log.clear()
    assert len(snap) == 1
    assert len(log) == 0
    assert log.recent() == []


def test_iso_format():
    assert to_iso(1_700_000_000_123) == "2023-11-14T22:13:20.123Z"
