from __future__ import annotations
from datetime import datetime, time, timedelta, timezone
import pytest

from blueprints.core.errors import InvalidTime, ValidationError
from blueprints.core import temporal as tm

@pytest.mark.parametrize("d,t,tz", [
    ("2025-06-02", "10:00", "UTC"),
    ("2025-03-30", "01:30", "Europe/Berlin"),
    ("2025-11-05", "23:45", "America/Los_Angeles"),
    ("2025-01-01", "00:00", "Asia/Kolkata"),
    ("2025-07-15", "08:15", "+05:30"),
    ("2025-07-15", "20:00", "-0800"),
])
def test_round_trip_recovers_date_and_start(d, t, tz):
    instant = tm.normalize(d, t, tz)
    slot = tm.to_local_slot(instant, 60, tz)
    assert slot.date == d
    assert slot.start == t

def test_normalize_returns_utc():
    instant = tm.normalize("2025-06-02", "10:00", "Europe/Berlin")
    assert instant.tzinfo is not None
    assert instant.utcoffset() == timedelta(0)
    assert (instant.hour, instant.minute) == (8, 0)

def test_seconds_are_truncated():
    instant = tm.normalize("2025-06-02", "10:00:59", "UTC")
    assert instant == datetime(2025, 6, 2, 10, 0, tzinfo=timezone.utc)
    assert tm.to_local_slot(instant, 30, "UTC").start == "10:00"

def test_missing_timezone_means_utc():
    assert tm.normalize("2025-06-02", "10:00", None) == tm.normalize("2025-06-02", "10:00", "UTC")

def test_dst_gap_is_rejected():
    # 02:30 не существует в Берлине 30 марта 2025
    with pytest.raises(InvalidTime):
        tm.normalize("2025-03-30", "02:30", "Europe/Berlin")

@pytest.mark.parametrize("d,t,tz", [
    ("2025-02-30", "10:00", "UTC"),
    ("not-a-date", "10:00", "UTC"),
    ("2025-06-02", "25:00", "UTC"),
    ("2025-06-02", "10:00", "Mars/Olympus"),
    ("2025-06-02", "10:00", "+15:00"),
])
def test_invalid_input_raises_validation_error(d, t, tz):
    with pytest.raises(ValidationError):
        tm.normalize(d, t, tz)

def test_offset_forms():
    assert tm.resolve_zone("UTC+3").utcoffset(None) == timedelta(hours=3)
    assert tm.resolve_zone("GMT-04:00").utcoffset(None) == timedelta(hours=-4)
    assert tm.resolve_zone("Z").utcoffset(None) == timedelta(0)

def test_local_slot_end_crosses_midnight():
    instant = tm.normalize("2025-06-02", "23:30", "UTC")
    slot = tm.to_local_slot(instant, 60, "UTC")
    assert (slot.date, slot.start, slot.end) == ("2025-06-02", "23:30", "00:30")

def test_format_hhmm_is_tolerant():
    assert tm.format_hhmm(time(9, 5)) == "09:05"
    assert tm.format_hhmm("17:00:00") == "17:00"
    assert tm.format_hhmm(None) is None
    assert tm.format_hhmm("") is None

def test_isoformat_utc_has_z_suffix():
    assert tm.isoformat_utc(datetime(2025, 6, 2, 10, 0)) == "2025-06-02T10:00:00Z"

def test_local_steps_keep_repeated_autumn_hour():
    # 2030-10-27 в Берлине 03:00 CEST -> 02:00 CET
    slots = list(tm.local_steps(datetime(2030, 10, 27, 0, 0), datetime(2030, 10, 27, 2, 0), 60, "Europe/Berlin"))
    assert [(s.date, s.start) for s in slots] == [("2030-10-27", "02:00"), ("2030-10-27", "02:00")]

def test_local_steps_skip_spring_gap():
    slots = list(tm.local_steps(datetime(2030, 3, 31, 0, 0), datetime(2030, 3, 31, 2, 0), 60, "Europe/Berlin"))
    assert [s.start for s in slots] == ["01:00", "03:00"]

def test_local_steps_reject_non_positive_step():
    with pytest.raises(ValueError):
        list(tm.local_steps(datetime(2030, 1, 1), datetime(2030, 1, 2), 0))

def test_day_chunks_split_at_local_midnight():
    chunks = list(tm.local_day_chunks(datetime(2030, 6, 3, 21, 30), datetime(2030, 6, 3, 22, 30), "Europe/Berlin"))
    assert [(d.isoformat(), s, e) for d, s, e in chunks] == [
        ("2030-06-03", time(23, 30), time(0, 0)),
        ("2030-06-04", time(0, 0), time(0, 30)),
    ]

def test_day_chunk_end_follows_elapsed_time_across_dst():
    autumn = list(tm.local_day_chunks(datetime(2030, 10, 27, 0, 30), datetime(2030, 10, 27, 1, 30), "Europe/Berlin"))
    spring = list(tm.local_day_chunks(datetime(2030, 3, 31, 0, 30), datetime(2030, 3, 31, 1, 30), "Europe/Berlin"))
    assert [(s, e) for _, s, e in autumn] == [(time(2, 30), time(3, 30))]
    assert [(s, e) for _, s, e in spring] == [(time(1, 30), time(2, 30))]
