# blueprints/core/temporal.py
"""
Приведение (дата, время, зона) к UTC-моменту и обратно к локальному слоту ментора.

Все моменты в БД хранятся как naive UTC; наружу отдаём ISO-8601 с суффиксом ``Z``.
Точность до минуты: секунды во входном времени отбрасываются.
"""
from __future__ import annotations
import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Iterator
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .errors import InvalidTime

UTC = timezone.utc

_OFFSET_RE = re.compile(r"^(?:UTC|GMT)?\s*([+-])(\d{1,2})(?::?(\d{2}))?$", re.IGNORECASE)


@dataclass(frozen=True)
class LocalSlot:
    date: str
    start: str
    end: str


def resolve_zone(tz: str | tzinfo | None) -> tzinfo:
    """IANA-имя, 'UTC'/'Z' или смещение вида '+05:30', '-0800', 'UTC+3'."""
    if isinstance(tz, tzinfo):
        return tz
    if tz is None or not str(tz).strip():
        return UTC
    name = str(tz).strip()
    if name.upper() in ("UTC", "Z", "GMT", "ETC/UTC"):
        return UTC
    m = _OFFSET_RE.match(name)
    if m:
        sign, hh, mm = m.group(1), int(m.group(2)), int(m.group(3) or 0)
        if hh > 14 or mm > 59:
            raise InvalidTime(f"Invalid UTC offset: {name}")
        delta = timedelta(hours=hh, minutes=mm)
        return timezone(-delta if sign == "-" else delta)
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise InvalidTime(f"Unknown timezone: {name}") from exc


def parse_date(value: str) -> date:
    try:
        return date.fromisoformat(str(value).strip())
    except (TypeError, ValueError) as exc:
        raise InvalidTime(f"Invalid date: {value}") from exc


def parse_time(value: str) -> time:
    try:
        t = time.fromisoformat(str(value).strip())
    except (TypeError, ValueError) as exc:
        raise InvalidTime(f"Invalid time: {value}") from exc
    if t.tzinfo is not None:
        raise InvalidTime(f"Time must not carry an offset: {value}")
    return t.replace(second=0, microsecond=0)


def normalize(date_str: str, time_str: str, tz: str | None = None) -> datetime:
    """Собрать зонированный момент и перевести в UTC (aware)."""
    d = parse_date(date_str)
    t = parse_time(time_str)
    zone = resolve_zone(tz)
    local = datetime.combine(d, t, tzinfo=zone)
    instant = local.astimezone(UTC)
    # несуществующее время (переход на летнее) не переживает обратного перевода
    back = instant.astimezone(zone)
    if (back.date(), back.time()) != (d, t):
        raise InvalidTime(f"{date_str} {time_str} does not exist in {tz}")
    return instant


def to_utc_aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def to_naive_utc(value: datetime) -> datetime:
    return to_utc_aware(value).replace(tzinfo=None)


def utcnow() -> datetime:
    return datetime.now(UTC).replace(tzinfo=None)


def to_local_slot(instant: datetime, duration_minutes: int, tz: str | tzinfo | None = None) -> LocalSlot:
    zone = resolve_zone(tz)
    start = to_utc_aware(instant).astimezone(zone).replace(second=0, microsecond=0)
    end = start + timedelta(minutes=duration_minutes)
    return LocalSlot(date=start.date().isoformat(), start=format_hhmm(start), end=format_hhmm(end))


def local_steps(start: datetime, end: datetime, step_minutes: int,
                tz: str | tzinfo | None = None) -> Iterator[LocalSlot]:
    """
    Слоты интервала [start, end) в локальном календаре зоны.

    Курсор шагает в UTC, каждый шаг переводится в зону отдельно: повторный
    час осени даёт свои слоты, пропущенный час весны слотов не даёт.
    """
    if step_minutes <= 0:
        raise ValueError("step must be positive")
    zone = resolve_zone(tz)
    cursor = to_utc_aware(start)
    stop = to_utc_aware(end)
    step = timedelta(minutes=step_minutes)
    while cursor < stop:
        yield to_local_slot(cursor, step_minutes, zone)
        cursor += step


def local_day_chunks(start: datetime, end: datetime,
                     tz: str | tzinfo | None = None) -> Iterator[tuple[date, time, time]]:
    """
    Разбить [start, end) по локальным датам: (дата, начало, конец).

    Конец куска равен локальному началу плюс реально прошедшее время;
    кусок до полуночи заканчивается в 00:00.
    """
    zone = resolve_zone(tz)
    cursor = to_utc_aware(start)
    stop = to_utc_aware(end)
    while cursor < stop:
        local = cursor.astimezone(zone)
        midnight = datetime.combine(local.date() + timedelta(days=1), time(0, 0), tzinfo=zone).astimezone(UTC)
        chunk_end = min(stop, midnight)
        wall_start = local.replace(tzinfo=None, second=0, microsecond=0)
        wall_end = wall_start + (chunk_end - cursor)
        if chunk_end == midnight or wall_end.date() != wall_start.date():
            end_t = time(0, 0)
        else:
            end_t = wall_end.time()
        yield local.date(), wall_start.time(), end_t
        cursor = chunk_end


def format_hhmm(value) -> str | None:
    if value is None:
        return None
    if isinstance(value, str):
        return value[:5] if value else None
    try:
        return value.strftime("%H:%M")
    except (AttributeError, ValueError):
        return None


def isoformat_utc(value: datetime) -> str:
    return to_utc_aware(value).isoformat(timespec="seconds").replace("+00:00", "Z")
