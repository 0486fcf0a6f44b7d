# blueprints/availability/services.py
from __future__ import annotations
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Dict, Iterable, List, Optional, Union

from sqlalchemy import select
from sqlalchemy.orm import Session

from blueprints.core.errors import InvalidTime
from blueprints.core.temporal import (
    format_hhmm, local_steps, resolve_zone, to_naive_utc, to_utc_aware, utcnow,
)
from models import (
    ACTIVE_BOOKING_STATUSES, Booking, ExceptionType, TimeException, WeeklyScheduleEntry,
)

log = logging.getLogger(__name__)

SLOT_MINUTES = 60
FULL_DAY_LABEL = "full-day"


# ===== UnavailabilityMap: дата -> FullDay | Slots =====
class FullDay:
    """Весь день закрыт; после установки дата больше не принимает слоты."""
    __slots__ = ()

    def __repr__(self) -> str:
        return "FullDay"

FULL_DAY = FullDay()


@dataclass
class Slots:
    labels: set[str] = field(default_factory=set)

    def ordered(self) -> List[str]:
        return sorted(self.labels)


DayState = Union[FullDay, Slots]


class UnavailabilityMap:
    def __init__(self):
        self._days: Dict[str, DayState] = {}

    def __contains__(self, key: str) -> bool:
        return key in self._days

    def get(self, key: str) -> Optional[DayState]:
        return self._days.get(key)

    def mark_full_day(self, key: str) -> None:
        self._days[key] = FULL_DAY

    def add_slot(self, key: str, label: str | None) -> None:
        if not label:
            return
        state = self._days.get(key)
        if state is FULL_DAY:
            return
        if state is None:
            state = self._days[key] = Slots()
        state.labels.add(label)

    def add_range(self, start: datetime, end: datetime, increment_minutes: int = SLOT_MINUTES) -> None:
        """Разложить [start, end) на метки HH:MM; ключ: локальная дата каждого шага."""
        step = timedelta(minutes=increment_minutes)
        if end <= start:
            end = start + step
        cursor = start
        while cursor < end:
            self.add_slot(cursor.date().isoformat(), format_hhmm(cursor))
            cursor += step

    def to_json(self) -> Dict[str, Union[str, List[str]]]:
        out: Dict[str, Union[str, List[str]]] = {}
        for key in sorted(self._days):
            state = self._days[key]
            out[key] = FULL_DAY_LABEL if state is FULL_DAY else state.ordered()
        return out


@dataclass
class AvailabilityResult:
    working_hours: Dict[str, Optional[str]]
    working_days: List[int]
    unavailable: UnavailabilityMap
    timezone: str

    def to_dict(self) -> Dict:
        return {
            "workingHours": self.working_hours,
            "workingDays": self.working_days,
            "unavailableDateTime": self.unavailable.to_json(),
        }


EMPTY_AVAILABILITY = {"workingHours": None, "workingDays": [], "unavailableDateTime": {}}


# ===== загрузка =====
def _load_schedule(session: Session, mentor_id: int) -> List[WeeklyScheduleEntry]:
    stmt = (select(WeeklyScheduleEntry)
            .where(WeeklyScheduleEntry.mentor_id == mentor_id)
            .order_by(WeeklyScheduleEntry.weekday.asc(),
                      WeeklyScheduleEntry.start_time.asc(),
                      WeeklyScheduleEntry.id.asc()))
    return list(session.scalars(stmt))

def _load_exceptions(session: Session, mentor_id: int) -> List[TimeException]:
    stmt = (select(TimeException)
            .where(TimeException.mentor_id == mentor_id)
            .order_by(TimeException.exception_date.asc(), TimeException.start_time.asc()))
    return list(session.scalars(stmt))

def _load_future_bookings(session: Session, mentor_id: int, now: datetime) -> List[Booking]:
    stmt = (select(Booking)
            .where(Booking.mentor_id == mentor_id,
                   Booking.status.in_(ACTIVE_BOOKING_STATUSES),
                   Booking.start_time >= now)
            .order_by(Booking.start_time.asc()))
    return list(session.scalars(stmt))

def schedule_timezone(session: Session, mentor_id: int, default: str = "UTC") -> str:
    """Зона первой строки недельного графика, её же берёт workingHours."""
    rows = _load_schedule(session, mentor_id)
    if rows and rows[0].timezone:
        return rows[0].timezone
    return default


# ===== разбор строк =====
def _as_time(value) -> Optional[time]:
    if value is None:
        return None
    if isinstance(value, time):
        return value
    return time.fromisoformat(str(value)[:5])

def _exception_range(exc: TimeException, increment_minutes: int) -> Optional[tuple[datetime, datetime]]:
    start_t = _as_time(exc.start_time)
    end_t = _as_time(exc.end_time)
    if start_t is None:
        return None
    start = datetime.combine(exc.exception_date, start_t)
    if end_t is None:
        return start, start + timedelta(minutes=increment_minutes)
    end = datetime.combine(exc.exception_date, end_t)
    if end_t == time(0, 0) and start_t != time(0, 0):
        # 00:00 как конец: полночь следующего дня
        end += timedelta(days=1)
    if end <= start:
        raise ValueError(f"exception {exc.id}: end {end_t} is not after start {start_t}")
    return start, end

def _within(key: str, window: Optional[tuple[date, date]]) -> bool:
    if window is None:
        return True
    return window[0].isoformat() <= key <= window[1].isoformat()

def apply_exceptions(umap: UnavailabilityMap, rows: Iterable[TimeException], *,
                     increment_minutes: int = SLOT_MINUTES,
                     window: Optional[tuple[date, date]] = None) -> None:
    for exc in rows:
        try:
            key = exc.exception_date.isoformat()
            if not _within(key, window):
                continue
            if exc.exception_type == ExceptionType.UNAVAILABLE.value and exc.start_time is None and exc.end_time is None:
                umap.mark_full_day(key)
                continue
            rng = _exception_range(exc, increment_minutes)
            if rng is None:
                continue
            start, end = rng
            umap.add_range(start, end, increment_minutes)
        except (AttributeError, TypeError, ValueError) as e:
            log.warning("skipping malformed time exception id=%s: %s", getattr(exc, "id", None), e)

def apply_bookings(umap: UnavailabilityMap, rows: Iterable[Booking], zone, *,
                   increment_minutes: int = SLOT_MINUTES,
                   window: Optional[tuple[date, date]] = None) -> None:
    for b in rows:
        try:
            if to_utc_aware(b.end_time) <= to_utc_aware(b.start_time):
                raise ValueError(f"booking {b.id}: empty or inverted range")
            slots = list(local_steps(b.start_time, b.end_time, increment_minutes, zone))
            if not _within(slots[0].date, window):
                continue
            for slot in slots:
                umap.add_slot(slot.date, slot.start)
        except (AttributeError, TypeError, ValueError, OverflowError) as e:
            log.warning("skipping malformed booking id=%s: %s", getattr(b, "id", None), e)


# ===== фасад =====
def compute_availability(session: Session, mentor_id: int, *,
                         horizon_days: Optional[int] = None,
                         now: Optional[datetime] = None,
                         slot_minutes: int = SLOT_MINUTES) -> Optional[AvailabilityResult]:
    """
    Недельный график + исключения + будущие брони -> карта недоступности.
    None, если у ментора нет ни одной строки графика.
    """
    schedule = _load_schedule(session, mentor_id)
    if not schedule:
        return None

    first = schedule[0]
    tz_name = first.timezone or "UTC"
    working_hours = {
        "start": format_hhmm(first.start_time),
        "end": format_hhmm(first.end_time),
        "timezone": tz_name,
    }
    working_days = sorted({row.weekday for row in schedule})

    try:
        zone = resolve_zone(tz_name)
    except InvalidTime:
        log.warning("mentor %s has invalid schedule timezone %r, falling back to UTC", mentor_id, tz_name)
        zone = resolve_zone("UTC")

    now_utc = to_naive_utc(now) if now else utcnow()
    window = None
    if horizon_days is not None:
        today_local = to_utc_aware(now_utc).astimezone(zone).date()
        window = (today_local, today_local + timedelta(days=horizon_days))

    umap = UnavailabilityMap()
    apply_exceptions(umap, _load_exceptions(session, mentor_id),
                     increment_minutes=slot_minutes, window=window)
    apply_bookings(umap, _load_future_bookings(session, mentor_id, now_utc), zone,
                   increment_minutes=slot_minutes, window=window)

    return AvailabilityResult(
        working_hours=working_hours,
        working_days=working_days,
        unavailable=umap,
        timezone=tz_name,
    )
