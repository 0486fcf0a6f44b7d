# blueprints/bookings/services.py
from __future__ import annotations
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterator, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from blueprints.availability.services import schedule_timezone
from blueprints.core.errors import (
    BookingEngineError, ConflictError, Failure, InvalidTime, NotFound, ValidationError,
)
from blueprints.core.temporal import isoformat_utc, local_day_chunks, normalize, resolve_zone, to_naive_utc
from models import (
    ACTIVE_BOOKING_STATUSES, Booking, BookingStatus, ExceptionType, JobRole, MenteeProfile, Mentor,
    Qualification, Resume, TimeException, User, UserRole,
)
from .artifacts import ArtifactError, ArtifactStore, decode_content
from .schemas import BookingRequest, CvIn, MenteeIn, UserIn

log = logging.getLogger(__name__)

SESSION_MINUTES = 60
BOOKING_TITLE = "Mentorship session"
CONFIRMED_MESSAGE = "Booking confirmed – check your email for next steps."
DERIVED_EXCEPTION_NOTE = "Booked session"

# маркеры нарушения защиты от пересечений: триггер SQLite и EXCLUDE в Postgres
_OVERLAP_MARKERS = ("booking_overlap", "ex_bookings_mentor_overlap")
_PG_EXCLUSION_VIOLATION = "23P01"


@dataclass
class BookingConfirmation:
    booking_id: int
    mentor_id: int
    start_time: datetime
    end_time: datetime
    status: str

    def to_dict(self) -> dict:
        return {
            "bookingId": str(self.booking_id),
            "mentorId": str(self.mentor_id),
            "startTime": isoformat_utc(self.start_time),
            "endTime": isoformat_utc(self.end_time),
            "status": self.status,
            "message": CONFIRMED_MESSAGE,
        }


@contextmanager
def transaction(session: Session) -> Iterator[Session]:
    """Единица работы: commit при успехе, rollback при любой ошибке."""
    try:
        yield session
        session.commit()
    except BaseException:
        session.rollback()
        raise


def is_overlap_violation(exc: IntegrityError) -> bool:
    orig = getattr(exc, "orig", None)
    if getattr(orig, "pgcode", None) == _PG_EXCLUSION_VIOLATION:
        return True
    text = str(orig if orig is not None else exc)
    return any(marker in text for marker in _OVERLAP_MARKERS)


# ===== шаги единицы работы =====
def upsert_user(session: Session, data: UserIn) -> User:
    """По email: создать, либо обновить имя. Роль и email не трогаем."""
    user = session.scalar(select(User).where(User.email == data.email))
    if user is None:
        user = User(
            email=data.email,
            first_name=data.first_name,
            last_name=data.last_name,
            role=UserRole.MENTEE.value,
        )
        session.add(user)
    else:
        if data.first_name is not None:
            user.first_name = data.first_name
        if data.last_name is not None:
            user.last_name = data.last_name
    session.flush()
    return user

def check_mentee_references(session: Session, data: MenteeIn) -> None:
    refs = (
        ("educationQualificationId", Qualification, data.education_qualification_id),
        ("currentJobRoleId", JobRole, data.current_job_role_id),
        ("expectedJobRoleId", JobRole, data.expected_job_role_id),
    )
    missing = [name for name, model, ref_id in refs if ref_id is not None and session.get(model, ref_id) is None]
    if missing:
        raise ValidationError("Unknown reference ids", details={"mentee": missing})

def upsert_mentee_profile(session: Session, user_id: int, data: MenteeIn) -> MenteeProfile:
    # last-write-wins: поля перезаписываются целиком, включая None
    profile = session.get(MenteeProfile, user_id)
    if profile is None:
        profile = MenteeProfile(user_id=user_id)
        session.add(profile)
    profile.education_qualification_id = data.education_qualification_id
    profile.current_job_role_id = data.current_job_role_id
    profile.expected_job_role_id = data.expected_job_role_id
    profile.experience_years = data.experience_years
    session.flush()
    return profile

def find_overlapping(session: Session, mentor_id: int, start: datetime, end: datetime) -> Optional[int]:
    """Полуинтервалы [a, b) и [c, d) пересекаются, если a < d и c < b."""
    stmt = (select(Booking.id)
            .where(Booking.mentor_id == mentor_id,
                   Booking.status.in_(ACTIVE_BOOKING_STATUSES),
                   Booking.start_time < end,
                   start < Booking.end_time)
            .limit(1))
    return session.scalar(stmt)

def derived_exceptions(booking: Booking, tz_name: str) -> List[TimeException]:
    """Бронь в локальном календаре ментора; по строке на каждую затронутую дату."""
    try:
        zone = resolve_zone(tz_name)
    except InvalidTime:
        log.warning("mentor %s has invalid schedule timezone %r, using UTC", booking.mentor_id, tz_name)
        zone = resolve_zone("UTC")
    return [
        TimeException(
            mentor_id=booking.mentor_id,
            exception_date=day,
            exception_type=ExceptionType.UNAVAILABLE.value,
            start_time=start_t,
            end_time=end_t,
            note=DERIVED_EXCEPTION_NOTE,
            booking_id=booking.id,
        )
        for day, start_t, end_t in local_day_chunks(booking.start_time, booking.end_time, zone)
    ]

def _store_cv(store: Optional[ArtifactStore], owner: str, cv: CvIn, max_bytes: int) -> str:
    if cv.file_url:
        return cv.file_url
    data = decode_content(cv.content or "", max_bytes)
    if store is None:
        raise Failure("Failed to upload resume. Please try again.")
    try:
        return store.put(owner=owner, file_name=cv.file_name, data=data, content_type=cv.content_type)
    except ArtifactError as exc:
        log.error("resume upload failed for %s: %s", owner, exc)
        raise Failure("Failed to upload resume. Please try again.") from exc

def _discard_cv(store: Optional[ArtifactStore], url: Optional[str]) -> None:
    """Убрать загруженный файл, если бронь откатилась."""
    if store is None or url is None:
        return
    try:
        store.delete(url)
    except ArtifactError as exc:
        log.warning("orphan resume left at %s: %s", url, exc)


# ===== фасад =====
def create_booking(session: Session, mentor_id: int, request: BookingRequest, *,
                   artifact_store: Optional[ArtifactStore] = None,
                   session_minutes: int = SESSION_MINUTES,
                   title: str = BOOKING_TITLE,
                   default_timezone: str = "UTC",
                   max_cv_bytes: int = 5 * 1024 * 1024) -> BookingConfirmation:
    """
    Проверить пересечение и вставить бронь одной транзакцией.

    Вместе с бронью upsert-ятся пользователь (по email) и профиль менти,
    при наличии резюме привязывается файл, и в календарь ментора пишется
    производное исключение. Ошибка на любом шаге откатывает всё.
    """
    booking_in = request.booking

    # валидация до любых изменений в БД
    start_aware = normalize(booking_in.date, booking_in.time, booking_in.timezone or default_timezone)
    start = to_naive_utc(start_aware)
    end = start + timedelta(minutes=session_minutes)

    if session.get(Mentor, mentor_id) is None:
        raise NotFound("Mentor not found")
    check_mentee_references(session, request.mentee)

    # загрузка файла до вставки строк
    cv_url = uploaded = None
    if booking_in.cv is not None:
        cv_url = _store_cv(artifact_store, request.user.email, booking_in.cv, max_cv_bytes)
        if not booking_in.cv.file_url:
            uploaded = cv_url

    try:
        with transaction(session):
            user = upsert_user(session, request.user)
            upsert_mentee_profile(session, user.id, request.mentee)

            if cv_url is not None:
                session.add(Resume(user_id=user.id, file_url=cv_url, file_name=booking_in.cv.file_name))

            clash = find_overlapping(session, mentor_id, start, end)
            if clash is not None:
                log.warning("slot taken: mentor=%s start=%s clashes with booking %s", mentor_id, start, clash)
                raise ConflictError()

            booking = Booking(
                mentor_id=mentor_id,
                mentee_id=user.id,
                start_time=start,
                end_time=end,
                status=BookingStatus.RESERVED.value,
                title=title,
                notes=booking_in.session_expectations,
            )
            session.add(booking)
            session.flush()

            tz_name = schedule_timezone(session, mentor_id, default=default_timezone)
            session.add_all(derived_exceptions(booking, tz_name))
            session.flush()
    except BookingEngineError:
        _discard_cv(artifact_store, uploaded)
        raise
    except IntegrityError as exc:
        _discard_cv(artifact_store, uploaded)
        if is_overlap_violation(exc):
            log.warning("overlap guard rejected booking for mentor=%s start=%s", mentor_id, start)
            raise ConflictError() from exc
        log.exception("integrity error while creating booking for mentor=%s", mentor_id)
        raise Failure("Failed to create booking. Please try again.") from exc
    except SQLAlchemyError as exc:
        _discard_cv(artifact_store, uploaded)
        log.exception("failed to create booking for mentor=%s", mentor_id)
        raise Failure("Failed to create booking. Please try again.") from exc

    log.info("booking created", extra={"mentor_id": mentor_id, "booking_id": booking.id})
    return BookingConfirmation(
        booking_id=booking.id,
        mentor_id=booking.mentor_id,
        start_time=booking.start_time,
        end_time=booking.end_time,
        status=booking.status,
    )
