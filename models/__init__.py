from datetime import datetime, time, date
from enum import Enum as PyEnum

from sqlalchemy import (
    DDL, ForeignKey, Index, CheckConstraint, Date, DateTime, Time,
    Integer, Float, String, Text, JSON, event,
)
from sqlalchemy.orm import relationship, Mapped, mapped_column

from extensions import db

# ---------- Enums ----------
class UserRole(str, PyEnum):
    MENTEE = "mentee"
    MENTOR = "mentor"

class BookingStatus(str, PyEnum):
    RESERVED = "reserved"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

# статусы, которые занимают время ментора
ACTIVE_BOOKING_STATUSES = (BookingStatus.RESERVED.value, BookingStatus.COMPLETED.value)

class ExceptionType(str, PyEnum):
    UNAVAILABLE = "unavailable"


# ---------- Association Tables ----------
mentor_expertises = db.Table(
    "mentor_expertises",
    db.Column("mentor_id", db.Integer, db.ForeignKey("mentors.user_id", ondelete="CASCADE"), primary_key=True),
    db.Column("expertise_id", db.Integer, db.ForeignKey("expertises.id", ondelete="CASCADE"), primary_key=True),
)

qualification_industries = db.Table(
    "qualification_industries",
    db.Column("industry_id", db.Integer, db.ForeignKey("industries.id", ondelete="CASCADE"), primary_key=True),
    db.Column("qualification_id", db.Integer, db.ForeignKey("qualifications.id", ondelete="CASCADE"), primary_key=True),
)

jobrole_industries = db.Table(
    "jobrole_industries",
    db.Column("industry_id", db.Integer, db.ForeignKey("industries.id", ondelete="CASCADE"), primary_key=True),
    db.Column("jobrole_id", db.Integer, db.ForeignKey("job_roles.id", ondelete="CASCADE"), primary_key=True),
)


# ---------- Reference tables ----------
class Qualification(db.Model):
    __tablename__ = "qualifications"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)

    def __repr__(self):
        return f"<Qualification {self.name}>"


class JobRole(db.Model):
    __tablename__ = "job_roles"

    id: Mapped[int] = mapped_column(primary_key=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)

    def __repr__(self):
        return f"<JobRole {self.title}>"


class Industry(db.Model):
    __tablename__ = "industries"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)

    qualifications = relationship("Qualification", secondary=qualification_industries, backref="industries")
    job_roles = relationship("JobRole", secondary=jobrole_industries, backref="industries")

    def __repr__(self):
        return f"<Industry {self.name}>"


class Expertise(db.Model):
    __tablename__ = "expertises"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(120), nullable=False, unique=True)


# ---------- Core Entities ----------
class User(db.Model):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    first_name: Mapped[str | None] = mapped_column(String(120))
    last_name: Mapped[str | None] = mapped_column(String(120))
    # mentee | mentor
    role: Mapped[str] = mapped_column(String(16), nullable=False, default=UserRole.MENTEE.value, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<User {self.email}>"


class Mentor(db.Model):
    __tablename__ = "mentors"

    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    title: Mapped[str | None] = mapped_column(String(255))
    company: Mapped[str | None] = mapped_column(String(255))
    bio: Mapped[str | None] = mapped_column(Text)
    years_experience: Mapped[int | None] = mapped_column(Integer)
    rating: Mapped[float | None] = mapped_column(Float)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="active")
    industry_id: Mapped[int | None] = mapped_column(ForeignKey("industries.id", ondelete="SET NULL"))
    job_role_id: Mapped[int | None] = mapped_column(ForeignKey("job_roles.id", ondelete="SET NULL"))
    education_qualification_id: Mapped[int | None] = mapped_column(ForeignKey("qualifications.id", ondelete="SET NULL"))
    availability: Mapped[str | None] = mapped_column(String(255))  # краткое описание для карточки
    unavailable_date_time: Mapped[dict | None] = mapped_column(JSON)

    user = relationship("User")
    expertises = relationship("Expertise", secondary=mentor_expertises, backref="mentors")
    schedule = relationship("WeeklyScheduleEntry", back_populates="mentor", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Mentor {self.user_id}>"


class MenteeProfile(db.Model):
    __tablename__ = "mentees"

    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    education_qualification_id: Mapped[int | None] = mapped_column(ForeignKey("qualifications.id", ondelete="SET NULL"))
    current_job_role_id: Mapped[int | None] = mapped_column(ForeignKey("job_roles.id", ondelete="SET NULL"))
    expected_job_role_id: Mapped[int | None] = mapped_column(ForeignKey("job_roles.id", ondelete="SET NULL"))
    experience_years: Mapped[int | None] = mapped_column(Integer)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    user = relationship("User")


class WeeklyScheduleEntry(db.Model):
    __tablename__ = "mentor_weekly_schedule"

    id: Mapped[int] = mapped_column(primary_key=True)
    mentor_id: Mapped[int] = mapped_column(ForeignKey("mentors.user_id", ondelete="CASCADE"), nullable=False)
    weekday: Mapped[int] = mapped_column(Integer, nullable=False)  # 0=Sun .. 6=Sat, как в клиенте
    start_time: Mapped[time] = mapped_column(Time, nullable=False)
    end_time: Mapped[time] = mapped_column(Time, nullable=False)
    timezone: Mapped[str] = mapped_column(String(64), nullable=False, default="UTC")

    mentor = relationship("Mentor", back_populates="schedule")

    __table_args__ = (
        CheckConstraint("weekday >= 0 AND weekday <= 6", name="ck_weekly_schedule_weekday"),
        Index("ix_weekly_schedule_mentor_weekday", "mentor_id", "weekday"),
    )


class TimeException(db.Model):
    __tablename__ = "mentor_time_exceptions"

    id: Mapped[int] = mapped_column(primary_key=True)
    mentor_id: Mapped[int] = mapped_column(ForeignKey("mentors.user_id", ondelete="CASCADE"), nullable=False)
    exception_date: Mapped[date] = mapped_column(Date, nullable=False)
    exception_type: Mapped[str] = mapped_column(String(32), nullable=False, default=ExceptionType.UNAVAILABLE.value)
    start_time: Mapped[time | None] = mapped_column(Time)
    end_time: Mapped[time | None] = mapped_column(Time)
    note: Mapped[str | None] = mapped_column(String(255))
    booking_id: Mapped[int | None] = mapped_column(ForeignKey("mentor_bookings.id", ondelete="CASCADE"))

    __table_args__ = (
        Index("ix_time_exceptions_mentor_date", "mentor_id", "exception_date"),
    )


class Booking(db.Model):
    __tablename__ = "mentor_bookings"

    id: Mapped[int] = mapped_column(primary_key=True)
    mentor_id: Mapped[int] = mapped_column(ForeignKey("mentors.user_id", ondelete="RESTRICT"), nullable=False)
    mentee_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="RESTRICT"), nullable=False)
    # всегда naive UTC
    start_time: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    end_time: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=BookingStatus.RESERVED.value)
    title: Mapped[str | None] = mapped_column(String(255))
    notes: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)

    mentor = relationship("Mentor")
    mentee = relationship("User")

    __table_args__ = (
        CheckConstraint("end_time > start_time", name="ck_bookings_range"),
        Index("ix_bookings_mentor_start", "mentor_id", "start_time"),
    )


class Resume(db.Model):
    __tablename__ = "resumes"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    file_url: Mapped[str] = mapped_column(String(1024), nullable=False)
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)


class MentorReview(db.Model):
    __tablename__ = "mentor_reviews"

    id: Mapped[int] = mapped_column(primary_key=True)
    mentor_id: Mapped[int] = mapped_column(ForeignKey("mentors.user_id", ondelete="CASCADE"), nullable=False, index=True)
    mentee_id: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"))
    mentee_name: Mapped[str | None] = mapped_column(String(255))
    rating: Mapped[float | None] = mapped_column(Float)
    review: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)

    mentee = relationship("User")


# ---------- Storage-level overlap guard ----------
# Последний рубеж против гонки check-then-insert: пересечение активных броней
# одного ментора запрещено самой БД.
_SQLITE_OVERLAP_CHECK = """
BEGIN
    SELECT RAISE(ABORT, 'booking_overlap')
    WHERE EXISTS (
        SELECT 1 FROM mentor_bookings b
        WHERE b.mentor_id = NEW.mentor_id
          AND b.id IS NOT NEW.id
          AND b.status IN ('reserved', 'completed')
          AND b.start_time < NEW.end_time
          AND NEW.start_time < b.end_time
    );
END
"""

event.listen(
    Booking.__table__, "after_create",
    DDL(
        "CREATE TRIGGER IF NOT EXISTS trg_bookings_no_overlap_insert "
        "BEFORE INSERT ON mentor_bookings "
        "WHEN NEW.status IN ('reserved', 'completed') " + _SQLITE_OVERLAP_CHECK
    ).execute_if(dialect="sqlite"),
)
event.listen(
    Booking.__table__, "after_create",
    DDL(
        "CREATE TRIGGER IF NOT EXISTS trg_bookings_no_overlap_update "
        "BEFORE UPDATE OF mentor_id, start_time, end_time, status ON mentor_bookings "
        "WHEN NEW.status IN ('reserved', 'completed') " + _SQLITE_OVERLAP_CHECK
    ).execute_if(dialect="sqlite"),
)
event.listen(
    Booking.__table__, "after_create",
    DDL("CREATE EXTENSION IF NOT EXISTS btree_gist").execute_if(dialect="postgresql"),
)
event.listen(
    Booking.__table__, "after_create",
    DDL(
        "ALTER TABLE mentor_bookings ADD CONSTRAINT ex_bookings_mentor_overlap "
        "EXCLUDE USING gist (mentor_id WITH =, tsrange(start_time, end_time, '[)') WITH &&) "
        "WHERE (status IN ('reserved', 'completed'))"
    ).execute_if(dialect="postgresql"),
)
