from __future__ import annotations
from datetime import date, datetime, time
import logging
import threading
import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from app import create_app
from extensions import db
from models import (
    Booking, JobRole, MenteeProfile, Mentor, Qualification, Resume, TimeException, User,
    WeeklyScheduleEntry,
)
from blueprints.bookings import services as svc
from blueprints.bookings.artifacts import ArtifactError, LocalArtifactStore

CONFLICT_MSG = "This time slot has just been booked. Please choose another time."

def _seed_directory():
    db.session.add_all([
        User(id=7, email="mentor7@example.com", first_name="Ada", last_name="L", role="mentor"),
        Qualification(id=1, name="BSc"),
        JobRole(id=1, title="Product Manager"),
        JobRole(id=2, title="Engineer"),
    ])
    db.session.flush()
    db.session.add(Mentor(user_id=7, title="Staff Engineer"))
    db.session.add(WeeklyScheduleEntry(mentor_id=7, weekday=1, start_time=time(9, 0),
                                       end_time=time(17, 0), timezone="UTC"))
    db.session.commit()

@pytest.fixture()
def app_ctx():
    app = create_app("test")
    with app.app_context():
        db.create_all()
        _seed_directory()
        yield app
        db.session.remove()
        db.drop_all()

@pytest.fixture()
def client(app_ctx):
    return app_ctx.test_client()

def _payload(email="mia@example.com", d="2025-06-02", t="10:00", tz="UTC", mentee=None, **booking):
    body = {
        "user": {"email": email, "firstName": "Mia", "lastName": "Wong"},
        "mentee": mentee if mentee is not None else {
            "educationQualificationId": 1, "currentJobRoleId": 2,
            "expectedJobRoleId": 1, "experienceYears": 3,
        },
        "booking": {"date": d, "time": t, "timezone": tz, **booking},
    }
    return body

def _count(model):
    return db.session.scalar(select(func.count()).select_from(model))


# ---------- happy path / conflicts ----------
def test_book_then_conflict(client):
    r1 = client.post("/mentors/7/bookings", json=_payload())
    assert r1.status_code == 201, r1.get_json()
    js = r1.get_json()
    assert js["mentorId"] == "7"
    assert isinstance(js["bookingId"], str)
    assert js["startTime"] == "2025-06-02T10:00:00Z"
    assert js["endTime"] == "2025-06-02T11:00:00Z"
    assert js["status"] == "reserved"
    assert js["message"] == svc.CONFIRMED_MESSAGE

    r2 = client.post("/mentors/7/bookings", json=_payload(email="other@example.com"))
    assert r2.status_code == 409
    assert r2.get_json()["message"] == CONFLICT_MSG
    assert _count(Booking) == 1
    # конфликт откатил и пользователя второго запроса
    assert db.session.scalar(select(User).where(User.email == "other@example.com")) is None

def test_zoned_request_is_stored_in_utc(client):
    r = client.post("/mentors/7/bookings", json=_payload(d="2030-06-03", t="12:00", tz="Europe/Berlin"))
    assert r.status_code == 201
    assert r.get_json()["startTime"] == "2030-06-03T10:00:00Z"
    b = db.session.scalar(select(Booking))
    assert b.start_time == datetime(2030, 6, 3, 10, 0)
    assert b.title == "Mentorship session"

def test_partial_overlap_conflicts_adjacent_does_not(client):
    assert client.post("/mentors/7/bookings", json=_payload(t="10:00")).status_code == 201
    assert client.post("/mentors/7/bookings", json=_payload(email="b@example.com", t="10:30")).status_code == 409
    assert client.post("/mentors/7/bookings", json=_payload(email="c@example.com", t="11:00")).status_code == 201
    assert client.post("/mentors/7/bookings", json=_payload(email="d@example.com", t="09:00")).status_code == 201

def test_cancelled_booking_does_not_block(client):
    db.session.add(User(id=50, email="old@example.com", role="mentee"))
    db.session.add(Booking(mentor_id=7, mentee_id=50, start_time=datetime(2025, 6, 2, 10, 0),
                           end_time=datetime(2025, 6, 2, 11, 0), status="cancelled"))
    db.session.commit()
    assert client.post("/mentors/7/bookings", json=_payload()).status_code == 201

def test_completed_booking_blocks(client):
    db.session.add(User(id=50, email="old@example.com", role="mentee"))
    db.session.add(Booking(mentor_id=7, mentee_id=50, start_time=datetime(2025, 6, 2, 10, 0),
                           end_time=datetime(2025, 6, 2, 11, 0), status="completed"))
    db.session.commit()
    assert client.post("/mentors/7/bookings", json=_payload()).status_code == 409

def test_sequential_attempts_one_winner(client):
    codes = [
        client.post("/mentors/7/bookings", json=_payload(email=f"m{i}@example.com")).status_code
        for i in range(5)
    ]
    assert codes.count(201) == 1
    assert codes.count(409) == 4

def test_concurrent_attempts_one_winner(tmp_path):
    # файловая БД: у каждого потока своё соединение и своя транзакция
    app = create_app(
        "test",
        SQLALCHEMY_DATABASE_URI=f"sqlite:///{tmp_path / 'race.db'}",
        SQLALCHEMY_ENGINE_OPTIONS={"connect_args": {"timeout": 30, "check_same_thread": False}},
    )
    with app.app_context():
        db.create_all()
        _seed_directory()
        db.session.remove()

    n = 8
    barrier = threading.Barrier(n)
    codes = []

    def attempt(i):
        with app.test_client() as c:
            barrier.wait(timeout=30)
            r = c.post("/mentors/7/bookings", json=_payload(email=f"racer{i}@example.com"))
            codes.append(r.status_code)

    threads = [threading.Thread(target=attempt, args=(i,)) for i in range(n)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=60)

    assert sorted(codes) == [201] + [409] * (n - 1)
    with app.app_context():
        assert _count(Booking) == 1
        assert _count(TimeException) == 1
        assert _count(User) == 2  # ментор и победитель
        db.session.remove()
        db.engine.dispose()

def test_conflict_is_logged(client, caplog):
    client.post("/mentors/7/bookings", json=_payload())
    with caplog.at_level(logging.WARNING, logger="blueprints.bookings.services"):
        client.post("/mentors/7/bookings", json=_payload(email="x@example.com"))
    assert "slot taken" in caplog.text

def test_booking_created_is_logged_with_ids(client, caplog):
    with caplog.at_level(logging.INFO, logger="blueprints.bookings.services"):
        r = client.post("/mentors/7/bookings", json=_payload())
    created = [rec for rec in caplog.records if rec.getMessage() == "booking created"]
    assert len(created) == 1
    assert created[0].mentor_id == 7
    assert created[0].booking_id == int(r.get_json()["bookingId"])


# ---------- storage guard ----------
def test_storage_guard_rejects_overlapping_insert(app_ctx):
    db.session.add(User(id=50, email="a@example.com", role="mentee"))
    db.session.add(Booking(mentor_id=7, mentee_id=50, start_time=datetime(2030, 1, 7, 10, 0),
                           end_time=datetime(2030, 1, 7, 11, 0)))
    db.session.commit()

    db.session.add(Booking(mentor_id=7, mentee_id=50, start_time=datetime(2030, 1, 7, 10, 30),
                           end_time=datetime(2030, 1, 7, 11, 30)))
    with pytest.raises(IntegrityError) as ei:
        db.session.commit()
    db.session.rollback()
    assert svc.is_overlap_violation(ei.value)

    # отменённая бронь в тот же интервал допустима
    db.session.add(Booking(mentor_id=7, mentee_id=50, start_time=datetime(2030, 1, 7, 10, 30),
                           end_time=datetime(2030, 1, 7, 11, 30), status="cancelled"))
    db.session.commit()
    assert _count(Booking) == 2

def test_storage_guard_rejects_overlapping_update(app_ctx):
    db.session.add(User(id=50, email="a@example.com", role="mentee"))
    db.session.add(Booking(mentor_id=7, mentee_id=50, start_time=datetime(2030, 1, 7, 10, 0),
                           end_time=datetime(2030, 1, 7, 11, 0)))
    other = Booking(mentor_id=7, mentee_id=50, start_time=datetime(2030, 1, 7, 10, 0),
                    end_time=datetime(2030, 1, 7, 11, 0), status="cancelled")
    db.session.add(other)
    db.session.commit()

    other.status = "reserved"
    with pytest.raises(IntegrityError):
        db.session.commit()
    db.session.rollback()

def test_race_past_application_check_is_still_conflict(client, monkeypatch):
    assert client.post("/mentors/7/bookings", json=_payload()).status_code == 201
    # имитируем гонку: проверка пересечения «не видит» соседнюю транзакцию
    monkeypatch.setattr(svc, "find_overlapping", lambda *a, **kw: None)
    r = client.post("/mentors/7/bookings", json=_payload(email="racer@example.com"))
    assert r.status_code == 409
    assert r.get_json()["message"] == CONFLICT_MSG
    assert _count(Booking) == 1
    assert db.session.scalar(select(User).where(User.email == "racer@example.com")) is None


# ---------- validation / not found ----------
@pytest.mark.parametrize("body", [
    None,
    {},
    {"user": {"email": "mia@example.com"}, "mentee": {}},
    {"user": {"email": "not-an-email"}, "mentee": {}, "booking": {"date": "2025-06-02", "time": "10:00"}},
    {"user": {"email": "mia@example.com"}, "mentee": {"experienceYears": -1},
     "booking": {"date": "2025-06-02", "time": "10:00"}},
])
def test_malformed_payload_is_400(client, body):
    r = client.post("/mentors/7/bookings", json=body) if body is not None else \
        client.post("/mentors/7/bookings", data="nope", content_type="text/plain")
    assert r.status_code == 400
    assert r.get_json()["error"] == "validation_error"
    assert _count(User) == 1  # только ментор из фикстуры

@pytest.mark.parametrize("d,t,tz", [
    ("2025-13-01", "10:00", "UTC"),
    ("2025-06-02", "10:75", "UTC"),
    ("2025-06-02", "10:00", "Mars/Base"),
    ("2025-03-30", "02:30", "Europe/Berlin"),
])
def test_invalid_time_is_400(client, d, t, tz):
    r = client.post("/mentors/7/bookings", json=_payload(d=d, t=t, tz=tz))
    assert r.status_code == 400
    assert r.get_json()["error"] == "invalid_time"
    assert _count(Booking) == 0

def test_unknown_mentor_is_404(client):
    r = client.post("/mentors/999/bookings", json=_payload())
    assert r.status_code == 404
    assert _count(User) == 1

def test_non_numeric_mentor_is_400(client):
    assert client.post("/mentors/abc/bookings", json=_payload()).status_code == 400

def test_unknown_reference_ids_are_400(client):
    r = client.post("/mentors/7/bookings", json=_payload(mentee={"currentJobRoleId": 99}))
    assert r.status_code == 400
    assert r.get_json()["details"] == {"mentee": ["currentJobRoleId"]}


# ---------- upserts ----------
def test_profile_upsert_is_idempotent(client):
    body = _payload()
    assert client.post("/mentors/7/bookings", json=body).status_code == 201
    first = db.session.get(MenteeProfile, db.session.scalar(select(User.id).where(User.email == "mia@example.com")))
    snapshot = (first.education_qualification_id, first.current_job_role_id,
                first.expected_job_role_id, first.experience_years)

    body2 = _payload(t="13:00")
    assert client.post("/mentors/7/bookings", json=body2).status_code == 201
    db.session.expire_all()
    second = db.session.get(MenteeProfile, first.user_id)
    assert (second.education_qualification_id, second.current_job_role_id,
            second.expected_job_role_id, second.experience_years) == snapshot
    assert _count(MenteeProfile) == 1
    assert db.session.scalar(select(func.count()).select_from(User).where(User.email == "mia@example.com")) == 1

def test_profile_last_write_wins(client):
    client.post("/mentors/7/bookings", json=_payload())
    client.post("/mentors/7/bookings", json=_payload(t="14:00", mentee={"currentJobRoleId": 1}))
    db.session.expire_all()
    p = db.session.scalar(select(MenteeProfile))
    assert p.current_job_role_id == 1
    assert p.education_qualification_id is None
    assert p.experience_years is None

def test_user_email_is_case_insensitive_and_names_update(client):
    client.post("/mentors/7/bookings", json=_payload(email="Mia@Example.com"))
    body = _payload(email="mia@example.com", t="15:00")
    body["user"] = {"email": "mia@example.com", "firstName": "Mila"}
    client.post("/mentors/7/bookings", json=body)
    db.session.expire_all()
    u = db.session.scalar(select(User).where(User.email == "mia@example.com"))
    assert (u.first_name, u.last_name) == ("Mila", "Wong")
    assert u.role == "mentee"


# ---------- derived exceptions ----------
def test_booking_writes_derived_exception_in_mentor_timezone(client):
    db.session.execute(WeeklyScheduleEntry.__table__.update().values(timezone="Europe/Berlin"))
    db.session.commit()
    r = client.post("/mentors/7/bookings", json=_payload(d="2030-06-03", t="10:00", tz="UTC"))
    assert r.status_code == 201
    exc = db.session.scalar(select(TimeException))
    assert exc.exception_date == date(2030, 6, 3)
    assert (exc.start_time, exc.end_time) == (time(12, 0), time(13, 0))
    assert exc.note == "Booked session"
    assert exc.booking_id == int(r.get_json()["bookingId"])

def test_derived_exception_split_at_midnight(client):
    r = client.post("/mentors/7/bookings", json=_payload(d="2030-06-03", t="23:30"))
    assert r.status_code == 201
    rows = db.session.scalars(select(TimeException).order_by(TimeException.exception_date)).all()
    assert [(x.exception_date, x.start_time, x.end_time) for x in rows] == [
        (date(2030, 6, 3), time(23, 30), time(0, 0)),
        (date(2030, 6, 4), time(0, 0), time(0, 30)),
    ]

@pytest.mark.parametrize("d,label,wall_end", [
    # 00:30-01:30 UTC: 02:30 CEST -> 02:30 CET, повторный час осени
    ("2030-10-27", "02:30", time(3, 30)),
    # 00:30-01:30 UTC: 01:30 CET -> 03:30 CEST, пропущенный час весны
    ("2030-03-31", "01:30", time(2, 30)),
])
def test_booking_across_dst_switch_blocks_its_slot(client, d, label, wall_end):
    db.session.execute(WeeklyScheduleEntry.__table__.update().values(timezone="Europe/Berlin"))
    db.session.commit()
    r = client.post("/mentors/7/bookings", json=_payload(d=d, t="00:30"))
    assert r.status_code == 201
    exc = db.session.scalar(select(TimeException))
    assert (exc.exception_date.isoformat(), exc.start_time.strftime("%H:%M"), exc.end_time) == (d, label, wall_end)
    assert exc.booking_id == int(r.get_json()["bookingId"])
    js = client.get("/mentors/7/availability").get_json()
    assert js["unavailableDateTime"] == {d: [label]}

def test_availability_reflects_new_booking(client):
    client.post("/mentors/7/bookings", json=_payload(d="2030-06-03", t="10:00"))
    js = client.get("/mentors/7/availability").get_json()
    assert js["unavailableDateTime"] == {"2030-06-03": ["10:00"]}


# ---------- cv ----------
class _FailingStore:
    def put(self, **kw):
        raise ArtifactError("disk full")

def test_cv_upload_failure_persists_nothing(app_ctx, client):
    app_ctx.extensions["artifact_store"] = _FailingStore()
    r = client.post("/mentors/7/bookings",
                    json=_payload(cv={"fileName": "cv.pdf", "content": "aGVsbG8="}))
    assert r.status_code == 500
    assert r.get_json()["error"] == "failure"
    assert _count(Booking) == 0
    assert _count(Resume) == 0
    assert _count(User) == 1

def test_cv_content_is_stored_and_linked(app_ctx, client, tmp_path):
    app_ctx.extensions["artifact_store"] = LocalArtifactStore(tmp_path)
    r = client.post("/mentors/7/bookings",
                    json=_payload(cv={"fileName": "my cv.pdf", "content": "aGVsbG8="}))
    assert r.status_code == 201
    resume = db.session.scalar(select(Resume))
    assert resume.file_name == "my cv.pdf"
    assert resume.file_url.startswith("file://")
    stored = list(tmp_path.rglob("*my_cv.pdf"))
    assert len(stored) == 1 and stored[0].read_bytes() == b"hello"

def test_cv_removed_when_booking_conflicts(app_ctx, client, tmp_path):
    app_ctx.extensions["artifact_store"] = LocalArtifactStore(tmp_path)
    cv = {"fileName": "cv.pdf", "content": "aGVsbG8="}
    assert client.post("/mentors/7/bookings", json=_payload(cv=cv)).status_code == 201
    r = client.post("/mentors/7/bookings", json=_payload(email="late@example.com", cv=cv))
    assert r.status_code == 409
    assert _count(Resume) == 1
    stored = list(tmp_path.rglob("*cv.pdf"))
    assert len(stored) == 1
    assert stored[0].parent.name == "mia_at_example.com"

def test_cv_removed_when_storage_guard_rejects(app_ctx, client, tmp_path, monkeypatch):
    app_ctx.extensions["artifact_store"] = LocalArtifactStore(tmp_path)
    assert client.post("/mentors/7/bookings", json=_payload()).status_code == 201
    monkeypatch.setattr(svc, "find_overlapping", lambda *a, **kw: None)
    r = client.post("/mentors/7/bookings",
                    json=_payload(email="racer@example.com", cv={"fileName": "cv.pdf", "content": "aGVsbG8="}))
    assert r.status_code == 409
    assert list(tmp_path.rglob("*cv.pdf")) == []

def test_local_store_delete(tmp_path):
    store = LocalArtifactStore(tmp_path)
    url = store.put(owner="a@example.com", file_name="cv.pdf", data=b"x")
    store.delete(url)
    assert list(tmp_path.rglob("*cv.pdf")) == []
    store.delete(url)  # повторное удаление не ошибка
    with pytest.raises(ArtifactError):
        store.delete("https://files.example.com/cv.pdf")
    with pytest.raises(ArtifactError):
        store.delete((tmp_path.parent / "elsewhere.pdf").resolve().as_uri())

def test_cv_url_is_linked_without_upload(app_ctx, client):
    app_ctx.extensions["artifact_store"] = _FailingStore()
    r = client.post("/mentors/7/bookings",
                    json=_payload(cv={"fileName": "cv.pdf", "fileUrl": "https://files.example.com/cv.pdf"}))
    assert r.status_code == 201
    assert db.session.scalar(select(Resume.file_url)) == "https://files.example.com/cv.pdf"

@pytest.mark.parametrize("cv", [
    {"fileName": "cv.pdf", "content": "%%%not base64%%%"},
    {"fileName": "cv.pdf"},
    {"fileName": "cv.pdf", "content": "aGVsbG8=", "fileUrl": "https://x/cv.pdf"},
])
def test_bad_cv_is_400(client, cv):
    r = client.post("/mentors/7/bookings", json=_payload(cv=cv))
    assert r.status_code == 400
    assert _count(Booking) == 0
