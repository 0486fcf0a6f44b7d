from __future__ import annotations
from datetime import datetime, timedelta
import pytest

from app import create_app
from extensions import db
from models import MenteeProfile, Mentor, MentorReview, User
from blueprints.reviews.services import relative_label

@pytest.fixture()
def app_ctx():
    app = create_app("test")
    with app.app_context():
        db.create_all()
        db.session.add_all([
            User(id=7, email="mentor@example.com", first_name="Ada", role="mentor"),
            User(id=20, email="rev@example.com", first_name="Rita", last_name="Viewer", role="mentee"),
        ])
        db.session.flush()
        db.session.add(Mentor(user_id=7))
        db.session.commit()
        yield app
        db.session.remove()
        db.drop_all()

NOW = datetime(2030, 1, 10, 12, 0)

@pytest.mark.parametrize("delta,label", [
    (timedelta(seconds=5), "Just now"),
    (timedelta(seconds=-30), "Just now"),
    (timedelta(minutes=1), "1 minute ago"),
    (timedelta(hours=5), "5 hours ago"),
    (timedelta(days=3), "3 days ago"),
    (timedelta(days=14), "2 weeks ago"),
    (timedelta(days=65), "2 months ago"),
    (timedelta(days=400), "1 year ago"),
])
def test_relative_label(delta, label):
    assert relative_label(NOW - delta, NOW) == label

def test_relative_label_none():
    assert relative_label(None, NOW) is None

def test_reviews_newest_first_with_names(app_ctx):
    now = datetime.utcnow()
    db.session.add_all([
        MentorReview(mentor_id=7, mentee_id=20, rating=4, review="Good", created_at=now - timedelta(days=3)),
        MentorReview(mentor_id=7, mentee_name="  Sam  ", rating=5, review="Great", created_at=now - timedelta(hours=1)),
        MentorReview(mentor_id=7, rating=None, review=None, created_at=now - timedelta(days=10)),
    ])
    db.session.commit()
    r = app_ctx.test_client().get("/mentor-reviews/7")
    assert r.status_code == 200
    js = r.get_json()
    assert js["total"] == 3
    names = [x["name"] for x in js["reviews"]]
    assert names == ["Sam", "Rita Viewer", "Anonymous mentee"]
    first = js["reviews"][0]
    assert first["rating"] == 5.0
    assert first["date"] == "1 hour ago"
    assert first["createdAt"].endswith("Z")
    assert js["reviews"][2]["comment"] == ""
    assert js["reviews"][2]["rating"] == 0.0

def test_reviews_empty_and_invalid(app_ctx):
    client = app_ctx.test_client()
    assert client.get("/mentor-reviews/7").get_json() == {"reviews": [], "total": 0}
    assert client.get("/mentor-reviews/nope").status_code == 400

def test_mentee_profile_read(app_ctx):
    db.session.add(MenteeProfile(user_id=20, current_job_role_id=None, experience_years=3))
    db.session.commit()
    client = app_ctx.test_client()
    js = client.get("/mentees/20").get_json()
    assert js["userId"] == "20"
    assert js["experienceYears"] == 3
    assert js["currentJobRoleId"] is None
    assert client.get("/mentees/21").status_code == 404
    assert client.get("/mentees/x").status_code == 400
