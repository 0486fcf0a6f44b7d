# fixtures/demo_directory.py
"""Демо-справочники и менторы с недельным графиком. Всё идемпотентно."""
from __future__ import annotations
from datetime import time
from typing import Dict

from sqlalchemy import select

from extensions import db
from models import (
    Expertise, Industry, JobRole, Mentor, MentorReview, Qualification, User, UserRole,
    WeeklyScheduleEntry,
)

def get_or_create(model, defaults=None, **filters):
    inst = db.session.scalar(select(model).filter_by(**filters))
    if inst:
        return inst, False
    data = dict(filters)
    if defaults:
        data.update(defaults)
    inst = model(**data)
    db.session.add(inst)
    db.session.flush()
    return inst, True

def seed_reference_data() -> Dict[str, int]:
    ids: Dict[str, int] = {}

    bsc, _ = get_or_create(Qualification, name="Bachelor of Science")
    mba, _ = get_or_create(Qualification, name="MBA")
    pm, _ = get_or_create(JobRole, title="Product Manager")
    swe, _ = get_or_create(JobRole, title="Software Engineer")
    tech, _ = get_or_create(Industry, name="Technology")
    fin, _ = get_or_create(Industry, name="Finance")

    if bsc not in tech.qualifications:
        tech.qualifications.append(bsc)
    if mba not in fin.qualifications:
        fin.qualifications.append(mba)
    for role in (pm, swe):
        if role not in tech.job_roles:
            tech.job_roles.append(role)

    for name in ("Product Strategy", "System Design", "Career Growth", "Interviewing"):
        get_or_create(Expertise, name=name)

    db.session.flush()
    ids.update(bsc=bsc.id, mba=mba.id, pm=pm.id, swe=swe.id, tech=tech.id, fin=fin.id)
    return ids

# email, имя, фамилия, должность, компания, лет опыта, рейтинг, зона, дни (0=Вс), часы
DEMO_MENTORS = (
    ("ada@example.com", "Ada", "Lovelace", "Staff Engineer", "Analytical", 9, 4.9,
     "Europe/London", (1, 3, 5), (time(9, 0), time(17, 0))),
    ("grace@example.com", "Grace", "Hopper", "Principal PM", "Navy Labs", 12, 4.7,
     "America/New_York", (1, 2, 3, 4), (time(10, 0), time(16, 0))),
)

def seed_demo_mentors(ids: Dict[str, int]) -> int:
    created = 0
    expertises = {e.name: e for e in db.session.scalars(select(Expertise))}
    for email, first, last, title, company, years, rating, tz, days, (start, end) in DEMO_MENTORS:
        user, _ = get_or_create(User, email=email, defaults={
            "first_name": first, "last_name": last, "role": UserRole.MENTOR.value,
        })
        mentor = db.session.get(Mentor, user.id)
        if mentor is not None:
            continue
        mentor = Mentor(
            user_id=user.id, title=title, company=company, years_experience=years, rating=rating,
            industry_id=ids["tech"], job_role_id=ids["pm"] if "PM" in title else ids["swe"],
            education_qualification_id=ids["bsc"], availability="Weekdays",
        )
        mentor.expertises = [expertises["Career Growth"], expertises["System Design"]]
        mentor.schedule = [
            WeeklyScheduleEntry(weekday=d, start_time=start, end_time=end, timezone=tz) for d in days
        ]
        db.session.add(mentor)
        db.session.flush()
        db.session.add(MentorReview(mentor_id=user.id, mentee_name="Demo Mentee", rating=5,
                                    review="Clear, practical advice."))
        created += 1
    return created

def seed_all() -> int:
    ids = seed_reference_data()
    created = seed_demo_mentors(ids)
    db.session.commit()
    return created
