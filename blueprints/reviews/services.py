# blueprints/reviews/services.py
from __future__ import annotations
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from blueprints.core.temporal import isoformat_utc, utcnow
from models import MentorReview

ANONYMOUS = "Anonymous mentee"

_INTERVALS = (
    ("year", 60 * 60 * 24 * 365),
    ("month", 60 * 60 * 24 * 30),
    ("week", 60 * 60 * 24 * 7),
    ("day", 60 * 60 * 24),
    ("hour", 60 * 60),
    ("minute", 60),
)

def relative_label(moment: Optional[datetime], now: Optional[datetime] = None) -> Optional[str]:
    if moment is None:
        return None
    seconds = int(((now or utcnow()) - moment).total_seconds())
    if seconds < 60:
        return "Just now"
    for label, size in _INTERVALS:
        count = seconds // size
        if count >= 1:
            return f"{count} {label}{'s' if count > 1 else ''} ago"
    return "Just now"

def _reviewer_name(review: MentorReview) -> str:
    name = (review.mentee_name or "").strip()
    if not name and review.mentee is not None:
        name = " ".join(p for p in (review.mentee.first_name, review.mentee.last_name) if p).strip()
    return name or ANONYMOUS

def list_reviews(session: Session, mentor_id: int, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
    stmt = (select(MentorReview)
            .where(MentorReview.mentor_id == mentor_id)
            .options(selectinload(MentorReview.mentee))
            .order_by(MentorReview.created_at.desc(), MentorReview.id.desc()))
    return [
        {
            "id": r.id,
            "name": _reviewer_name(r),
            "rating": float(r.rating or 0),
            "comment": r.review or "",
            "date": relative_label(r.created_at, now),
            "createdAt": isoformat_utc(r.created_at) if r.created_at else None,
        }
        for r in session.scalars(stmt)
    ]
