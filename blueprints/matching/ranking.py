# blueprints/matching/ranking.py
from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from extensions import db
from models import Mentor, MentorReview

DEFAULT_LIMIT = 20

class RankingStrategy(Protocol):
    def rank(self, education_level_id: Optional[int], job_role_id: Optional[int],
             industry_id: Optional[int], experience_years: int) -> List[Dict[str, Any]]:
        ...

@dataclass(frozen=True)
class Weights:
    industry: int = 40
    job_role: int = 30
    education: int = 10
    close_experience: int = 20   # ментор опытнее не более чем на 5 лет
    far_experience: int = 10
    experience_window: int = 5

class SqlRankingStrategy:
    """
    Скоринг активных менторов по совпадению критериев.

    Возвращает «сырые» строки, как их отдала бы хранимая процедура;
    приведение к контракту ответа делает normalize_candidate.
    """

    def __init__(self, limit: int = DEFAULT_LIMIT, weights: Optional[Weights] = None,
                 session: Optional[Session] = None):
        self.limit = limit
        self.weights = weights or Weights()
        self._session = session

    @property
    def session(self) -> Session:
        return self._session if self._session is not None else db.session

    def _review_counts(self, mentor_ids: List[int]) -> Dict[int, int]:
        if not mentor_ids:
            return {}
        stmt = (select(MentorReview.mentor_id, func.count(MentorReview.id))
                .where(MentorReview.mentor_id.in_(mentor_ids))
                .group_by(MentorReview.mentor_id))
        return {mid: cnt for mid, cnt in self.session.execute(stmt)}

    def score(self, mentor: Mentor, education_level_id, job_role_id, industry_id, experience_years: int) -> int:
        w = self.weights
        total = 0
        if industry_id is not None and mentor.industry_id == industry_id:
            total += w.industry
        if job_role_id is not None and mentor.job_role_id == job_role_id:
            total += w.job_role
        if education_level_id is not None and mentor.education_qualification_id == education_level_id:
            total += w.education
        if mentor.years_experience is not None:
            gap = mentor.years_experience - experience_years
            if 0 <= gap <= w.experience_window:
                total += w.close_experience
            elif gap > w.experience_window:
                total += w.far_experience
        return total

    def rank(self, education_level_id, job_role_id, industry_id, experience_years) -> List[Dict[str, Any]]:
        mentors = list(self.session.scalars(
            select(Mentor)
            .where(Mentor.status == "active")
            .options(selectinload(Mentor.user), selectinload(Mentor.expertises))
        ))
        reviews = self._review_counts([m.user_id for m in mentors])

        scored = []
        for m in mentors:
            s = self.score(m, education_level_id, job_role_id, industry_id, experience_years or 0)
            if s <= 0:
                continue
            scored.append((s, m))
        scored.sort(key=lambda pair: (-pair[0], -(pair[1].rating or 0.0), pair[1].user_id))

        rows: List[Dict[str, Any]] = []
        for s, m in scored[: self.limit]:
            rows.append({
                "user_id": m.user_id,
                "first_name": m.user.first_name if m.user else None,
                "last_name": m.user.last_name if m.user else None,
                "title": m.title,
                "company": m.company,
                "expertise": sorted(e.name for e in m.expertises),
                "years_experience": m.years_experience,
                "rating": m.rating,
                "review_count": reviews.get(m.user_id, 0),
                "availability": m.availability,
                "unavailable_date_time": m.unavailable_date_time,
                "score": s,
            })
        return rows
