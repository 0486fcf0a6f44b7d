# blueprints/matching/services.py
from __future__ import annotations
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from blueprints.core.errors import Failure, NotFound, ValidationError
from models import MenteeProfile, jobrole_industries, qualification_industries
from .ranking import RankingStrategy
from .schemas import MatchRequest

log = logging.getLogger(__name__)

# порядок важен: первое совпадение подстроки выигрывает
EXPERIENCE_LEVELS = (
    ("intern", 0),
    ("entry", 1),
    ("junior", 1),
    ("associate", 2),
    ("mid", 3),
    ("intermediate", 3),
    ("senior", 6),
    ("staff", 8),
    ("lead", 8),
    ("principal", 10),
    ("director", 12),
    ("head", 12),
    ("executive", 15),
)

_NUMBER_RE = re.compile(r"\d+")


def experience_years_from_label(value: Any) -> int:
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        return max(int(value), 0)
    text = str(value).strip().lower()
    for needle, years in EXPERIENCE_LEVELS:
        if needle in text:
            return years
    m = _NUMBER_RE.search(text)
    return int(m.group(0)) if m else 0


@dataclass(frozen=True)
class MatchCriteria:
    industry_id: int
    job_role_id: Optional[int]
    education_level_id: Optional[int]
    experience_years: int = 0


def criteria_from_request(data: MatchRequest) -> MatchCriteria:
    m = data.mentee
    return MatchCriteria(
        industry_id=m.industry_id,
        job_role_id=m.job_role_id,
        education_level_id=m.education_level_id,
        experience_years=experience_years_from_label(m.experience_level),
    )


def _industry_for(session: Session, profile: MenteeProfile) -> Optional[int]:
    if profile.education_qualification_id is not None:
        industry_id = session.scalar(
            select(qualification_industries.c.industry_id)
            .where(qualification_industries.c.qualification_id == profile.education_qualification_id)
            .order_by(qualification_industries.c.industry_id)
            .limit(1)
        )
        if industry_id is not None:
            return industry_id
    if profile.current_job_role_id is not None:
        return session.scalar(
            select(jobrole_industries.c.industry_id)
            .where(jobrole_industries.c.jobrole_id == profile.current_job_role_id)
            .order_by(jobrole_industries.c.industry_id)
            .limit(1)
        )
    return None


def criteria_for_mentee(session: Session, mentee_id: int) -> MatchCriteria:
    """Критерии из сохранённого профиля: отрасль через qualification, иначе через job role."""
    profile = session.get(MenteeProfile, mentee_id)
    if profile is None:
        raise NotFound("Mentee not found")
    industry_id = _industry_for(session, profile)
    if industry_id is None:
        raise ValidationError("Mentee profile is incomplete for matching",
                              details={"menteeId": mentee_id})
    return MatchCriteria(
        industry_id=industry_id,
        job_role_id=profile.current_job_role_id,
        education_level_id=profile.education_qualification_id,
        experience_years=max(profile.experience_years or 0, 0),
    )


# ===== нормализация кандидата =====
def _pick(row: Mapping[str, Any], *keys: str) -> Any:
    for k in keys:
        if k in row and row[k] is not None:
            return row[k]
    return None

def _as_str(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()

def _as_float(value: Any) -> float:
    try:
        return float(value) if value is not None else 0.0
    except (TypeError, ValueError):
        return 0.0

def _as_int(value: Any) -> int:
    try:
        return int(value) if value is not None else 0
    except (TypeError, ValueError):
        return 0

def _expertise_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    try:
        return [str(v).strip() for v in value if v is not None and str(v).strip()]
    except TypeError:
        return []

def _experience_label(row: Mapping[str, Any]) -> str:
    years = _pick(row, "years_experience", "yearsExperience")
    if years is not None:
        try:
            n = int(years)
        except (TypeError, ValueError):
            n = None
        if n is not None:
            return f"{n} year" if n == 1 else f"{n} years"
    return _as_str(_pick(row, "experience"))

def _as_mapping(row: Any) -> Mapping[str, Any]:
    if isinstance(row, Mapping):
        return row
    mapping = getattr(row, "_mapping", None)  # sqlalchemy Row
    if isinstance(mapping, Mapping):
        return mapping
    return {}

def normalize_candidate(row: Any) -> Dict[str, Any]:
    """Сырая строка ранжирования -> стабильный контракт; никогда не бросает."""
    r = _as_mapping(row)
    first = _as_str(_pick(r, "first_name", "firstName"))
    last = _as_str(_pick(r, "last_name", "lastName"))
    name = " ".join(p for p in (first, last) if p) or _as_str(_pick(r, "name")) or "Mentor"
    unavailable = _pick(r, "unavailable_date_time", "unavailableDateTime")
    return {
        "id": _as_str(_pick(r, "user_id", "mentor_id", "id")),
        "name": name,
        "title": _as_str(_pick(r, "title")),
        "company": _as_str(_pick(r, "company")),
        "expertise": _expertise_list(_pick(r, "expertise", "expertises")),
        "experience": _experience_label(r),
        "rating": _as_float(_pick(r, "rating")),
        "reviews": _as_int(_pick(r, "review_count", "reviews")),
        "availability": _as_str(_pick(r, "availability")),
        "unavailableDateTime": unavailable if isinstance(unavailable, dict) else {},
    }


def match(strategy: RankingStrategy, criteria: MatchCriteria) -> List[Dict[str, Any]]:
    try:
        rows = strategy.rank(
            criteria.education_level_id,
            criteria.job_role_id,
            criteria.industry_id,
            criteria.experience_years,
        )
    except SQLAlchemyError as exc:
        log.exception("ranking failed for industry=%s", criteria.industry_id)
        raise Failure() from exc
    return [normalize_candidate(r) for r in rows or []]
