# blueprints/mentees/routes.py
from __future__ import annotations
from flask import Blueprint, jsonify

from extensions import db
from blueprints.core.errors import NotFound, ValidationError
from blueprints.core.temporal import isoformat_utc
from models import MenteeProfile

api_bp = Blueprint("mentees_api", __name__)

def mentee_to_dict(p: MenteeProfile) -> dict:
    return {
        "userId": str(p.user_id),
        "educationQualificationId": p.education_qualification_id,
        "currentJobRoleId": p.current_job_role_id,
        "expectedJobRoleId": p.expected_job_role_id,
        "experienceYears": p.experience_years,
        "createdAt": isoformat_utc(p.created_at) if p.created_at else None,
        "updatedAt": isoformat_utc(p.updated_at) if p.updated_at else None,
    }

@api_bp.get("/mentees/<user_id>")
def get_mentee(user_id: str):
    try:
        uid = int(user_id)
    except ValueError:
        raise ValidationError("Invalid user id")
    profile = db.session.get(MenteeProfile, uid)
    if profile is None:
        raise NotFound("Mentee not found")
    return jsonify(mentee_to_dict(profile))
