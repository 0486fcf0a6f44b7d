# blueprints/matching/routes.py
from __future__ import annotations
from flask import Blueprint, current_app, jsonify, request
from pydantic import ValidationError as PydanticValidationError

from extensions import db
from blueprints.core.errors import ValidationError, from_pydantic
from .ranking import SqlRankingStrategy
from .schemas import MatchRequest
from . import services as svc

api_bp = Blueprint("matching_api", __name__)

def _strategy():
    strategy = current_app.extensions.get("ranking_strategy")
    if strategy is None:
        strategy = SqlRankingStrategy(limit=current_app.config.get("MATCHING_LIMIT", 20))
    return strategy

def _respond(mentors):
    return jsonify({"mentors": mentors, "total": len(mentors)})

@api_bp.post("/matching")
def match_by_criteria():
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    try:
        data = MatchRequest.model_validate(payload)
    except PydanticValidationError as ve:
        raise from_pydantic(ve, "Invalid matching criteria")
    return _respond(svc.match(_strategy(), svc.criteria_from_request(data)))

@api_bp.get("/matching/<mentee_id>")
def match_for_mentee(mentee_id: str):
    try:
        mid = int(mentee_id)
    except ValueError:
        raise ValidationError("Invalid mentee ID")
    if mid <= 0:
        raise ValidationError("Invalid mentee ID")
    criteria = svc.criteria_for_mentee(db.session, mid)
    return _respond(svc.match(_strategy(), criteria))
