# blueprints/availability/routes.py
from __future__ import annotations
from flask import Blueprint, current_app, jsonify, request

from extensions import db
from blueprints.core.errors import ValidationError
from . import services as svc

api_bp = Blueprint("availability_api", __name__)

def parse_mentor_id(raw: str) -> int:
    try:
        mentor_id = int(raw)
    except (TypeError, ValueError):
        raise ValidationError("Invalid mentor id")
    if mentor_id <= 0:
        raise ValidationError("Invalid mentor id")
    return mentor_id

def _parse_horizon() -> int | None:
    raw = request.args.get("horizon")
    if raw is None or raw == "":
        return None
    limit = current_app.config.get("AVAILABILITY_MAX_HORIZON_DAYS", 365)
    try:
        horizon = int(raw)
    except ValueError:
        raise ValidationError("Invalid horizon", details={"horizon": raw})
    if horizon < 0 or horizon > limit:
        raise ValidationError(f"horizon must be between 0 and {limit}", details={"horizon": horizon})
    return horizon

@api_bp.get("/mentors/<mentor_id>/availability")
def mentor_availability(mentor_id: str):
    mid = parse_mentor_id(mentor_id)
    result = svc.compute_availability(
        db.session, mid,
        horizon_days=_parse_horizon(),
        slot_minutes=current_app.config.get("SLOT_MINUTES", svc.SLOT_MINUTES),
    )
    if result is None:
        return jsonify(svc.EMPTY_AVAILABILITY)
    return jsonify(result.to_dict())
