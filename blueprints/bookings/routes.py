# blueprints/bookings/routes.py
from __future__ import annotations
from flask import Blueprint, current_app, jsonify, request
from pydantic import ValidationError as PydanticValidationError

from extensions import db
from blueprints.availability.routes import parse_mentor_id
from blueprints.core.errors import ValidationError, from_pydantic
from .schemas import BookingRequest
from . import services as svc

api_bp = Blueprint("bookings_api", __name__)

@api_bp.post("/mentors/<mentor_id>/bookings")
def create_booking(mentor_id: str):
    mid = parse_mentor_id(mentor_id)
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    try:
        data = BookingRequest.model_validate(payload)
    except PydanticValidationError as ve:
        raise from_pydantic(ve, "Missing required booking information")

    cfg = current_app.config
    confirmation = svc.create_booking(
        db.session, mid, data,
        artifact_store=current_app.extensions.get("artifact_store"),
        session_minutes=cfg.get("SESSION_MINUTES", svc.SESSION_MINUTES),
        title=cfg.get("BOOKING_TITLE", svc.BOOKING_TITLE),
        default_timezone=cfg.get("DEFAULT_TIMEZONE", "UTC"),
        max_cv_bytes=cfg.get("MAX_CV_BYTES", 5 * 1024 * 1024),
    )
    return jsonify(confirmation.to_dict()), 201
