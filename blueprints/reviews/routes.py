# blueprints/reviews/routes.py
from __future__ import annotations
from flask import Blueprint, jsonify

from extensions import db
from blueprints.availability.routes import parse_mentor_id
from .services import list_reviews

api_bp = Blueprint("reviews_api", __name__)

@api_bp.get("/mentor-reviews/<mentor_id>")
def mentor_reviews(mentor_id: str):
    reviews = list_reviews(db.session, parse_mentor_id(mentor_id))
    return jsonify({"reviews": reviews, "total": len(reviews)})
