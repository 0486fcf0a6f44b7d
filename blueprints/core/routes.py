from __future__ import annotations
import json, logging
from datetime import datetime

from flask import current_app, g, jsonify, request
from werkzeug.exceptions import HTTPException
from werkzeug.wrappers.response import Response

from . import bp
from .errors import BookingEngineError, Failure, error_response

class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": datetime.utcnow().isoformat(timespec="milliseconds") + "Z",
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        for key in ("event", "path", "method", "status", "duration_ms", "mentor_id", "booking_id"):
            if hasattr(record, key):
                payload[key] = getattr(record, key)
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)

def _setup_structured_logging(app):
    # app.logger и логгеры сервисов (blueprints.*) пишут в один JSON-поток
    level = app.config.get("LOG_LEVEL", "INFO")
    for logger in (app.logger, logging.getLogger("blueprints")):
        has_json = any(
            isinstance(h, logging.StreamHandler)
            and isinstance(getattr(h, "formatter", None), JSONFormatter)
            for h in logger.handlers
        )
        if not has_json:
            handler = logging.StreamHandler()
            handler.setFormatter(JSONFormatter())
            logger.addHandler(handler)
        logger.setLevel(level)

@bp.before_app_request
def _start_timer():
    g._req_start = datetime.utcnow()

@bp.after_app_request
def _log_request(response: Response):
    try:
        duration_ms = int((datetime.utcnow() - g._req_start).total_seconds() * 1000)
    except AttributeError:
        duration_ms = None
    extra = {
        "event": "http_request",
        "path": request.path,
        "method": request.method,
        "status": response.status_code,
        "duration_ms": duration_ms,
    }
    current_app.logger.info("request handled", extra=extra)
    return response

@bp.app_errorhandler(BookingEngineError)
def _handle_engine_error(err: BookingEngineError):
    return error_response(err)

@bp.app_errorhandler(HTTPException)
def _handle_http_error(err: HTTPException):
    body = {"error": (err.name or "error").lower().replace(" ", "_"), "message": err.description}
    return jsonify(body), err.code

@bp.record_once
def _on_register(state):
    _setup_structured_logging(state.app)

@bp.get("/health")
def health():
    return jsonify({
        "status": "ok",
        "ts": datetime.utcnow().isoformat(timespec="seconds") + "Z",
    })

@bp.app_errorhandler(Exception)
def _handle_unexpected(err: Exception):
    current_app.logger.exception("unhandled error on %s %s", request.method, request.path)
    return error_response(Failure())
