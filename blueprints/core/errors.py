from __future__ import annotations
from typing import Any

from flask import jsonify
from pydantic import ValidationError as PydanticValidationError


class BookingEngineError(Exception):
    """Базовая ошибка ядра: код, сообщение для клиента и HTTP-статус."""
    status = 500
    code = "failure"
    default_message = "Internal server error"

    def __init__(self, message: str | None = None, *, details: Any = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        self.details = details

    def to_dict(self) -> dict:
        payload: dict[str, Any] = {"error": self.code, "message": self.message}
        if self.details is not None:
            payload["details"] = self.details
        return payload


class ValidationError(BookingEngineError):
    status = 400
    code = "validation_error"
    default_message = "Invalid payload"


class InvalidTime(ValidationError):
    code = "invalid_time"
    default_message = "Invalid date/time provided"


class ConflictError(BookingEngineError):
    status = 409
    code = "conflict"
    default_message = "This time slot has just been booked. Please choose another time."


class NotFound(BookingEngineError):
    status = 404
    code = "not_found"
    default_message = "Not found"


class Failure(BookingEngineError):
    status = 500
    code = "failure"
    default_message = "Internal server error"


def pydantic_errors_safe(ve: PydanticValidationError) -> list[dict]:
    # ctx может содержать исключения, в JSON их не сериализовать
    errs = []
    for e in ve.errors():
        e = dict(e)
        e.pop("url", None)
        if "ctx" in e and isinstance(e["ctx"], dict):
            e["ctx"] = {k: str(v) for k, v in e["ctx"].items()}
        if "input" in e:
            e["input"] = str(e["input"])
        errs.append(e)
    return errs


def from_pydantic(ve: PydanticValidationError, message: str = "Invalid payload") -> ValidationError:
    return ValidationError(message, details=pydantic_errors_safe(ve))


def error_response(err: BookingEngineError):
    return jsonify(err.to_dict()), err.status
