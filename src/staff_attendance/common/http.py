from __future__ import annotations

from typing import Any, Dict

from flask import Flask, jsonify, request

from ..core.exceptions import (
    ConflictError,
    NoDataError,
    NotFoundError,
    NotWorkingThisMonthError,
    ValidationError,
    ValidationRejected,
)


def ok(data: Any = None, *, message: str = "", status: int = 200):
    body: Dict[str, Any] = {"success": True, "data": data}
    if message:
        body["message"] = message
    return jsonify(body), status


def json_body() -> Dict[str, Any]:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def require_field(data: Dict[str, Any], name: str) -> Any:
    value = data.get(name)
    if value is None or value == "":
        raise ValidationError(f"{name} is required")
    return value


def as_int(value: Any, name: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be an integer")


def register_error_handlers(app: Flask) -> None:
    """Map domain exceptions to JSON error responses."""

    def _error(message: str, status: int, **extra):
        return jsonify({"success": False, "message": message, **extra}), status

    def on_validation(e: ValidationError):
        return _error(str(e), 400)

    def on_rejected(e: ValidationRejected):
        leave = e.leave_conflict
        return _error(
            str(e),
            422,
            errors=e.errors,
            warnings=e.warnings,
            leaveConflict=leave.to_document() if leave is not None else None,
        )

    def on_not_found(e: NotFoundError):
        return _error(str(e), 404)

    def on_conflict(e: ConflictError):
        return _error(str(e), 409)

    def on_unprocessable(e: Exception):
        return _error(str(e), 422)

    app.register_error_handler(ValidationError, on_validation)
    app.register_error_handler(ValidationRejected, on_rejected)
    app.register_error_handler(NotFoundError, on_not_found)
    app.register_error_handler(ConflictError, on_conflict)
    app.register_error_handler(NoDataError, on_unprocessable)
    app.register_error_handler(NotWorkingThisMonthError, on_unprocessable)
