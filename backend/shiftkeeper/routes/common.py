# Overview: Shared request parsing and error-to-response mapping for blueprints.

from flask import current_app, g, jsonify, request

from ..outcomes import ConfirmationRequired
from ..services.store_access_service import AccessDeniedError
from ..services.timekeeping_service import ClockWindowError
from ..validation import ConflictError, NotFoundError, ValidationError


def json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def identity():
    return g.identity


def json_error(exc: Exception, action: str):
    if isinstance(exc, ClockWindowError):
        return jsonify({"error": str(exc), "code": "CLOCK_WINDOW_VIOLATION", "window_label": exc.window_label}), 400
    if isinstance(exc, ConflictError):
        return jsonify(exc.to_dict()), 409
    if isinstance(exc, ValidationError):
        return jsonify({"error": str(exc)}), 400
    if isinstance(exc, AccessDeniedError):
        return jsonify({"error": str(exc)}), 403
    if isinstance(exc, NotFoundError):
        return jsonify({"error": str(exc)}), 404
    if isinstance(exc, ValueError):
        return jsonify({"error": str(exc)}), 400
    current_app.logger.exception("Failed to %s", action)
    return jsonify({"error": "Internal server error"}), 500


def confirmation_response(result: ConfirmationRequired):
    return jsonify(result.to_dict()), result.http_status
