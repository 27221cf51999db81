# Overview: Request authentication decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .services import session_service


def _is_authenticated() -> bool:
    return getattr(g, "identity", None) is not None


def require_auth(f):
    """
    Require a bearer session and establish the caller's identity.

    Sets g.identity (session_service.Identity): profile, kind, and the store
    ids in scope. Store scope is re-read from the database on every request,
    so a revoked membership takes effect on the next call.

    SECURITY: Returns 401 if:
    - No Authorization header
    - Invalid, expired or revoked token
    - Profile deactivated
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        auth_header = request.headers.get("Authorization")

        if not auth_header or not auth_header.startswith("Bearer "):
            return jsonify({"error": "Authentication required"}), 401

        token = auth_header.split(" ", 1)[1]

        identity = session_service.validate_session(token)
        if not identity:
            return jsonify({"error": "Invalid or expired token"}), 401

        g.identity = identity
        return f(*args, **kwargs)

    return decorated_function


def require_manager(f):
    """Require a manager session. Use after @require_auth."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not _is_authenticated():
            return jsonify({"error": "Authentication required"}), 401
        if not g.identity.is_manager:
            return jsonify({"error": "Manager access required"}), 403
        return f(*args, **kwargs)
    return decorated_function
