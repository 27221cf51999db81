# Overview: Flask API routes for the safe closeout wizard; parses input and returns JSON responses.

"""
Safe Closeout Routes

Authorization is re-checked on every wizard step against the shift, so a
draft started by one employee cannot be continued from another store.
"""

from flask import Blueprint, jsonify, request

from ..decorators import require_auth
from ..services import closeout_service, store_access_service, timekeeping_service
from ..validation import parse_id
from .common import identity, json_body, json_error


closeout_bp = Blueprint("closeout", __name__, url_prefix="/api/closeout")


def _load_shift(raw_shift_id):
    caller = identity()
    shift = timekeeping_service.get_shift(parse_id(raw_shift_id, "shift_id"))
    store_access_service.require_self_or_manager(caller, profile_id=shift.profile_id, store_id=shift.store_id)
    return caller, shift


@closeout_bp.get("/context")
@require_auth
def context_route():
    try:
        _, shift = _load_shift(request.args.get("shift_id"))
        return jsonify(closeout_service.get_context(shift)), 200
    except Exception as exc:
        return json_error(exc, "load closeout context")


@closeout_bp.post("/save-draft")
@require_auth
def save_draft_route():
    try:
        data = json_body()
        caller, shift = _load_shift(data.get("shift_id"))
        closeout = closeout_service.save_draft(shift=shift, payload=data, actor_profile_id=caller.profile_id)
        return jsonify({"closeout_id": closeout.id, "closeout": closeout.to_dict()}), 200
    except Exception as exc:
        return json_error(exc, "save closeout draft")


@closeout_bp.post("/submit")
@require_auth
def submit_route():
    try:
        data = json_body()
        caller, shift = _load_shift(data.get("shift_id"))
        result = closeout_service.submit(shift=shift, payload=data, actor_profile_id=caller.profile_id)
        return jsonify(result.to_dict()), result.http_status
    except Exception as exc:
        return json_error(exc, "submit closeout")
