# Overview: Flask API routes for clock-in/out and drawer counts; parses input and returns JSON responses.

"""
Shift Routes

SECURITY:
- All routes require a session (employee PIN or manager).
- Clock-in must target a store in the caller's scope; clocking in someone
  else requires managing that store.
- Shift writes are limited to the shift's owner or a manager of its store.
"""

from flask import Blueprint, jsonify

from ..decorators import require_auth
from ..outcomes import is_confirmation
from ..services import drawer_service, store_access_service, store_service, timekeeping_service
from ..models.timekeeping import COUNT_TYPES
from ..validation import parse_bool, parse_id, require_choice, clean_text
from .common import confirmation_response, identity, json_body, json_error


shifts_bp = Blueprint("shifts", __name__, url_prefix="/api/shifts")


@shifts_bp.post("/clock-in")
@require_auth
def clock_in_route():
    try:
        data = json_body()
        caller = identity()
        store = store_service.resolve_store(
            store_id=parse_id(data.get("store_id"), "store_id", required=False),
            qr_token=clean_text(data.get("qr_token"), max_length=128, field="qr_token"),
        )
        profile_id = parse_id(data.get("profile_id"), "profile_id", required=False) or caller.profile_id
        store_access_service.require_self_or_manager(caller, profile_id=profile_id, store_id=store.id)

        start_drawer = drawer_service.parse_drawer_input(
            data,
            drawer_field="start_drawer_cents",
            change_field="change_drawer_cents",
            required=False,
        )
        result = timekeeping_service.clock_in(
            store=store,
            profile_id=profile_id,
            planned_start_at=data.get("planned_start_at"),
            start_drawer=start_drawer,
            force=parse_bool(data.get("force", False)),
            shift_type_hint=clean_text(data.get("shift_type"), max_length=16, field="shift_type"),
            actor_profile_id=caller.profile_id,
        )
        if is_confirmation(result):
            return confirmation_response(result)
        return jsonify(result.to_dict()), 201
    except Exception as exc:
        return json_error(exc, "clock in")


@shifts_bp.post("/<int:shift_id>/clock-out")
@require_auth
def clock_out_route(shift_id: int):
    try:
        data = json_body()
        caller = identity()
        shift = timekeeping_service.get_shift(shift_id)
        store_access_service.require_self_or_manager(caller, profile_id=shift.profile_id, store_id=shift.store_id)

        end_drawer = drawer_service.parse_drawer_input(
            data,
            drawer_field="end_drawer_cents",
            change_field="change_drawer_cents",
            required=False,
        )
        result = timekeeping_service.clock_out(
            shift=shift,
            actor_profile_id=caller.profile_id,
            end_at=data.get("end_at"),
            end_drawer=end_drawer,
            manual_close=parse_bool(data.get("manual_close", False)),
        )
        if is_confirmation(result):
            return confirmation_response(result)
        return jsonify({"shift": result.to_dict()}), 200
    except Exception as exc:
        return json_error(exc, "clock out")


@shifts_bp.post("/<int:shift_id>/drawer-counts")
@require_auth
def drawer_count_route(shift_id: int):
    try:
        data = json_body()
        caller = identity()
        shift = timekeeping_service.get_shift(shift_id)
        store_access_service.require_self_or_manager(caller, profile_id=shift.profile_id, store_id=shift.store_id)

        count_type = require_choice(data.get("count_type", "changeover"), "count_type", COUNT_TYPES)
        drawer = drawer_service.parse_drawer_input(data)
        result = drawer_service.record_drawer_count(
            shift=shift,
            count_type=count_type,
            drawer=drawer,
            actor_profile_id=caller.profile_id,
        )
        if is_confirmation(result):
            return confirmation_response(result)
        return jsonify({"drawer_count": result.to_dict()}), 200
    except Exception as exc:
        return json_error(exc, "record drawer count")


@shifts_bp.get("/current")
@require_auth
def current_shift_route():
    try:
        shift = timekeeping_service.get_open_shift(identity().profile_id)
        if not shift:
            return jsonify({"shift": None, "drawer_counts": []}), 200
        counts = drawer_service.counts_for_shift(shift.id)
        return jsonify({"shift": shift.to_dict(), "drawer_counts": [c.to_dict() for c in counts]}), 200
    except Exception as exc:
        return json_error(exc, "load current shift")
