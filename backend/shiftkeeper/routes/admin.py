# Overview: Manager API routes: overrides, manual closes, closeout review and backfill.

"""
Admin Routes

SECURITY:
- Every route requires a manager session.
- Every read and write is limited to stores the manager manages; a
  store_id outside that set is rejected with 403 before anything is touched.
"""

from flask import Blueprint, jsonify, request

from ..decorators import require_auth, require_manager
from ..services import closeout_service, store_access_service, store_service, timekeeping_service
from ..time_utils import parse_business_date
from ..validation import ValidationError, clean_text, parse_bool, parse_id, require_choice
from ..models.closeouts import CLOSEOUT_STATUSES
from ..models.timekeeping import MANUAL_CLOSE_DISPOSITIONS
from .common import identity, json_body, json_error


admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")


def _scoped_store_ids() -> set[int]:
    caller = identity()
    store_id = parse_id(request.args.get("store_id"), "store_id", required=False)
    if store_id is None:
        return set(caller.managed_store_ids)
    store_access_service.require_store_manager(caller, store_id)
    return {store_id}


def _managed_shift(shift_id: int):
    caller = identity()
    shift = timekeeping_service.get_shift(shift_id)
    store_access_service.require_store_manager(caller, shift.store_id)
    return caller, shift


def _date_arg(name: str):
    raw = request.args.get(name)
    if not raw:
        return None
    try:
        return parse_business_date(raw)
    except ValueError:
        raise ValidationError(f"{name} must be YYYY-MM-DD")


@admin_bp.get("/shifts/open")
@require_auth
@require_manager
def open_shifts_route():
    try:
        shifts = timekeeping_service.list_open_shifts(_scoped_store_ids())
        return jsonify({"shifts": [s.to_dict() for s in shifts], "count": len(shifts)}), 200
    except Exception as exc:
        return json_error(exc, "list open shifts")


@admin_bp.get("/shifts/manual-closed")
@require_auth
@require_manager
def manual_closed_route():
    try:
        shifts = timekeeping_service.list_pending_manual_close_reviews(_scoped_store_ids())
        return jsonify({"shifts": [s.to_dict() for s in shifts], "count": len(shifts)}), 200
    except Exception as exc:
        return json_error(exc, "list manual closes")


@admin_bp.get("/overrides")
@require_auth
@require_manager
def pending_overrides_route():
    try:
        shifts = timekeeping_service.list_pending_overrides(_scoped_store_ids())
        return jsonify({"shifts": [s.to_dict() for s in shifts], "count": len(shifts)}), 200
    except Exception as exc:
        return json_error(exc, "list pending overrides")


@admin_bp.post("/overrides/<int:shift_id>/approve")
@require_auth
@require_manager
def approve_override_route(shift_id: int):
    try:
        data = json_body()
        caller, shift = _managed_shift(shift_id)
        shift = timekeeping_service.approve_override(
            shift=shift,
            manager_profile_id=caller.profile_id,
            note=data.get("note"),
        )
        return jsonify({"shift": shift.to_dict()}), 200
    except Exception as exc:
        return json_error(exc, "approve override")


@admin_bp.post("/shifts/<int:shift_id>/end")
@require_auth
@require_manager
def end_shift_route(shift_id: int):
    try:
        data = json_body()
        caller, shift = _managed_shift(shift_id)
        shift = timekeeping_service.manager_end_shift(
            shift=shift,
            manager_profile_id=caller.profile_id,
            end_at=data.get("end_at"),
        )
        return jsonify({"shift": shift.to_dict()}), 200
    except Exception as exc:
        return json_error(exc, "end shift")


@admin_bp.post("/shifts/<int:shift_id>/manual-close-review")
@require_auth
@require_manager
def manual_close_review_route(shift_id: int):
    try:
        data = json_body()
        caller, shift = _managed_shift(shift_id)
        shift = timekeeping_service.review_manual_close(
            shift=shift,
            manager_profile_id=caller.profile_id,
            disposition=require_choice(data.get("disposition"), "disposition", MANUAL_CLOSE_DISPOSITIONS),
            note=data.get("note"),
            corrected_ended_at=data.get("ended_at"),
        )
        return jsonify({"shift": shift.to_dict()}), 200
    except Exception as exc:
        return json_error(exc, "review manual close")


@admin_bp.get("/closeouts")
@require_auth
@require_manager
def list_closeouts_route():
    try:
        status = request.args.get("status")
        if status:
            status = require_choice(status, "status", CLOSEOUT_STATUSES)
        closeouts = closeout_service.list_closeouts(
            _scoped_store_ids(),
            status=status,
            needs_review=parse_bool(request.args.get("needs_review", False)),
            start=_date_arg("start"),
            end=_date_arg("end"),
        )
        return jsonify({"closeouts": [c.to_dict() for c in closeouts], "count": len(closeouts)}), 200
    except Exception as exc:
        return json_error(exc, "list closeouts")


@admin_bp.post("/closeouts")
@require_auth
@require_manager
def backfill_closeout_route():
    try:
        data = json_body()
        caller = identity()
        store = store_service.get_store(parse_id(data.get("store_id"), "store_id"))
        store_access_service.require_store_manager(caller, store.id)
        closeout = closeout_service.backfill(store=store, payload=data, manager_profile_id=caller.profile_id)
        return jsonify({"closeout": closeout.to_dict()}), 201
    except Exception as exc:
        return json_error(exc, "backfill closeout")


@admin_bp.post("/closeouts/<int:closeout_id>/review")
@require_auth
@require_manager
def review_closeout_route(closeout_id: int):
    try:
        data = json_body()
        caller = identity()
        closeout = closeout_service.get_closeout(closeout_id)
        store_access_service.require_store_manager(caller, closeout.store_id)
        closeout = closeout_service.review_closeout(
            closeout_id=closeout.id,
            manager_profile_id=caller.profile_id,
            note=clean_text(data.get("note"), max_length=1000),
        )
        return jsonify({"closeout": closeout.to_dict()}), 200
    except Exception as exc:
        return json_error(exc, "review closeout")
