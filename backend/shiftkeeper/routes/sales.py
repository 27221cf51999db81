# Overview: Flask API routes for register checkpoints and rollover entries; returns JSON responses.

from flask import Blueprint, jsonify

from ..decorators import require_auth
from ..outcomes import is_confirmation
from ..services import sales_checkpoint_service, store_access_service, timekeeping_service
from ..validation import parse_bool, parse_cents, parse_id, require_choice
from .common import confirmation_response, identity, json_body, json_error


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


def _load_shift(data: dict):
    caller = identity()
    shift = timekeeping_service.get_shift(parse_id(data.get("shift_id"), "shift_id"))
    store_access_service.require_self_or_manager(caller, profile_id=shift.profile_id, store_id=shift.store_id)
    return caller, shift


@sales_bp.post("/x-report")
@require_auth
def x_report_route():
    try:
        data = json_body()
        caller, shift = _load_shift(data)
        record = sales_checkpoint_service.submit_x_report(
            shift=shift,
            x_report_cents=parse_cents(data.get("x_report_cents"), "x_report_cents"),
            actor_profile_id=caller.profile_id,
            mid_shift=parse_bool(data.get("mid_shift", False)),
        )
        return jsonify({"record": record.to_dict()}), 200
    except Exception as exc:
        return json_error(exc, "record X report")


@sales_bp.post("/close-checkpoint")
@require_auth
def close_checkpoint_route():
    try:
        data = json_body()
        caller, shift = _load_shift(data)
        result = sales_checkpoint_service.submit_close_checkpoint(
            shift=shift,
            z_report_cents=parse_cents(data.get("z_report_cents"), "z_report_cents"),
            prior_x_report_cents=parse_cents(data.get("prior_x_report_cents"), "prior_x_report_cents"),
            actor_profile_id=caller.profile_id,
            sales_confirmed=parse_bool(data.get("sales_confirmed", False)),
        )
        if is_confirmation(result):
            return confirmation_response(result)
        return jsonify({
            "record": result.to_dict(),
            "out_of_balance": result.out_of_balance,
            "balance_variance_cents": result.balance_variance_cents,
        }), 200
    except Exception as exc:
        return json_error(exc, "record close checkpoint")


@sales_bp.post("/rollover")
@require_auth
def rollover_route():
    try:
        data = json_body()
        caller, shift = _load_shift(data)
        result = sales_checkpoint_service.submit_rollover_entry(
            shift=shift,
            role=require_choice(data.get("role"), "role", sales_checkpoint_service.ROLLOVER_ROLES),
            amount_cents=parse_cents(data.get("amount_cents"), "amount_cents"),
            actor_profile_id=caller.profile_id,
            force_mismatch=parse_bool(data.get("force_mismatch", False)),
        )
        if is_confirmation(result):
            return confirmation_response(result)
        return jsonify({"status": result["status"], "record": result["record"].to_dict()}), 200
    except Exception as exc:
        return json_error(exc, "record rollover")


@sales_bp.get("/shifts/<int:shift_id>/summary")
@require_auth
def shift_summary_route(shift_id: int):
    try:
        _, shift = _load_shift({"shift_id": shift_id})
        return jsonify(sales_checkpoint_service.shift_sales_summary(shift)), 200
    except Exception as exc:
        return json_error(exc, "load shift sales summary")
