# Overview: Register checkpoints (X/Z reports, rollover carry) and daily sales balance verification.

"""
Sales/Rollover Checkpoint Ledger

Checkpoints accumulate on one DailySalesRecord per (store, business_date):

- x_report       opener's register X total (open/double shifts)
- mid_x_report   mid-day X total on a double shift
- z_report       closer's Z total together with the prior X total; the
                 closer's sales are z_report - prior_x_report
- rollover       blind dual entry of the late-night carry on rollover nights

Balance:

    verified_open  = open_x_report - rollover_from_previous
    verified_close = close_sales
    variance       = verified_open + verified_close - z_report
    out_of_balance = |variance| > store sales_variance_threshold_cents

A Z checkpoint that would leave the day out of balance is answered with a
SALES_MISMATCH confirmation and nothing is written until the caller resends
it with sales_confirmed.
"""

from __future__ import annotations

from datetime import date, timedelta

from ..extensions import db
from ..models import DailySalesRecord, Shift, ShiftSalesCount, Store
from ..outcomes import ConfirmationRequired, ROLLOVER_MISMATCH, SALES_MISMATCH
from ..time_utils import to_local, utcnow
from ..validation import ConflictError, ValidationError
from . import store_service
from .audit_service import append_audit_event
from .concurrency import run_with_retry, upsert


ROLLOVER_ROLES = ("closer", "opener")


def shift_business_date(shift: Shift, store: Store | None = None) -> date:
    """Scheduled date when linked, otherwise the local date of the planned start."""
    if shift.scheduled_shift is not None:
        return shift.scheduled_shift.shift_date
    store = store or store_service.get_store(shift.store_id)
    return to_local(shift.planned_start_at, store_service.zone_for(store)).date()


def get_daily_record(store_id: int, business_date: date) -> DailySalesRecord | None:
    return (
        db.session.query(DailySalesRecord)
        .filter_by(store_id=store_id, business_date=business_date)
        .first()
    )


def _ensure_open_day(store_id: int, business_date: date) -> DailySalesRecord | None:
    record = get_daily_record(store_id, business_date)
    if record is not None and record.is_closed:
        raise ConflictError(
            "Sales for this business date are closed.",
            code="DAY_CLOSED",
            details={"business_date": business_date.isoformat()},
        )
    return record


def compute_balance(
    *,
    open_x_report_cents: int | None,
    rollover_from_previous_cents: int | None,
    close_sales_cents: int | None,
    z_report_cents: int | None,
    threshold_cents: int,
) -> dict:
    """Pure balance check; a day without both ends is never out of balance."""
    verified_open = None
    if open_x_report_cents is not None:
        verified_open = open_x_report_cents - (rollover_from_previous_cents or 0)

    verified_total = None
    if verified_open is not None and close_sales_cents is not None:
        verified_total = verified_open + close_sales_cents

    variance = 0
    if verified_total is not None and z_report_cents is not None:
        variance = verified_total - z_report_cents

    return {
        "verified_open_sales_cents": verified_open,
        "verified_close_sales_cents": close_sales_cents,
        "verified_total_cents": verified_total,
        "balance_variance_cents": variance,
        "out_of_balance": abs(variance) > threshold_cents,
    }


def recompute_balance(record: DailySalesRecord, threshold_cents: int) -> DailySalesRecord:
    result = compute_balance(
        open_x_report_cents=record.open_x_report_cents,
        rollover_from_previous_cents=record.rollover_from_previous_cents,
        close_sales_cents=record.close_sales_cents,
        z_report_cents=record.z_report_cents,
        threshold_cents=threshold_cents,
    )
    for key, value in result.items():
        setattr(record, key, value)
    return record


def _write_entry(
    *,
    shift: Shift,
    record: DailySalesRecord,
    entry_type: str,
    amount_cents: int,
    prior_x_report_cents: int | None = None,
    confirmed: bool = False,
) -> ShiftSalesCount:
    return upsert(
        ShiftSalesCount,
        values={
            "shift_id": shift.id,
            "daily_sales_record_id": record.id,
            "entry_type": entry_type,
            "amount_cents": amount_cents,
            "prior_x_report_cents": prior_x_report_cents,
            "confirmed": confirmed,
            "counted_at": utcnow(),
        },
        conflict_columns=["shift_id", "entry_type"],
    )


def submit_x_report(
    *,
    shift: Shift,
    x_report_cents: int,
    actor_profile_id: int,
    mid_shift: bool = False,
) -> DailySalesRecord:
    """Opening X total (open/double) or mid-day X total (double only)."""
    if mid_shift and shift.shift_type != "double":
        raise ValidationError("Mid-shift X report is only recorded on double shifts.")
    if not mid_shift and shift.shift_type not in ("open", "double"):
        raise ValidationError("Opening X report is only recorded on open or double shifts.")

    store = store_service.get_store(shift.store_id)
    settings = store_service.get_settings(store.id)
    business_date = shift_business_date(shift, store)
    entry_type = "mid_x_report" if mid_shift else "x_report"

    def _op():
        _ensure_open_day(store.id, business_date)
        if mid_shift:
            values = {"mid_x_report_cents": x_report_cents}
        else:
            values = {"open_x_report_cents": x_report_cents, "open_shift_id": shift.id}
        record = upsert(
            DailySalesRecord,
            values={"store_id": store.id, "business_date": business_date, **values},
            conflict_columns=["store_id", "business_date"],
        )
        recompute_balance(record, settings.sales_variance_threshold_cents)
        _write_entry(shift=shift, record=record, entry_type=entry_type, amount_cents=x_report_cents)
        append_audit_event(
            store_id=store.id,
            event_type=f"sales.{entry_type}",
            entity_type="daily_sales_record",
            entity_id=record.id,
            actor_profile_id=actor_profile_id,
            payload={"shift_id": shift.id, "amount_cents": x_report_cents},
        )
        db.session.commit()
        return record

    return run_with_retry(_op)


def submit_close_checkpoint(
    *,
    shift: Shift,
    z_report_cents: int,
    prior_x_report_cents: int,
    actor_profile_id: int,
    sales_confirmed: bool = False,
) -> DailySalesRecord | ConfirmationRequired:
    """
    Closer's Z report. Out-of-balance totals need sales_confirmed; the
    confirmed write records the variance instead of hiding it.
    """
    if shift.shift_type not in ("close", "double"):
        raise ValidationError("Z report is only recorded on close or double shifts.")
    if prior_x_report_cents > z_report_cents:
        raise ValidationError("prior_x_report_cents cannot exceed z_report_cents")

    store = store_service.get_store(shift.store_id)
    settings = store_service.get_settings(store.id)
    if not settings.sales_tracking_enabled:
        raise ValidationError("Sales tracking is not enabled for this store.")

    business_date = shift_business_date(shift, store)
    close_sales = z_report_cents - prior_x_report_cents
    rollover_night = store_service.is_rollover_night(store.id, business_date)

    existing = _ensure_open_day(store.id, business_date)
    balance = compute_balance(
        open_x_report_cents=existing.open_x_report_cents if existing else None,
        rollover_from_previous_cents=existing.rollover_from_previous_cents if existing else 0,
        close_sales_cents=close_sales,
        z_report_cents=z_report_cents,
        threshold_cents=settings.sales_variance_threshold_cents,
    )
    if balance["out_of_balance"] and not sales_confirmed:
        return ConfirmationRequired(
            code=SALES_MISMATCH,
            message="Sales do not balance. Confirm the totals to save with a variance.",
            details={
                "balance_variance_cents": balance["balance_variance_cents"],
                "verified_total_cents": balance["verified_total_cents"],
                "z_report_cents": z_report_cents,
            },
        )

    def _op():
        _ensure_open_day(store.id, business_date)
        record = upsert(
            DailySalesRecord,
            values={
                "store_id": store.id,
                "business_date": business_date,
                "close_shift_id": shift.id,
                "z_report_cents": z_report_cents,
                "prior_x_report_cents": prior_x_report_cents,
                "close_sales_cents": close_sales,
                "is_rollover_night": rollover_night,
                "sales_confirmed": bool(sales_confirmed),
            },
            conflict_columns=["store_id", "business_date"],
        )
        recompute_balance(record, settings.sales_variance_threshold_cents)
        _write_entry(
            shift=shift,
            record=record,
            entry_type="z_report",
            amount_cents=z_report_cents,
            prior_x_report_cents=prior_x_report_cents,
            confirmed=bool(sales_confirmed),
        )
        append_audit_event(
            store_id=store.id,
            event_type="sales.z_report",
            entity_type="daily_sales_record",
            entity_id=record.id,
            actor_profile_id=actor_profile_id,
            payload={
                "shift_id": shift.id,
                "z_report_cents": z_report_cents,
                "prior_x_report_cents": prior_x_report_cents,
                "balance_variance_cents": record.balance_variance_cents,
                "sales_confirmed": bool(sales_confirmed),
            },
        )
        db.session.commit()
        return record

    return run_with_retry(_op)


def submit_rollover_entry(
    *,
    shift: Shift,
    role: str,
    amount_cents: int,
    actor_profile_id: int,
    force_mismatch: bool = False,
) -> dict | ConfirmationRequired:
    """
    Blind dual entry of the rollover carry.

    The closer enters it on the rollover night; the opener enters it the next
    morning against the previous business date. The first entry is pending.
    A matching second entry carries the amount into the next day's
    rollover_from_previous_cents. A mismatching second entry needs
    force_mismatch and is then saved flagged for review without carrying.

    Returns {"status": matched|pending|saved_with_flag, "record": ...}.
    """
    if role not in ROLLOVER_ROLES:
        raise ValidationError(f"role must be one of: {', '.join(ROLLOVER_ROLES)}")

    store = store_service.get_store(shift.store_id)
    settings = store_service.get_settings(store.id)
    business_date = shift_business_date(shift, store)
    if role == "opener":
        business_date = business_date - timedelta(days=1)
    if not store_service.is_rollover_night(store.id, business_date):
        raise ValidationError("Rollover is not enabled for this business date.")

    existing = _ensure_open_day(store.id, business_date)
    own_field = f"{role}_rollover_cents"
    other_field = "opener_rollover_cents" if role == "closer" else "closer_rollover_cents"
    other = getattr(existing, other_field) if existing else None

    if other is None:
        status = "pending"
    elif other == amount_cents:
        status = "matched"
    elif not force_mismatch:
        return ConfirmationRequired(
            code=ROLLOVER_MISMATCH,
            message="Rollover amounts do not match. Recount or confirm to save for manager review.",
            details={"business_date": business_date.isoformat()},
        )
    else:
        status = "saved_with_flag"

    def _op():
        _ensure_open_day(store.id, business_date)
        values = {
            "store_id": store.id,
            "business_date": business_date,
            "is_rollover_night": True,
            own_field: amount_cents,
        }
        if status == "matched":
            values.update(
                rollover_cents=amount_cents,
                rollover_to_next_cents=amount_cents,
                rollover_mismatch=False,
                rollover_needs_review=False,
            )
        elif status == "saved_with_flag":
            values.update(rollover_mismatch=True, rollover_needs_review=True)

        record = upsert(DailySalesRecord, values=values, conflict_columns=["store_id", "business_date"])
        recompute_balance(record, settings.sales_variance_threshold_cents)
        _write_entry(
            shift=shift,
            record=record,
            entry_type="rollover",
            amount_cents=amount_cents,
            confirmed=status == "saved_with_flag",
        )

        if status == "matched":
            next_day = upsert(
                DailySalesRecord,
                values={
                    "store_id": store.id,
                    "business_date": business_date + timedelta(days=1),
                    "rollover_from_previous_cents": amount_cents,
                },
                conflict_columns=["store_id", "business_date"],
            )
            recompute_balance(next_day, settings.sales_variance_threshold_cents)

        append_audit_event(
            store_id=store.id,
            event_type=f"sales.rollover_{status}",
            entity_type="daily_sales_record",
            entity_id=record.id,
            actor_profile_id=actor_profile_id,
            payload={"shift_id": shift.id, "role": role, "amount_cents": amount_cents},
        )
        db.session.commit()
        return {"status": status, "record": record}

    return run_with_retry(_op)


def shift_sales_summary(shift: Shift) -> dict:
    """
    Sales attributable to one shift:

    - open:         open_x_report - rollover_from_previous
    - close/double: (close_sales or z_report - prior_x_report)
                    + rollover_to_next on rollover nights
    """
    store = store_service.get_store(shift.store_id)
    business_date = shift_business_date(shift, store)
    record = get_daily_record(store.id, business_date)

    sales = None
    if record is not None:
        if shift.shift_type == "open":
            if record.open_x_report_cents is not None:
                sales = record.open_x_report_cents - (record.rollover_from_previous_cents or 0)
        elif shift.shift_type in ("close", "double"):
            close_sales = record.close_sales_cents
            if close_sales is None and record.z_report_cents is not None and record.prior_x_report_cents is not None:
                close_sales = record.z_report_cents - record.prior_x_report_cents
            if close_sales is not None:
                carry = record.rollover_to_next_cents if record.is_rollover_night else 0
                sales = close_sales + (carry or 0)

    return {
        "shift_id": shift.id,
        "shift_type": shift.shift_type,
        "business_date": business_date.isoformat(),
        "sales_cents": sales,
        "daily_record": record.to_dict() if record else None,
    }


def close_sales_day(store_id: int, business_date: date) -> DailySalesRecord | None:
    """Stamp closed_at once the day's safe closeout is locked. Does not commit."""
    record = get_daily_record(store_id, business_date)
    if record is not None and record.closed_at is None:
        record.closed_at = utcnow()
    return record
