# Overview: Safe closeout wizard: resumable drafts, deposit reconciliation, submit status, manager lock.

"""
Safe Closeout

One SafeCloseout per (store, business_date), written through a keyed upsert
so every wizard step can be saved and resumed.

    expected_deposit = round up to the dollar of max(0, cash_sales - expenses)
    denom_total      = sum(count * denomination)
    actual_deposit   = denom_total
    variance         = actual_deposit - expected_deposit

Submit status:
    pass  variance == 0 and |denom variance| within the denomination tolerance
    warn  |variance| within the deposit tolerance, or a justification given
          (a justification also sets requires_manager_review)
    fail  otherwise; each fail counts an attempt and the second one sets
          requires_manager_review

pass and locked are read-only. A manager review locks the record and closes
the day's sales record.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import SafeCloseout, SafeCloseoutExpense, SafeCloseoutPhoto, Shift, Store
from ..models.closeouts import DENOMINATIONS, PHOTO_TYPES
from ..outcomes import ConfirmationRequired, DEPOSIT_VARIANCE
from ..time_utils import (
    format_hhmm,
    local_datetime,
    local_to_utc,
    parse_business_date,
    parse_hhmm,
    to_utc_z,
    utcnow,
)
from ..validation import (
    ConflictError,
    NotFoundError,
    ValidationError,
    clean_text,
    parse_cents,
    parse_count,
    require_choice,
    require_text,
)
from . import sales_checkpoint_service, store_service
from .audit_service import append_audit_event
from .concurrency import is_unique_violation, lock_for_update, run_with_retry, upsert


# -- Formulas --


def expected_deposit_cents(cash_sales_cents: int, expense_total_cents: int) -> int:
    net = max(0, cash_sales_cents - expense_total_cents)
    return ((net + 99) // 100) * 100


def denom_total_cents(denoms: dict) -> int:
    return sum(int(denom) * 100 * count for denom, count in denoms.items())


def derive_status(
    *,
    variance_cents: int,
    denom_variance_cents: int,
    deposit_tolerance_cents: int,
    denom_tolerance_cents: int,
    justification: str | None,
) -> str:
    if variance_cents == 0 and abs(denom_variance_cents) <= denom_tolerance_cents:
        return "pass"
    if abs(variance_cents) <= deposit_tolerance_cents or justification:
        return "warn"
    return "fail"


def photo_purge_date(business_date: date, purge_day: int) -> date:
    """The store's purge day in the month after the business date."""
    year, month = business_date.year, business_date.month + 1
    if month > 12:
        year, month = year + 1, 1
    return date(year, month, max(1, min(purge_day, 28)))


# -- Payload parsing --


def parse_denoms(raw) -> dict:
    if not isinstance(raw, dict):
        raise ValidationError("denoms must be an object of denomination -> count")
    allowed = {str(d) for d in DENOMINATIONS}
    parsed = {}
    for key, value in raw.items():
        denom = str(key).strip()
        if denom not in allowed:
            raise ValidationError(f"denoms: unsupported denomination {key!r}")
        parsed[denom] = parse_count(value, f"denoms.{denom}")
    return parsed


def parse_expenses(raw) -> list[dict]:
    if not isinstance(raw, list):
        raise ValidationError("expenses must be a list")
    parsed = []
    for i, item in enumerate(raw):
        if not isinstance(item, dict):
            raise ValidationError(f"expenses[{i}] must be an object")
        parsed.append({
            "amount_cents": parse_cents(item.get("amount_cents"), f"expenses[{i}].amount_cents", positive=True),
            "category": require_text(item.get("category"), f"expenses[{i}].category", max_length=64),
            "note": clean_text(item.get("note"), max_length=500, field=f"expenses[{i}].note"),
        })
    return parsed


def parse_photos(raw) -> list[dict]:
    if not isinstance(raw, list):
        raise ValidationError("photos must be a list")
    parsed = []
    for i, item in enumerate(raw):
        if not isinstance(item, dict):
            raise ValidationError(f"photos[{i}] must be an object")
        parsed.append({
            "photo_type": require_choice(item.get("photo_type"), f"photos[{i}].photo_type", PHOTO_TYPES),
            "storage_path": require_text(item.get("storage_path"), f"photos[{i}].storage_path", max_length=512),
            "thumb_path": clean_text(item.get("thumb_path"), max_length=512, field=f"photos[{i}].thumb_path"),
        })
    return parsed


# -- Eligibility window --


@dataclass(frozen=True)
class CloseoutWindow:
    business_date: date
    effective_end_utc: datetime
    opens_at_utc: datetime
    effective_end_local: str
    opens_at_local: str
    rollover_night: bool

    def is_open(self, now: datetime) -> bool:
        return now >= self.opens_at_utc

    def to_dict(self, now: datetime | None = None) -> dict:
        return {
            "business_date": self.business_date.isoformat(),
            "effective_end_at": to_utc_z(self.effective_end_utc),
            "opens_at": to_utc_z(self.opens_at_utc),
            "effective_end_local": self.effective_end_local,
            "opens_at_local": self.opens_at_local,
            "rollover_night": self.rollover_night,
            "is_open": self.is_open(now or utcnow()),
        }


def closeout_window(shift: Shift, store: Store | None = None) -> CloseoutWindow:
    """
    Closing and double shifts may start closeout LEAD minutes before their
    effective scheduled end. On rollover nights the end is pinned to the
    register close time on the shift date.
    """
    if shift.shift_type not in ("close", "double"):
        raise ValidationError("Safe closeout is only available on close or double shifts.")
    scheduled = shift.scheduled_shift
    if scheduled is None:
        raise ValidationError("Safe closeout requires a scheduled closing shift.")

    store = store or store_service.get_store(shift.store_id)
    tz = store_service.zone_for(store)
    config = current_app.config
    lead = config.get("SAFE_CLOSEOUT_LEAD_MINUTES", 30)

    business_date = scheduled.shift_date
    rollover_night = store_service.is_rollover_night(store.id, business_date)
    if rollover_night:
        end_minutes = config.get("ROLLOVER_REGISTER_CLOSE_MINUTES", 22 * 60)
    else:
        start_minutes = parse_hhmm(scheduled.scheduled_start)
        end_minutes = parse_hhmm(scheduled.scheduled_end)
        if end_minutes <= start_minutes:
            end_minutes += 24 * 60

    end_local = local_datetime(business_date, end_minutes, tz)
    opens_local = end_local - timedelta(minutes=lead)
    return CloseoutWindow(
        business_date=business_date,
        effective_end_utc=local_to_utc(end_local, tz),
        opens_at_utc=local_to_utc(opens_local, tz),
        effective_end_local=format_hhmm(end_minutes),
        opens_at_local=format_hhmm(end_minutes - lead),
        rollover_night=rollover_night,
    )


def require_window_open(shift: Shift, store: Store, now: datetime) -> CloseoutWindow:
    window = closeout_window(shift, store)
    if not window.is_open(now):
        lead = current_app.config.get("SAFE_CLOSEOUT_LEAD_MINUTES", 30)
        raise ValidationError(
            f"Safe closeout opens at {window.opens_at_local}, "
            f"{lead} minutes before scheduled end ({window.effective_end_local})."
        )
    return window


# -- Reads --


def get_closeout(closeout_id: int) -> SafeCloseout:
    closeout = db.session.get(SafeCloseout, closeout_id)
    if not closeout:
        raise NotFoundError("Closeout not found.")
    return closeout


def find_closeout(store_id: int, business_date: date) -> SafeCloseout | None:
    return db.session.query(SafeCloseout).filter_by(store_id=store_id, business_date=business_date).first()


def get_context(shift: Shift, *, now: datetime | None = None) -> dict:
    now = now or utcnow()
    store = store_service.get_store(shift.store_id)
    window = closeout_window(shift, store)
    settings = store_service.get_settings(store.id)

    closeout = find_closeout(store.id, window.business_date)
    record = sales_checkpoint_service.get_daily_record(store.id, window.business_date)
    prior_x = None
    if closeout is not None and closeout.prior_x_report_cents is not None:
        prior_x = closeout.prior_x_report_cents
    elif record is not None:
        prior_x = record.prior_x_report_cents

    return {
        "shift_id": shift.id,
        "store_id": store.id,
        "business_date": window.business_date.isoformat(),
        "prior_x_report_cents": prior_x,
        "window": window.to_dict(now),
        "closeout": closeout.to_dict() if closeout else None,
        "denominations": list(DENOMINATIONS),
        "deposit_tolerance_cents": settings.safe_deposit_tolerance_cents,
        "denom_tolerance_cents": settings.safe_denom_tolerance_cents,
    }


def list_closeouts(
    store_ids: set[int],
    *,
    status: str | None = None,
    needs_review: bool = False,
    start: date | None = None,
    end: date | None = None,
) -> list[SafeCloseout]:
    if not store_ids:
        return []
    q = db.session.query(SafeCloseout).filter(SafeCloseout.store_id.in_(store_ids))
    if status:
        q = q.filter(SafeCloseout.status == status)
    if needs_review:
        q = q.filter(SafeCloseout.requires_manager_review.is_(True))
    if start:
        q = q.filter(SafeCloseout.business_date >= start)
    if end:
        q = q.filter(SafeCloseout.business_date <= end)
    return q.order_by(SafeCloseout.business_date.desc(), SafeCloseout.id.desc()).all()


# -- Writes --


def _check_business_date(payload: dict, business_date: date) -> None:
    raw = payload.get("business_date")
    if raw in (None, ""):
        return
    try:
        given = parse_business_date(raw)
    except ValueError:
        raise ValidationError("business_date must be YYYY-MM-DD")
    if given != business_date:
        raise ValidationError("business_date does not match the shift's business date.")


def _ensure_writable(closeout: SafeCloseout | None) -> None:
    if closeout is not None and closeout.is_read_only:
        raise ConflictError(
            "Closeout is read-only.",
            code="READ_ONLY",
            details={"closeout_id": closeout.id, "status": closeout.status},
        )


def _draft_fields(payload: dict) -> tuple[dict, int]:
    """Fields present in a partial payload, plus the furthest wizard step they reach."""
    values = {}
    step = 1
    if "prior_x_report_cents" in payload:
        values["prior_x_report_cents"] = parse_cents(payload["prior_x_report_cents"], "prior_x_report_cents", required=False)
    for field in ("cash_sales_cents", "card_sales_cents", "other_sales_cents"):
        if field in payload:
            values[field] = parse_cents(payload[field], field, required=False)
            step = max(step, 2)
    if "expenses" in payload:
        step = max(step, 2)
    if "denoms" in payload:
        values["denoms"] = parse_denoms(payload["denoms"])
        step = max(step, 3)
    if "drawer_count_cents" in payload:
        values["drawer_count_cents"] = parse_cents(payload["drawer_count_cents"], "drawer_count_cents", required=False)
        step = max(step, 4)
    if "wizard_step" in payload:
        requested = parse_count(payload["wizard_step"], "wizard_step")
        if not 1 <= requested <= 5:
            raise ValidationError("wizard_step must be between 1 and 5")
        step = max(step, requested)
    return values, step


def _replace_expenses(closeout: SafeCloseout, expenses: list[dict]) -> None:
    closeout.expenses = [SafeCloseoutExpense(**item) for item in expenses]
    closeout.expense_total_cents = sum(item["amount_cents"] for item in expenses)


def _refresh_derived(closeout: SafeCloseout) -> None:
    if closeout.cash_sales_cents is not None:
        closeout.expected_deposit_cents = expected_deposit_cents(
            closeout.cash_sales_cents, closeout.expense_total_cents or 0
        )
    if closeout.denoms is not None:
        closeout.denom_total_cents = denom_total_cents(closeout.denoms)
        if closeout.expected_deposit_cents is not None:
            closeout.denom_variance_cents = closeout.denom_total_cents - closeout.expected_deposit_cents


def save_draft(
    *,
    shift: Shift,
    payload: dict,
    actor_profile_id: int,
    now: datetime | None = None,
) -> SafeCloseout:
    """Upsert whatever wizard fields the payload carries; returns the draft for resumption."""
    now = now or utcnow()
    store = store_service.get_store(shift.store_id)
    window = require_window_open(shift, store, now)
    _check_business_date(payload, window.business_date)

    values, step = _draft_fields(payload)
    expenses = parse_expenses(payload["expenses"]) if "expenses" in payload else None

    def _op():
        existing = find_closeout(store.id, window.business_date)
        _ensure_writable(existing)
        closeout = upsert(
            SafeCloseout,
            values={
                "store_id": store.id,
                "business_date": window.business_date,
                "shift_id": shift.id,
                "profile_id": actor_profile_id,
                **values,
            },
            conflict_columns=["store_id", "business_date"],
        )
        closeout.wizard_step = max(closeout.wizard_step or 1, step)
        if expenses is not None:
            _replace_expenses(closeout, expenses)
        _refresh_derived(closeout)
        db.session.commit()
        return closeout

    return run_with_retry(_op)


@dataclass
class SubmitResult:
    closeout: SafeCloseout
    confirmation: ConfirmationRequired | None = None

    @property
    def status(self) -> str:
        return self.closeout.status

    @property
    def http_status(self) -> int:
        return self.confirmation.http_status if self.confirmation else 200

    def to_dict(self) -> dict:
        body = self.confirmation.to_dict() if self.confirmation else {}
        body.update({
            "status": self.closeout.status,
            "variance_cents": self.closeout.variance_cents,
            "expected_deposit_cents": self.closeout.expected_deposit_cents,
            "actual_deposit_cents": self.closeout.actual_deposit_cents,
            "requires_manager_review": self.closeout.requires_manager_review,
            "closeout": self.closeout.to_dict(),
        })
        return body


def _merged(payload: dict, closeout: SafeCloseout | None, field: str):
    if field in payload:
        return payload[field]
    return getattr(closeout, field) if closeout is not None else None


def submit(
    *,
    shift: Shift,
    payload: dict,
    actor_profile_id: int,
    now: datetime | None = None,
) -> SubmitResult:
    """
    Final step. Absent fields fall back to the saved draft. A fail status is
    persisted (attempts are counted) and answered with a DEPOSIT_VARIANCE
    confirmation asking for a justification.
    """
    now = now or utcnow()
    store = store_service.get_store(shift.store_id)
    window = require_window_open(shift, store, now)
    _check_business_date(payload, window.business_date)
    settings = store_service.get_settings(store.id)

    draft = find_closeout(store.id, window.business_date)
    _ensure_writable(draft)

    cash = parse_cents(_merged(payload, draft, "cash_sales_cents"), "cash_sales_cents")
    card = parse_cents(_merged(payload, draft, "card_sales_cents"), "card_sales_cents", required=False) or 0
    other = parse_cents(_merged(payload, draft, "other_sales_cents"), "other_sales_cents", required=False) or 0
    prior_x = parse_cents(_merged(payload, draft, "prior_x_report_cents"), "prior_x_report_cents", required=False)

    raw_denoms = _merged(payload, draft, "denoms")
    if raw_denoms is None:
        raise ValidationError("denoms is required")
    denoms = parse_denoms(raw_denoms)
    drawer_count = parse_cents(_merged(payload, draft, "drawer_count_cents"), "drawer_count_cents", positive=True)

    if "expenses" in payload:
        expenses = parse_expenses(payload["expenses"])
    elif draft is not None:
        expenses = [e.to_dict() for e in draft.expenses]
        for item in expenses:
            item.pop("id", None)
    else:
        expenses = []

    if "photos" in payload:
        photos = parse_photos(payload["photos"])
    elif draft is not None:
        photos = [{"photo_type": p.photo_type, "storage_path": p.storage_path, "thumb_path": p.thumb_path} for p in draft.photos]
    else:
        photos = []
    if not any(p["photo_type"] == "deposit_required" for p in photos):
        raise ValidationError("A deposit slip photo is required.")

    justification = clean_text(payload.get("variance_justification"), max_length=1000, field="variance_justification")

    expense_total = sum(item["amount_cents"] for item in expenses)
    expected = expected_deposit_cents(cash, expense_total)
    denom_total = denom_total_cents(denoms)
    variance = denom_total - expected
    status = derive_status(
        variance_cents=variance,
        denom_variance_cents=denom_total - expected,
        deposit_tolerance_cents=settings.safe_deposit_tolerance_cents,
        denom_tolerance_cents=settings.safe_denom_tolerance_cents,
        justification=justification,
    )

    def _op():
        _ensure_writable(find_closeout(store.id, window.business_date))
        closeout = upsert(
            SafeCloseout,
            values={
                "store_id": store.id,
                "business_date": window.business_date,
                "shift_id": shift.id,
                "profile_id": actor_profile_id,
                "status": status,
                "wizard_step": 5,
                "prior_x_report_cents": prior_x,
                "cash_sales_cents": cash,
                "card_sales_cents": card,
                "other_sales_cents": other,
                "expected_deposit_cents": expected,
                "denoms": denoms,
                "denom_total_cents": denom_total,
                "denom_variance_cents": denom_total - expected,
                "actual_deposit_cents": denom_total,
                "variance_cents": variance,
                "drawer_count_cents": drawer_count,
                "deposit_override_reason": justification if status == "warn" else None,
                "submitted_at": now,
            },
            conflict_columns=["store_id", "business_date"],
        )
        _replace_expenses(closeout, expenses)
        purge_after = photo_purge_date(window.business_date, settings.safe_photo_purge_day_of_month)
        closeout.photos = [SafeCloseoutPhoto(purge_after=purge_after, **p) for p in photos]

        if status == "fail":
            closeout.validation_attempts = (closeout.validation_attempts or 0) + 1
            if closeout.validation_attempts >= 2:
                closeout.requires_manager_review = True
        elif status == "warn" and justification and abs(variance) > settings.safe_deposit_tolerance_cents:
            closeout.requires_manager_review = True

        append_audit_event(
            store_id=store.id,
            event_type=f"closeout.submit_{status}",
            entity_type="safe_closeout",
            entity_id=closeout.id,
            actor_profile_id=actor_profile_id,
            occurred_at=now,
            note=justification,
            payload={
                "expected_deposit_cents": expected,
                "actual_deposit_cents": denom_total,
                "variance_cents": variance,
                "validation_attempts": closeout.validation_attempts,
            },
        )
        db.session.commit()
        return closeout

    closeout = run_with_retry(_op)

    confirmation = None
    if status == "fail":
        confirmation = ConfirmationRequired(
            code=DEPOSIT_VARIANCE,
            message="Deposit does not match the expected amount. Recount or add a variance justification.",
            details={"requires_justification": True, "validation_attempts": closeout.validation_attempts},
        )
    return SubmitResult(closeout=closeout, confirmation=confirmation)


def backfill(*, store: Store, payload: dict, manager_profile_id: int) -> SafeCloseout:
    """Manager-entered historical closeout; bypasses the wizard, same formulas."""
    try:
        business_date = parse_business_date(payload.get("business_date"))
    except ValueError:
        raise ValidationError("business_date must be YYYY-MM-DD")
    settings = store_service.get_settings(store.id)

    cash = parse_cents(payload.get("cash_sales_cents"), "cash_sales_cents")
    card = parse_cents(payload.get("card_sales_cents"), "card_sales_cents", required=False) or 0
    other = parse_cents(payload.get("other_sales_cents"), "other_sales_cents", required=False) or 0
    expenses = parse_expenses(payload.get("expenses") or [])
    denoms = parse_denoms(payload.get("denoms") or {})
    drawer_count = parse_cents(payload.get("drawer_count_cents"), "drawer_count_cents", required=False, positive=True)
    note = clean_text(payload.get("note"), max_length=1000)

    expense_total = sum(item["amount_cents"] for item in expenses)
    expected = expected_deposit_cents(cash, expense_total)
    denom_total = denom_total_cents(denoms)
    variance = denom_total - expected
    status = derive_status(
        variance_cents=variance,
        denom_variance_cents=variance,
        deposit_tolerance_cents=settings.safe_deposit_tolerance_cents,
        denom_tolerance_cents=settings.safe_denom_tolerance_cents,
        justification=note,
    )

    closeout = SafeCloseout(
        store_id=store.id,
        business_date=business_date,
        profile_id=manager_profile_id,
        status=status,
        wizard_step=5,
        cash_sales_cents=cash,
        card_sales_cents=card,
        other_sales_cents=other,
        expected_deposit_cents=expected,
        denoms=denoms,
        denom_total_cents=denom_total,
        denom_variance_cents=variance,
        actual_deposit_cents=denom_total,
        variance_cents=variance,
        drawer_count_cents=drawer_count,
        deposit_override_reason=note if status == "warn" else None,
        is_historical_backfill=True,
        submitted_at=utcnow(),
    )
    _replace_expenses(closeout, expenses)
    db.session.add(closeout)
    try:
        db.session.flush()
        append_audit_event(
            store_id=store.id,
            event_type="closeout.backfill",
            entity_type="safe_closeout",
            entity_id=closeout.id,
            actor_profile_id=manager_profile_id,
            note=note,
            payload={"business_date": business_date.isoformat(), "variance_cents": variance},
        )
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        if is_unique_violation(exc, constraint="uq_safe_closeouts_store_date", columns=("store_id", "business_date")):
            raise ConflictError(
                "A closeout already exists for this business date.",
                code="DUPLICATE_CLOSEOUT",
                details={"business_date": business_date.isoformat()},
            )
        raise
    return closeout


def review_closeout(*, closeout_id: int, manager_profile_id: int, note: str | None = None) -> SafeCloseout:
    """Lock a submitted closeout and close the day's sales. Re-reviewing is a no-op."""

    def _op():
        closeout = lock_for_update(db.session.query(SafeCloseout).filter_by(id=closeout_id)).first()
        if not closeout:
            raise NotFoundError("Closeout not found.")
        if closeout.status == "locked":
            return closeout
        if closeout.status == "draft":
            raise ValidationError("Closeout has not been submitted.")

        now = utcnow()
        closeout.status = "locked"
        closeout.requires_manager_review = False
        closeout.reviewed_at = now
        closeout.reviewed_by = manager_profile_id
        closeout.review_note = clean_text(note, max_length=1000)
        sales_checkpoint_service.close_sales_day(closeout.store_id, closeout.business_date)

        append_audit_event(
            store_id=closeout.store_id,
            event_type="closeout.reviewed",
            entity_type="safe_closeout",
            entity_id=closeout.id,
            actor_profile_id=manager_profile_id,
            occurred_at=now,
            note=closeout.review_note,
        )
        db.session.commit()
        current_app.logger.info("Closeout %s locked by profile %s", closeout.id, manager_profile_id)
        return closeout

    return run_with_retry(_op)
