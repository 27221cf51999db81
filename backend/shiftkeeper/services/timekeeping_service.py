# Overview: Shift lifecycle: clock-in/out, overrides, manual close and its review.

"""
Shift Lifecycle

    none -> open -> closed
               `-> manual_closed (needs review disposition)
    requires_override may be raised on an open or closed shift and holds it
    out of payroll until a manager signs off with a note.

One open shift per employee is enforced by the partial unique index on
shifts(profile_id) WHERE ended_at IS NULL. Racing clock-ins both try to
insert; the loser's IntegrityError becomes ConflictError(ALREADY_ACTIVE).

The inline start drawer is written after the shift has been committed. If
that write fails the shift is deleted again (compensating delete), so a
failed clock-in never leaves an open "ghost" shift behind.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..models import Profile, Shift, Store, DrawerCount
from ..models.timekeeping import MANUAL_CLOSE_DISPOSITIONS
from ..outcomes import ConfirmationRequired, UNSCHEDULED
from ..rules.clock_windows import check_local_time, resolve_store_class
from ..time_utils import (
    local_to_utc,
    parse_entered_datetime,
    round_to_30_minutes,
    to_local,
    to_utc_z,
    utcnow,
)
from ..validation import ConflictError, NotFoundError, ValidationError, clean_text, require_text
from . import drawer_service, schedule_service, store_service, store_access_service, weather_service
from .audit_service import append_audit_event
from .concurrency import is_unique_violation
from .drawer_service import DrawerInput


class TimekeepingError(ValidationError):
    """Raised for invalid timekeeping operations."""


class ClockWindowError(TimekeepingError):
    def __init__(self, window_label: str):
        super().__init__("CLOCK_WINDOW_VIOLATION")
        self.window_label = window_label


@dataclass
class ClockInResult:
    shift: Shift
    match: schedule_service.ScheduleMatch
    drawer_count: DrawerCount | None = None

    def to_dict(self) -> dict:
        return {
            "shift_id": self.shift.id,
            "shift_type": self.shift.shift_type,
            "shift_source": self.shift.shift_source,
            "requires_override": self.shift.requires_override,
            "match": self.match.to_dict(),
            "shift": self.shift.to_dict(),
            "drawer_count": self.drawer_count.to_dict() if self.drawer_count else None,
        }


def get_shift(shift_id: int) -> Shift:
    shift = db.session.get(Shift, shift_id)
    if not shift:
        raise NotFoundError("Shift not found.")
    return shift


def get_open_shift(profile_id: int) -> Shift | None:
    return db.session.query(Shift).filter_by(profile_id=profile_id, ended_at=None).first()


def _rounded_utc(dt_utc: datetime, store: Store) -> datetime:
    tz = store_service.zone_for(store)
    return local_to_utc(round_to_30_minutes(to_local(dt_utc, tz)), tz)


def _enforce_clock_window(store: Store, shift_type: str, rounded_utc: datetime) -> None:
    """Hard gate only when CLOCK_WINDOW_ENFORCEMENT is on."""
    if not current_app.config.get("CLOCK_WINDOW_ENFORCEMENT"):
        return
    store_class = resolve_store_class(store.clock_window_class, store.name)
    if store_class is None:
        raise ClockWindowError("Outside allowed clock window")
    check = check_local_time(
        store_class=store_class,
        shift_type=shift_type,
        local_dt=to_local(rounded_utc, store_service.zone_for(store)),
    )
    if not check.ok:
        raise ClockWindowError(check.label)


def clock_in(
    *,
    store: Store,
    profile_id: int,
    planned_start_at: str | datetime | None,
    start_drawer: DrawerInput | None = None,
    force: bool = False,
    shift_type_hint: str | None = None,
    actor_profile_id: int | None = None,
) -> ClockInResult | ConfirmationRequired:
    profile = db.session.get(Profile, profile_id)
    if not profile or not profile.is_active:
        raise TimekeepingError("Invalid or inactive employee.")
    if not store_access_service.is_member(profile_id, store.id):
        raise TimekeepingError("Employee not assigned to this store.")

    tz = store_service.zone_for(store)
    if isinstance(planned_start_at, datetime):
        entered_at = local_to_utc(planned_start_at, tz) if planned_start_at.tzinfo else planned_start_at
    else:
        try:
            entered_at = parse_entered_datetime(planned_start_at, tz)
        except ValueError:
            raise TimekeepingError("planned_start_at must be an ISO-8601 datetime")
    if entered_at is None:
        raise TimekeepingError("planned_start_at is required")
    planned_rounded = _rounded_utc(entered_at, store)

    match = schedule_service.match_clock_in(
        store=store,
        profile_id=profile_id,
        entered_at=entered_at,
        hint=shift_type_hint,
    )

    if not match.has_scheduled_shift and not force:
        return ConfirmationRequired(
            code=UNSCHEDULED,
            message="UNSCHEDULED",
            details={"match": match.to_dict()},
            requires_approval=True,
        )

    if match.has_scheduled_shift and match.shift_type in ("open", "double"):
        _enforce_clock_window(store, "open", planned_rounded)

    check = None
    if start_drawer is not None:
        check = drawer_service.evaluate(store, start_drawer)
        if check.confirmation is not None:
            return check.confirmation

    unscheduled = not match.has_scheduled_shift
    shift = Shift(
        store_id=store.id,
        profile_id=profile_id,
        shift_type=match.shift_type,
        shift_source="manual" if unscheduled else "scheduled",
        scheduled_shift_id=match.scheduled_shift_id,
        match_reason=match.reason,
        entered_start_at=entered_at,
        planned_start_at=planned_rounded,
        started_at=utcnow(),
        requires_override=unscheduled,
        override_reason="unscheduled" if unscheduled else None,
    )
    db.session.add(shift)
    try:
        db.session.flush()
        append_audit_event(
            store_id=store.id,
            event_type="shift.clock_in",
            entity_type="shift",
            entity_id=shift.id,
            actor_profile_id=actor_profile_id or profile_id,
            occurred_at=shift.started_at,
            payload={
                "match_reason": match.reason,
                "diff_minutes": match.diff_minutes,
                "scheduled_shift_id": match.scheduled_shift_id,
                "forced": bool(force and unscheduled),
            },
        )
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        if is_unique_violation(exc, constraint="uq_shifts_one_open_per_profile", columns=("profile_id",)):
            existing = get_open_shift(profile_id)
            raise ConflictError(
                "Employee already has an active shift.",
                code="ALREADY_ACTIVE",
                details={"shift_id": existing.id if existing else None},
            )
        raise

    drawer_count = None
    if start_drawer is not None:
        shift_id = shift.id
        try:
            drawer_count = drawer_service.write_drawer_count(
                shift=shift, store=store, count_type="start", drawer=start_drawer, check=check,
            )
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            _delete_ghost_shift(shift_id, store_id=store.id, actor_profile_id=actor_profile_id or profile_id)
            raise

    weather_service.schedule_capture(shift.id, "start")
    return ClockInResult(shift=shift, match=match, drawer_count=drawer_count)


def _delete_ghost_shift(shift_id: int, *, store_id: int, actor_profile_id: int) -> None:
    """Compensating delete after the start drawer write failed."""
    current_app.logger.warning("Start drawer write failed; deleting shift %s", shift_id)
    db.session.query(DrawerCount).filter_by(shift_id=shift_id).delete(synchronize_session=False)
    db.session.query(Shift).filter_by(id=shift_id).delete(synchronize_session=False)
    append_audit_event(
        store_id=store_id,
        event_type="shift.clock_in_reverted",
        entity_type="shift",
        entity_id=shift_id,
        actor_profile_id=actor_profile_id,
        note="Start drawer count could not be saved",
    )
    db.session.commit()


def _scheduled_minutes(shift: Shift) -> int | None:
    if shift.scheduled_shift is None:
        return None
    return schedule_service.scheduled_duration_minutes(shift.scheduled_shift)


def _flag_override(shift: Shift, reason: str) -> None:
    # A new exception needs a fresh sign-off
    shift.requires_override = True
    shift.override_reason = reason
    shift.override_at = None
    shift.override_by = None
    shift.override_note = None


def _flag_duration_exceptions(shift: Shift) -> None:
    """Raise requires_override for an ended shift that runs too long."""
    if shift.requires_override:
        return  # keep the existing reason (e.g. unscheduled)
    duration = shift.duration_minutes or 0
    scheduled = _scheduled_minutes(shift)
    if duration > current_app.config.get("MAX_SHIFT_HOURS", 13) * 60:
        _flag_override(shift, "duration")
    elif scheduled is not None and duration > scheduled:
        _flag_override(shift, "over_scheduled")


def clock_out(
    *,
    shift: Shift,
    actor_profile_id: int,
    end_at: str | datetime | None = None,
    end_drawer: DrawerInput | None = None,
    manual_close: bool = False,
) -> Shift | ConfirmationRequired:
    if shift.ended_at is not None:
        raise ConflictError("Shift already ended.", code="ALREADY_ENDED", details={"shift_id": shift.id})

    store = store_service.get_store(shift.store_id)
    tz = store_service.zone_for(store)

    if isinstance(end_at, datetime):
        ended_at = local_to_utc(end_at, tz) if end_at.tzinfo else end_at
    else:
        try:
            ended_at = parse_entered_datetime(end_at, tz)
        except ValueError:
            raise TimekeepingError("end_at must be an ISO-8601 datetime")
    if ended_at is None:
        ended_at = utcnow()
    if ended_at <= shift.entered_start_at:
        raise TimekeepingError("end_at must be after the shift start.")
    planned_end = _rounded_utc(ended_at, store)

    if shift.shift_type == "close" and shift.scheduled_shift_id is None:
        _enforce_clock_window(store, "close", planned_end)

    check = None
    if end_drawer is not None:
        check = drawer_service.evaluate(store, end_drawer)
        if check.confirmation is not None:
            return check.confirmation

    shift.ended_at = ended_at
    shift.planned_end_at = planned_end

    _flag_duration_exceptions(shift)
    duration = shift.duration_minutes or 0
    scheduled = _scheduled_minutes(shift)

    if manual_close:
        shift.manual_closed = True
        shift.manual_closed_at = utcnow()
        shift.manual_closed_by = actor_profile_id
        shift.manual_close_review_status = None
        shift.manual_close_reviewed_at = None
        shift.manual_close_reviewed_by = None
        shift.manual_close_review_note = None

    try:
        if end_drawer is not None:
            drawer_service.write_drawer_count(
                shift=shift, store=store, count_type="end", drawer=end_drawer, check=check,
            )
        append_audit_event(
            store_id=shift.store_id,
            event_type="shift.manual_close" if manual_close else "shift.clock_out",
            entity_type="shift",
            entity_id=shift.id,
            actor_profile_id=actor_profile_id,
            occurred_at=utcnow(),
            payload={
                "duration_minutes": duration,
                "scheduled_minutes": scheduled,
                "requires_override": shift.requires_override,
                "override_reason": shift.override_reason,
            },
        )
        db.session.commit()
    except StaleDataError:
        db.session.rollback()
        raise ConflictError("Shift already ended.", code="ALREADY_ENDED", details={"shift_id": shift.id})

    weather_service.schedule_capture(shift.id, "end")
    return shift


def approve_override(*, shift: Shift, manager_profile_id: int, note: str | None) -> Shift:
    """
    Clear requires_override with a mandatory justification.

    Approving an already-approved shift is a no-op success.
    """
    if not shift.requires_override:
        if shift.override_at is not None:
            return shift
        raise TimekeepingError("Shift does not require an override.")

    text = require_text(note, "note", max_length=1000)
    now = utcnow()
    shift.requires_override = False
    shift.override_at = now
    shift.override_by = manager_profile_id
    shift.override_note = text

    append_audit_event(
        store_id=shift.store_id,
        event_type="shift.override_approved",
        entity_type="shift",
        entity_id=shift.id,
        actor_profile_id=manager_profile_id,
        occurred_at=now,
        note=text,
        payload={"override_reason": shift.override_reason},
    )
    db.session.commit()
    current_app.logger.info("Override approved for shift %s by profile %s", shift.id, manager_profile_id)
    return shift


def manager_end_shift(*, shift: Shift, manager_profile_id: int, end_at: str | None = None) -> Shift:
    """Administrative end of someone else's open shift; always a manual close."""
    result = clock_out(
        shift=shift,
        actor_profile_id=manager_profile_id,
        end_at=end_at,
        manual_close=True,
    )
    return result


def review_manual_close(
    *,
    shift: Shift,
    manager_profile_id: int,
    disposition: str,
    note: str | None = None,
    corrected_ended_at: str | None = None,
) -> Shift:
    if not shift.manual_closed:
        raise TimekeepingError("Shift was not manually closed.")
    if disposition not in MANUAL_CLOSE_DISPOSITIONS:
        raise TimekeepingError(f"disposition must be one of: {', '.join(MANUAL_CLOSE_DISPOSITIONS)}")

    if corrected_ended_at is not None and disposition != "edited":
        raise TimekeepingError("corrected ended_at is only accepted with disposition 'edited'.")

    payload = {"disposition": disposition}
    if disposition == "edited" and corrected_ended_at is not None:
        store = store_service.get_store(shift.store_id)
        try:
            new_end = parse_entered_datetime(corrected_ended_at, store_service.zone_for(store))
        except ValueError:
            raise TimekeepingError("ended_at must be an ISO-8601 datetime")
        if new_end is None or new_end <= shift.entered_start_at:
            raise TimekeepingError("ended_at must be after the shift start.")
        payload["previous_ended_at"] = to_utc_z(shift.ended_at)
        shift.ended_at = new_end
        shift.planned_end_at = _rounded_utc(new_end, store)
        payload["ended_at"] = to_utc_z(new_end)
        _flag_duration_exceptions(shift)
        payload["requires_override"] = shift.requires_override

    now = utcnow()
    shift.manual_close_review_status = disposition
    shift.manual_close_reviewed_at = now
    shift.manual_close_reviewed_by = manager_profile_id
    shift.manual_close_review_note = clean_text(note, max_length=1000)

    append_audit_event(
        store_id=shift.store_id,
        event_type="shift.manual_close_reviewed",
        entity_type="shift",
        entity_id=shift.id,
        actor_profile_id=manager_profile_id,
        occurred_at=now,
        note=shift.manual_close_review_note,
        payload=payload,
    )
    db.session.commit()
    current_app.logger.info("Manual close of shift %s reviewed as %s", shift.id, disposition)
    return shift


def list_open_shifts(store_ids: set[int]) -> list[Shift]:
    if not store_ids:
        return []
    return (
        db.session.query(Shift)
        .filter(Shift.store_id.in_(store_ids), Shift.ended_at.is_(None))
        .order_by(Shift.started_at.asc())
        .all()
    )


def list_pending_overrides(store_ids: set[int]) -> list[Shift]:
    if not store_ids:
        return []
    return (
        db.session.query(Shift)
        .filter(Shift.store_id.in_(store_ids), Shift.requires_override.is_(True))
        .order_by(Shift.started_at.asc())
        .all()
    )


def list_pending_manual_close_reviews(store_ids: set[int]) -> list[Shift]:
    if not store_ids:
        return []
    return (
        db.session.query(Shift)
        .filter(
            Shift.store_id.in_(store_ids),
            Shift.manual_closed.is_(True),
            Shift.manual_close_review_status.is_(None),
        )
        .order_by(Shift.ended_at.asc())
        .all()
    )
