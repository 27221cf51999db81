# Overview: Drawer counts per shift; threshold gate then keyed upsert on (shift, count_type).

from __future__ import annotations

from dataclasses import dataclass

from ..extensions import db
from ..models import DrawerCount, Shift, Store
from ..models.timekeeping import COUNT_TYPES
from ..outcomes import ConfirmationRequired
from ..rules.drawer_thresholds import check_drawer, DrawerCheck
from ..time_utils import utcnow
from ..validation import ValidationError, ConflictError, clean_text, parse_bool, parse_cents
from . import store_service
from .audit_service import append_audit_event
from .concurrency import upsert


@dataclass(frozen=True)
class DrawerInput:
    drawer_cents: int
    change_cents: int | None
    confirmed: bool
    notified_manager: bool
    note: str | None


def parse_drawer_input(
    payload: dict,
    *,
    drawer_field: str = "drawer_cents",
    change_field: str = "change_cents",
    required: bool = True,
) -> DrawerInput | None:
    """Validate a drawer payload; None when optional and absent."""
    raw = payload.get(drawer_field)
    if raw is None and not required:
        if payload.get(change_field) is not None:
            raise ValidationError(f"{drawer_field} is required when {change_field} is given")
        return None
    return DrawerInput(
        drawer_cents=parse_cents(raw, drawer_field),
        change_cents=parse_cents(payload.get(change_field), change_field, required=False),
        confirmed=parse_bool(payload.get("confirmed", False)),
        notified_manager=parse_bool(payload.get("notified_manager", False)),
        note=clean_text(payload.get("note"), max_length=1000),
    )


def evaluate(store: Store, drawer: DrawerInput) -> DrawerCheck:
    settings = store_service.get_settings(store.id)
    return check_drawer(
        drawer_cents=drawer.drawer_cents,
        expected_drawer_cents=store.expected_drawer_cents,
        change_cents=drawer.change_cents,
        expected_change_cents=settings.expected_change_cents,
        confirmed=drawer.confirmed,
        notified_manager=drawer.notified_manager,
    )


def write_drawer_count(
    *,
    shift: Shift,
    store: Store,
    count_type: str,
    drawer: DrawerInput,
    check: DrawerCheck,
) -> DrawerCount:
    """Upsert an already-evaluated count. Does not commit."""
    if count_type not in COUNT_TYPES:
        raise ValidationError(f"count_type must be one of: {', '.join(COUNT_TYPES)}")
    return upsert(
        DrawerCount,
        values={
            "shift_id": shift.id,
            "count_type": count_type,
            "drawer_cents": drawer.drawer_cents,
            "change_cents": drawer.change_cents,
            "expected_drawer_cents": store.expected_drawer_cents,
            "confirmed": drawer.confirmed,
            "notified_manager": drawer.notified_manager,
            "note": drawer.note,
            "out_of_threshold": check.out_of_threshold,
            "counted_at": utcnow(),
        },
        conflict_columns=["shift_id", "count_type"],
    )


def record_drawer_count(
    *,
    shift: Shift,
    count_type: str,
    drawer: DrawerInput,
    actor_profile_id: int,
) -> DrawerCount | ConfirmationRequired:
    """
    Record a start/changeover/end count on a shift.

    A count outside threshold (or a short change fund) comes back as
    ConfirmationRequired and nothing is written. Re-submitting the same
    count_type replaces the earlier row.
    """
    if count_type not in COUNT_TYPES:
        raise ValidationError(f"count_type must be one of: {', '.join(COUNT_TYPES)}")
    if count_type != "end" and shift.ended_at is not None:
        raise ConflictError("Shift already ended.", code="ALREADY_ENDED", details={"shift_id": shift.id})

    store = store_service.get_store(shift.store_id)
    check = evaluate(store, drawer)
    if check.confirmation is not None:
        return check.confirmation

    count = write_drawer_count(shift=shift, store=store, count_type=count_type, drawer=drawer, check=check)
    append_audit_event(
        store_id=shift.store_id,
        event_type=f"drawer.{count_type}",
        entity_type="shift",
        entity_id=shift.id,
        actor_profile_id=actor_profile_id,
        payload={
            "drawer_cents": drawer.drawer_cents,
            "change_cents": drawer.change_cents,
            "out_of_threshold": check.out_of_threshold,
        },
    )
    db.session.commit()
    return count


def counts_for_shift(shift_id: int) -> list[DrawerCount]:
    order = {name: i for i, name in enumerate(COUNT_TYPES)}
    rows = db.session.query(DrawerCount).filter_by(shift_id=shift_id).all()
    return sorted(rows, key=lambda row: order.get(row.count_type, len(order)))
