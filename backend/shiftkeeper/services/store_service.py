from __future__ import annotations

from datetime import date

from flask import current_app

from ..extensions import db
from ..models import Store, StoreSettings, StoreRolloverConfig, ShiftTemplate
from ..time_utils import store_zone, day_of_week, format_hhmm, parse_hhmm
from ..validation import NotFoundError, ValidationError
from .concurrency import lock_for_update, run_with_retry, upsert


class StoreError(ValueError):
    """Raised when store operations fail."""


SETTINGS_DEFAULTS = {
    "sales_tracking_enabled": False,
    "sales_rollover_enabled": False,
    "sales_variance_threshold_cents": 100,
    "expected_change_cents": 20000,
    "safe_deposit_tolerance_cents": 100,
    "safe_denom_tolerance_cents": 0,
    "safe_photo_retention_days": 38,
    "safe_photo_purge_day_of_month": 8,
}


def get_store(store_id: int) -> Store:
    store = db.session.get(Store, store_id)
    if not store:
        raise NotFoundError("Store not found")
    return store


def resolve_store(*, store_id: int | None = None, qr_token: str | None = None) -> Store:
    """Kiosk clock-in identifies the store by QR token or by id."""
    if qr_token:
        store = db.session.query(Store).filter_by(qr_token=qr_token).first()
    elif store_id:
        store = db.session.get(Store, store_id)
    else:
        raise ValidationError("store_id or qr_token is required")
    if not store or not store.is_active:
        raise NotFoundError("Invalid store.")
    return store


def zone_for(store: Store):
    return store_zone(store.timezone, current_app.config.get("DEFAULT_STORE_TIMEZONE", "America/Chicago"))


def get_settings(store_id: int) -> StoreSettings:
    """
    The store's settings row, or an unsaved row carrying the defaults.
    Reading never creates a row.
    """
    settings = db.session.query(StoreSettings).filter_by(store_id=store_id).first()
    if settings:
        return settings
    return StoreSettings(store_id=store_id, **SETTINGS_DEFAULTS)


def update_settings(store_id: int, **changes) -> StoreSettings:
    get_store(store_id)
    unknown = set(changes) - set(SETTINGS_DEFAULTS)
    if unknown:
        raise ValidationError(f"Unknown settings: {', '.join(sorted(unknown))}")

    def _op():
        values = {**SETTINGS_DEFAULTS}
        existing = db.session.query(StoreSettings).filter_by(store_id=store_id).first()
        if existing:
            values.update({k: getattr(existing, k) for k in SETTINGS_DEFAULTS})
        values.update(changes)
        values["store_id"] = store_id
        settings = upsert(StoreSettings, values=values, conflict_columns=["store_id"])
        db.session.commit()
        return settings

    return run_with_retry(_op)


def is_rollover_night(store_id: int, business_date: date) -> bool:
    """Store-level enable flag AND a per-day-of-week rollover row."""
    settings = get_settings(store_id)
    if not settings.sales_rollover_enabled:
        return False
    config = (
        db.session.query(StoreRolloverConfig)
        .filter_by(store_id=store_id, day_of_week=day_of_week(business_date))
        .first()
    )
    return bool(config and config.has_rollover)


def set_rollover_day(store_id: int, day: int, has_rollover: bool) -> StoreRolloverConfig:
    if not 0 <= day <= 6:
        raise ValidationError("day_of_week must be between 0 (Sunday) and 6 (Saturday)")
    get_store(store_id)
    row = upsert(
        StoreRolloverConfig,
        values={"store_id": store_id, "day_of_week": day, "has_rollover": has_rollover},
        conflict_columns=["store_id", "day_of_week"],
    )
    db.session.commit()
    return row


def templates_for_day(store_id: int, day: int) -> list[ShiftTemplate]:
    return (
        db.session.query(ShiftTemplate)
        .filter_by(store_id=store_id, day_of_week=day)
        .filter(ShiftTemplate.shift_type.in_(("open", "close")))
        .order_by(ShiftTemplate.id.asc())
        .all()
    )


def create_store(
    name: str,
    *,
    timezone: str = "America/Chicago",
    expected_drawer_cents: int = 20000,
    qr_token: str | None = None,
    clock_window_class: str | None = None,
) -> Store:
    def _op():
        if not name or not name.strip():
            raise StoreError("Store name is required")
        if expected_drawer_cents < 0:
            raise StoreError("expected_drawer_cents must be >= 0")

        store = Store(
            name=name.strip(),
            timezone=timezone,
            expected_drawer_cents=expected_drawer_cents,
            qr_token=qr_token,
            clock_window_class=clock_window_class,
        )
        db.session.add(store)
        db.session.commit()
        return store

    return run_with_retry(_op)


def set_location(store_id: int, *, latitude: float | None, longitude: float | None) -> Store:
    def _op():
        store = lock_for_update(db.session.query(Store).filter_by(id=store_id)).first()
        if not store:
            raise NotFoundError("Store not found")
        store.latitude = latitude
        store.longitude = longitude
        db.session.commit()
        return store

    return run_with_retry(_op)


def set_shift_template(
    store_id: int,
    *,
    day: int,
    shift_type: str,
    start_time: str,
    end_time: str,
) -> ShiftTemplate:
    if not 0 <= day <= 6:
        raise ValidationError("day_of_week must be between 0 (Sunday) and 6 (Saturday)")
    if shift_type not in ("open", "close"):
        raise ValidationError("shift_type must be open or close")
    try:
        start = parse_hhmm(start_time)
        end = parse_hhmm(end_time)
    except ValueError as exc:
        raise ValidationError(str(exc))
    get_store(store_id)
    row = upsert(
        ShiftTemplate,
        values={
            "store_id": store_id,
            "day_of_week": day,
            "shift_type": shift_type,
            "start_time": format_hhmm(start),
            "end_time": format_hhmm(end),
            "is_overnight": end <= start,
        },
        conflict_columns=["store_id", "day_of_week", "shift_type"],
    )
    db.session.commit()
    return row
