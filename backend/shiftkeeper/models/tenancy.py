from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Store(db.Model):
    """
    A physical store location.

    Schedules, shifts, drawer counts and cash records are all owned by
    exactly one store. `timezone` is the wall-clock zone used for clock
    windows, schedule matching and business dates.
    """
    __tablename__ = "stores"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False, unique=True)

    timezone = db.Column(db.String(64), nullable=False, default="America/Chicago")

    # Expected opening float for a register drawer
    expected_drawer_cents = db.Column(db.Integer, nullable=False, default=20000)

    # Kiosk binding: clock-in may identify the store by QR token instead of id
    qr_token = db.Column(db.String(64), nullable=True, unique=True, index=True)

    # "LV1" / "LV2"; NULL falls back to the store name prefix
    clock_window_class = db.Column(db.String(16), nullable=True)

    # Weather context only
    latitude = db.Column(db.Float, nullable=True)
    longitude = db.Column(db.Float, nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
    )

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Store id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "timezone": self.timezone,
            "expected_drawer_cents": self.expected_drawer_cents,
            "clock_window_class": self.clock_window_class,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "is_active": self.is_active,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
        }


class StoreSettings(db.Model):
    """Per-store cash and sales tunables (1:1 with Store)."""
    __tablename__ = "store_settings"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, unique=True)

    sales_tracking_enabled = db.Column(db.Boolean, nullable=False, default=False)
    sales_rollover_enabled = db.Column(db.Boolean, nullable=False, default=False)
    sales_variance_threshold_cents = db.Column(db.Integer, nullable=False, default=100)

    expected_change_cents = db.Column(db.Integer, nullable=False, default=20000)

    safe_deposit_tolerance_cents = db.Column(db.Integer, nullable=False, default=100)
    safe_denom_tolerance_cents = db.Column(db.Integer, nullable=False, default=0)
    safe_photo_retention_days = db.Column(db.Integer, nullable=False, default=38)
    safe_photo_purge_day_of_month = db.Column(db.Integer, nullable=False, default=8)

    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    store = db.relationship("Store", backref=db.backref("settings", uselist=False, lazy=True))

    def to_dict(self) -> dict:
        return {
            "store_id": self.store_id,
            "sales_tracking_enabled": self.sales_tracking_enabled,
            "sales_rollover_enabled": self.sales_rollover_enabled,
            "sales_variance_threshold_cents": self.sales_variance_threshold_cents,
            "expected_change_cents": self.expected_change_cents,
            "safe_deposit_tolerance_cents": self.safe_deposit_tolerance_cents,
            "safe_denom_tolerance_cents": self.safe_denom_tolerance_cents,
            "safe_photo_retention_days": self.safe_photo_retention_days,
            "safe_photo_purge_day_of_month": self.safe_photo_purge_day_of_month,
            "updated_at": to_utc_z(self.updated_at),
        }


class StoreRolloverConfig(db.Model):
    """
    Which days of the week are rollover nights for a store.

    A night only counts as rollover when this row says so AND the store's
    `sales_rollover_enabled` flag is on.
    """
    __tablename__ = "store_rollover_config"
    __table_args__ = (
        db.UniqueConstraint("store_id", "day_of_week", name="uq_store_rollover_config_store_dow"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    day_of_week = db.Column(db.Integer, nullable=False)  # 0 = Sunday
    has_rollover = db.Column(db.Boolean, nullable=False, default=False)

    def to_dict(self) -> dict:
        return {
            "store_id": self.store_id,
            "day_of_week": self.day_of_week,
            "has_rollover": self.has_rollover,
        }


class ShiftTemplate(db.Model):
    """Recurring open/close hours per store and day of week."""
    __tablename__ = "shift_templates"
    __table_args__ = (
        db.UniqueConstraint("store_id", "day_of_week", "shift_type", name="uq_shift_templates_store_dow_type"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    day_of_week = db.Column(db.Integer, nullable=False)
    shift_type = db.Column(db.String(16), nullable=False)  # open | close
    start_time = db.Column(db.String(5), nullable=False)  # HH:MM local
    end_time = db.Column(db.String(5), nullable=False)
    is_overnight = db.Column(db.Boolean, nullable=False, default=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "day_of_week": self.day_of_week,
            "shift_type": self.shift_type,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "is_overnight": self.is_overnight,
        }


class StoreMembership(db.Model):
    """Employee may clock in at a store only with a membership row."""
    __tablename__ = "store_memberships"
    __table_args__ = (
        db.UniqueConstraint("store_id", "profile_id", name="uq_store_memberships_store_profile"),
        db.Index("ix_store_memberships_profile", "profile_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    profile_id = db.Column(db.Integer, db.ForeignKey("profiles.id"), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    store = db.relationship("Store", backref=db.backref("memberships", lazy=True))
    profile = db.relationship("Profile", backref=db.backref("memberships", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "profile_id": self.profile_id,
            "created_at": to_utc_z(self.created_at),
        }
