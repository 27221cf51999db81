from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Schedule(db.Model):
    """
    A store's schedule for a pay period.

    Only `published` schedules take part in clock-in matching; drafts are
    invisible to the kiosk.
    """
    __tablename__ = "schedules"
    __table_args__ = (
        db.Index("ix_schedules_store_period", "store_id", "period_start"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    period_start = db.Column(db.Date, nullable=False)
    period_end = db.Column(db.Date, nullable=False)

    # draft | published
    status = db.Column(db.String(16), nullable=False, default="draft", index=True)
    published_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    store = db.relationship("Store", backref=db.backref("schedules", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "period_start": self.period_start.isoformat() if self.period_start else None,
            "period_end": self.period_end.isoformat() if self.period_end else None,
            "status": self.status,
            "published_at": to_utc_z(self.published_at),
            "created_at": to_utc_z(self.created_at),
        }


class ScheduledShift(db.Model):
    """
    One scheduled assignment on a calendar date.

    A double is two rows for the same employee and date (open + close),
    both with shift_mode = "double".
    """
    __tablename__ = "scheduled_shifts"
    __table_args__ = (
        db.Index("ix_scheduled_shifts_lookup", "store_id", "profile_id", "shift_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    schedule_id = db.Column(db.Integer, db.ForeignKey("schedules.id"), nullable=False, index=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False)
    profile_id = db.Column(db.Integer, db.ForeignKey("profiles.id"), nullable=False)
    shift_date = db.Column(db.Date, nullable=False)

    shift_type = db.Column(db.String(16), nullable=False)  # open | close
    shift_mode = db.Column(db.String(16), nullable=False, default="standard")  # standard | double | other

    # Local wall-clock HH:MM
    scheduled_start = db.Column(db.String(5), nullable=False)
    scheduled_end = db.Column(db.String(5), nullable=False)

    schedule = db.relationship("Schedule", backref=db.backref("shifts", lazy=True))

    @property
    def resolved_type(self) -> str:
        if self.shift_mode == "double":
            return "double"
        if self.shift_mode == "other":
            return "other"
        return self.shift_type

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "schedule_id": self.schedule_id,
            "store_id": self.store_id,
            "profile_id": self.profile_id,
            "shift_date": self.shift_date.isoformat() if self.shift_date else None,
            "shift_type": self.shift_type,
            "shift_mode": self.shift_mode,
            "resolved_type": self.resolved_type,
            "scheduled_start": self.scheduled_start,
            "scheduled_end": self.scheduled_end,
        }
