from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


SHIFT_TYPES = ("open", "close", "double", "other")
COUNT_TYPES = ("start", "changeover", "end")
MANUAL_CLOSE_DISPOSITIONS = ("approved", "edited", "removed")


class Shift(db.Model):
    """
    A clock event: one employee working one shift at one store.

    LIFECYCLE:
    - open: ended_at IS NULL
    - closed: ended_at set through clock-out
    - manual_closed: ended through an administrative path, needs a review
      disposition before payroll
    - requires_override: duration or policy exception awaiting manager
      sign-off (may be raised while still open, e.g. unscheduled clock-in)

    ONE OPEN SHIFT PER EMPLOYEE: enforced by the partial unique index on
    profile_id WHERE ended_at IS NULL. Two racing clock-ins cannot both
    insert; the loser gets an IntegrityError.

    TIMES (all UTC-naive):
    - entered_start_at: what the employee typed, verbatim
    - planned_start_at: entered time rounded to 30 minutes (payroll)
    - started_at: server time of the clock-in request (audit)
    - ended_at / planned_end_at: the same pair for clock-out
    """
    __tablename__ = "shifts"
    __table_args__ = (
        db.Index(
            "uq_shifts_one_open_per_profile",
            "profile_id",
            unique=True,
            sqlite_where=db.text("ended_at IS NULL"),
            postgresql_where=db.text("ended_at IS NULL"),
        ),
        db.Index("ix_shifts_store_started", "store_id", "started_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    profile_id = db.Column(db.Integer, db.ForeignKey("profiles.id"), nullable=False)

    shift_type = db.Column(db.String(16), nullable=False)
    # scheduled | manual
    shift_source = db.Column(db.String(16), nullable=False, default="scheduled")
    scheduled_shift_id = db.Column(db.Integer, db.ForeignKey("scheduled_shifts.id"), nullable=True, index=True)
    # How the type/link was resolved: exact | double | nearest | template | hint | other
    match_reason = db.Column(db.String(16), nullable=True)

    entered_start_at = db.Column(db.DateTime(timezone=True), nullable=False)
    planned_start_at = db.Column(db.DateTime(timezone=True), nullable=False)
    started_at = db.Column(db.DateTime(timezone=True), nullable=False)
    ended_at = db.Column(db.DateTime(timezone=True), nullable=True)
    planned_end_at = db.Column(db.DateTime(timezone=True), nullable=True)

    # Override: payroll hold until a manager signs off
    requires_override = db.Column(db.Boolean, nullable=False, default=False, index=True)
    override_reason = db.Column(db.String(32), nullable=True)  # unscheduled | duration | over_scheduled
    override_at = db.Column(db.DateTime(timezone=True), nullable=True)
    override_by = db.Column(db.Integer, db.ForeignKey("profiles.id"), nullable=True)
    override_note = db.Column(db.Text, nullable=True)

    # Manual close + review
    manual_closed = db.Column(db.Boolean, nullable=False, default=False)
    manual_closed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    manual_closed_by = db.Column(db.Integer, db.ForeignKey("profiles.id"), nullable=True)
    manual_close_review_status = db.Column(db.String(16), nullable=True)  # approved | edited | removed
    manual_close_reviewed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    manual_close_reviewed_by = db.Column(db.Integer, db.ForeignKey("profiles.id"), nullable=True)
    manual_close_review_note = db.Column(db.Text, nullable=True)

    # Best-effort weather context
    start_weather_condition = db.Column(db.String(64), nullable=True)
    start_weather_desc = db.Column(db.String(128), nullable=True)
    start_temp_f = db.Column(db.Integer, nullable=True)
    end_weather_condition = db.Column(db.String(64), nullable=True)
    end_weather_desc = db.Column(db.String(128), nullable=True)
    end_temp_f = db.Column(db.Integer, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    store = db.relationship("Store", backref=db.backref("shifts", lazy=True))
    profile = db.relationship("Profile", foreign_keys=[profile_id], backref=db.backref("shifts", lazy=True))
    scheduled_shift = db.relationship("ScheduledShift")

    __mapper_args__ = {"version_id_col": version_id}

    @property
    def duration_minutes(self) -> int | None:
        if self.ended_at is None:
            return None
        return max(0, int((self.ended_at - self.started_at).total_seconds() // 60))

    @property
    def lifecycle_state(self) -> str:
        if self.ended_at is None:
            return "open"
        if self.requires_override:
            return "requires_override"
        if self.manual_closed and self.manual_close_review_status is None:
            return "manual_closed"
        return "closed"

    @property
    def is_payroll_final(self) -> bool:
        if self.ended_at is None or self.requires_override:
            return False
        if self.manual_closed:
            return self.manual_close_review_status in ("approved", "edited")
        return True

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "profile_id": self.profile_id,
            "shift_type": self.shift_type,
            "shift_source": self.shift_source,
            "scheduled_shift_id": self.scheduled_shift_id,
            "match_reason": self.match_reason,
            "entered_start_at": to_utc_z(self.entered_start_at),
            "planned_start_at": to_utc_z(self.planned_start_at),
            "started_at": to_utc_z(self.started_at),
            "ended_at": to_utc_z(self.ended_at),
            "planned_end_at": to_utc_z(self.planned_end_at),
            "duration_minutes": self.duration_minutes,
            "lifecycle_state": self.lifecycle_state,
            "is_payroll_final": self.is_payroll_final,
            "requires_override": self.requires_override,
            "override_reason": self.override_reason,
            "override_at": to_utc_z(self.override_at),
            "override_by": self.override_by,
            "override_note": self.override_note,
            "manual_closed": self.manual_closed,
            "manual_closed_at": to_utc_z(self.manual_closed_at),
            "manual_closed_by": self.manual_closed_by,
            "manual_close_review_status": self.manual_close_review_status,
            "manual_close_reviewed_at": to_utc_z(self.manual_close_reviewed_at),
            "manual_close_reviewed_by": self.manual_close_reviewed_by,
            "start_weather": {
                "condition": self.start_weather_condition,
                "description": self.start_weather_desc,
                "temp_f": self.start_temp_f,
            },
            "end_weather": {
                "condition": self.end_weather_condition,
                "description": self.end_weather_desc,
                "temp_f": self.end_temp_f,
            },
            "version_id": self.version_id,
        }


class DrawerCount(db.Model):
    """
    Register drawer count attached to a shift.

    Exactly one row per (shift, count_type); writes go through an upsert
    so a retried submission replaces instead of duplicating.
    out_of_threshold is derived at write time against the store float.
    """
    __tablename__ = "shift_drawer_counts"
    __table_args__ = (
        db.UniqueConstraint("shift_id", "count_type", name="uq_shift_drawer_counts_shift_type"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shift_id = db.Column(db.Integer, db.ForeignKey("shifts.id", ondelete="CASCADE"), nullable=False, index=True)
    count_type = db.Column(db.String(16), nullable=False)  # start | changeover | end

    drawer_cents = db.Column(db.Integer, nullable=False)
    change_cents = db.Column(db.Integer, nullable=True)
    expected_drawer_cents = db.Column(db.Integer, nullable=False)

    confirmed = db.Column(db.Boolean, nullable=False, default=False)
    notified_manager = db.Column(db.Boolean, nullable=False, default=False)
    note = db.Column(db.Text, nullable=True)
    out_of_threshold = db.Column(db.Boolean, nullable=False, default=False)

    counted_at = db.Column(db.DateTime(timezone=True), nullable=False)

    shift = db.relationship(
        "Shift",
        backref=db.backref("drawer_counts", lazy=True, cascade="all, delete-orphan", passive_deletes=True),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shift_id": self.shift_id,
            "count_type": self.count_type,
            "drawer_cents": self.drawer_cents,
            "change_cents": self.change_cents,
            "expected_drawer_cents": self.expected_drawer_cents,
            "variance_cents": self.drawer_cents - self.expected_drawer_cents,
            "confirmed": self.confirmed,
            "notified_manager": self.notified_manager,
            "note": self.note,
            "out_of_threshold": self.out_of_threshold,
            "counted_at": to_utc_z(self.counted_at),
        }
