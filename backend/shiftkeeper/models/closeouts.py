from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


CLOSEOUT_STATUSES = ("draft", "pass", "warn", "fail", "locked")
PHOTO_TYPES = ("deposit_required", "pos_optional")

# Bill denominations counted into the safe deposit, in dollars
DENOMINATIONS = (100, 50, 20, 10, 5, 2, 1)


class SafeCloseout(db.Model):
    """
    End-of-day safe reconciliation for one store and business date.

    WIZARD STEPS (each saved as an incremental draft):
    1. context      prior X report total
    2. command      cash/card/other sales + expenses -> expected deposit
    3. verification bill counts -> denom total vs expected deposit
    4. remainder    drawer float recount
    5. evidence     deposit slip photo (required), POS photo (optional), submit

    STATUS: draft -> pass | warn | fail -> locked (manager review).
    pass and locked are read-only.
    """
    __tablename__ = "safe_closeouts"
    __table_args__ = (
        db.UniqueConstraint("store_id", "business_date", name="uq_safe_closeouts_store_date"),
        db.Index("ix_safe_closeouts_review", "requires_manager_review", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    business_date = db.Column(db.Date, nullable=False)
    shift_id = db.Column(db.Integer, db.ForeignKey("shifts.id", ondelete="SET NULL"), nullable=True)
    profile_id = db.Column(db.Integer, db.ForeignKey("profiles.id"), nullable=False)

    status = db.Column(db.String(16), nullable=False, default="draft", index=True)
    wizard_step = db.Column(db.Integer, nullable=False, default=1)

    prior_x_report_cents = db.Column(db.Integer, nullable=True)

    cash_sales_cents = db.Column(db.Integer, nullable=True)
    card_sales_cents = db.Column(db.Integer, nullable=True)
    other_sales_cents = db.Column(db.Integer, nullable=True)
    expense_total_cents = db.Column(db.Integer, nullable=False, default=0)
    expected_deposit_cents = db.Column(db.Integer, nullable=True)

    # {"100": 2, "20": 1, "1": 3}
    denoms = db.Column(db.JSON, nullable=True)
    denom_total_cents = db.Column(db.Integer, nullable=True)
    denom_variance_cents = db.Column(db.Integer, nullable=True)

    actual_deposit_cents = db.Column(db.Integer, nullable=True)
    variance_cents = db.Column(db.Integer, nullable=True)
    drawer_count_cents = db.Column(db.Integer, nullable=True)

    deposit_override_reason = db.Column(db.Text, nullable=True)
    requires_manager_review = db.Column(db.Boolean, nullable=False, default=False)
    validation_attempts = db.Column(db.Integer, nullable=False, default=0)
    is_historical_backfill = db.Column(db.Boolean, nullable=False, default=False)

    submitted_at = db.Column(db.DateTime(timezone=True), nullable=True)
    reviewed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    reviewed_by = db.Column(db.Integer, db.ForeignKey("profiles.id"), nullable=True)
    review_note = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    store = db.relationship("Store", backref=db.backref("safe_closeouts", lazy=True))
    expenses = db.relationship(
        "SafeCloseoutExpense",
        backref="closeout",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="SafeCloseoutExpense.id",
    )
    photos = db.relationship(
        "SafeCloseoutPhoto",
        backref="closeout",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="SafeCloseoutPhoto.id",
    )

    __mapper_args__ = {"version_id_col": version_id}

    @property
    def is_read_only(self) -> bool:
        return self.status in ("pass", "locked")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "business_date": self.business_date.isoformat() if self.business_date else None,
            "shift_id": self.shift_id,
            "profile_id": self.profile_id,
            "status": self.status,
            "wizard_step": self.wizard_step,
            "prior_x_report_cents": self.prior_x_report_cents,
            "cash_sales_cents": self.cash_sales_cents,
            "card_sales_cents": self.card_sales_cents,
            "other_sales_cents": self.other_sales_cents,
            "expense_total_cents": self.expense_total_cents,
            "expected_deposit_cents": self.expected_deposit_cents,
            "denoms": self.denoms or {},
            "denom_total_cents": self.denom_total_cents,
            "denom_variance_cents": self.denom_variance_cents,
            "actual_deposit_cents": self.actual_deposit_cents,
            "variance_cents": self.variance_cents,
            "drawer_count_cents": self.drawer_count_cents,
            "deposit_override_reason": self.deposit_override_reason,
            "requires_manager_review": self.requires_manager_review,
            "validation_attempts": self.validation_attempts,
            "is_historical_backfill": self.is_historical_backfill,
            "submitted_at": to_utc_z(self.submitted_at),
            "reviewed_at": to_utc_z(self.reviewed_at),
            "reviewed_by": self.reviewed_by,
            "review_note": self.review_note,
            "expenses": [e.to_dict() for e in self.expenses],
            "photos": [p.to_dict() for p in self.photos],
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class SafeCloseoutExpense(db.Model):
    __tablename__ = "safe_closeout_expenses"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    closeout_id = db.Column(db.Integer, db.ForeignKey("safe_closeouts.id", ondelete="CASCADE"), nullable=False, index=True)
    amount_cents = db.Column(db.Integer, nullable=False)
    category = db.Column(db.String(64), nullable=False)
    note = db.Column(db.Text, nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "amount_cents": self.amount_cents,
            "category": self.category,
            "note": self.note,
        }


class SafeCloseoutPhoto(db.Model):
    """Photo evidence metadata; the image itself lives in object storage."""
    __tablename__ = "safe_closeout_photos"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    closeout_id = db.Column(db.Integer, db.ForeignKey("safe_closeouts.id", ondelete="CASCADE"), nullable=False, index=True)
    photo_type = db.Column(db.String(32), nullable=False)
    storage_path = db.Column(db.String(512), nullable=False)
    thumb_path = db.Column(db.String(512), nullable=True)
    purge_after = db.Column(db.Date, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "photo_type": self.photo_type,
            "storage_path": self.storage_path,
            "thumb_path": self.thumb_path,
            "purge_after": self.purge_after.isoformat() if self.purge_after else None,
            "created_at": to_utc_z(self.created_at),
        }
