from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


SALES_ENTRY_TYPES = ("x_report", "mid_x_report", "z_report", "rollover")


class DailySalesRecord(db.Model):
    """
    Register totals for one store and business date.

    Built up by checkpoint submissions through the day and upserted on
    (store_id, business_date). Verification columns are recomputed on every
    write (see sales_checkpoint_service.recompute_balance):

        verified_open  = open_x_report - rollover_from_previous
        verified_close = close_sales
        verified_total = verified_open + verified_close
        variance       = verified_total - z_report

    closed_at is stamped when the day's safe closeout is locked; the record
    is read-only after that.
    """
    __tablename__ = "daily_sales_records"
    __table_args__ = (
        db.UniqueConstraint("store_id", "business_date", name="uq_daily_sales_records_store_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    business_date = db.Column(db.Date, nullable=False)

    open_shift_id = db.Column(db.Integer, db.ForeignKey("shifts.id", ondelete="SET NULL"), nullable=True)
    close_shift_id = db.Column(db.Integer, db.ForeignKey("shifts.id", ondelete="SET NULL"), nullable=True)

    # Raw register totals
    open_x_report_cents = db.Column(db.Integer, nullable=True)
    mid_x_report_cents = db.Column(db.Integer, nullable=True)
    close_sales_cents = db.Column(db.Integer, nullable=True)
    z_report_cents = db.Column(db.Integer, nullable=True)
    prior_x_report_cents = db.Column(db.Integer, nullable=True)

    # Rollover blind dual entry
    closer_rollover_cents = db.Column(db.Integer, nullable=True)
    opener_rollover_cents = db.Column(db.Integer, nullable=True)
    rollover_cents = db.Column(db.Integer, nullable=True)
    rollover_from_previous_cents = db.Column(db.Integer, nullable=False, default=0)
    rollover_to_next_cents = db.Column(db.Integer, nullable=False, default=0)
    rollover_mismatch = db.Column(db.Boolean, nullable=False, default=False)
    rollover_needs_review = db.Column(db.Boolean, nullable=False, default=False)
    is_rollover_night = db.Column(db.Boolean, nullable=False, default=False)

    # Verification
    verified_open_sales_cents = db.Column(db.Integer, nullable=True)
    verified_close_sales_cents = db.Column(db.Integer, nullable=True)
    verified_total_cents = db.Column(db.Integer, nullable=True)
    balance_variance_cents = db.Column(db.Integer, nullable=False, default=0)
    out_of_balance = db.Column(db.Boolean, nullable=False, default=False)
    sales_confirmed = db.Column(db.Boolean, nullable=False, default=False)

    closed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}

    @property
    def is_closed(self) -> bool:
        return self.closed_at is not None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "business_date": self.business_date.isoformat() if self.business_date else None,
            "open_shift_id": self.open_shift_id,
            "close_shift_id": self.close_shift_id,
            "open_x_report_cents": self.open_x_report_cents,
            "mid_x_report_cents": self.mid_x_report_cents,
            "close_sales_cents": self.close_sales_cents,
            "z_report_cents": self.z_report_cents,
            "prior_x_report_cents": self.prior_x_report_cents,
            "closer_rollover_cents": self.closer_rollover_cents,
            "opener_rollover_cents": self.opener_rollover_cents,
            "rollover_cents": self.rollover_cents,
            "rollover_from_previous_cents": self.rollover_from_previous_cents,
            "rollover_to_next_cents": self.rollover_to_next_cents,
            "rollover_mismatch": self.rollover_mismatch,
            "rollover_needs_review": self.rollover_needs_review,
            "is_rollover_night": self.is_rollover_night,
            "verified_open_sales_cents": self.verified_open_sales_cents,
            "verified_close_sales_cents": self.verified_close_sales_cents,
            "verified_total_cents": self.verified_total_cents,
            "balance_variance_cents": self.balance_variance_cents,
            "out_of_balance": self.out_of_balance,
            "sales_confirmed": self.sales_confirmed,
            "closed_at": to_utc_z(self.closed_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class ShiftSalesCount(db.Model):
    """Per-shift register entry; one row per (shift, entry_type)."""
    __tablename__ = "shift_sales_counts"
    __table_args__ = (
        db.UniqueConstraint("shift_id", "entry_type", name="uq_shift_sales_counts_shift_type"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shift_id = db.Column(db.Integer, db.ForeignKey("shifts.id", ondelete="CASCADE"), nullable=False, index=True)
    daily_sales_record_id = db.Column(
        db.Integer, db.ForeignKey("daily_sales_records.id", ondelete="SET NULL"), nullable=True, index=True
    )
    entry_type = db.Column(db.String(16), nullable=False)
    amount_cents = db.Column(db.Integer, nullable=False)
    prior_x_report_cents = db.Column(db.Integer, nullable=True)
    confirmed = db.Column(db.Boolean, nullable=False, default=False)
    counted_at = db.Column(db.DateTime(timezone=True), nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shift_id": self.shift_id,
            "daily_sales_record_id": self.daily_sales_record_id,
            "entry_type": self.entry_type,
            "amount_cents": self.amount_cents,
            "prior_x_report_cents": self.prior_x_report_cents,
            "confirmed": self.confirmed,
            "counted_at": to_utc_z(self.counted_at),
        }
