from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class ShiftAuditEvent(db.Model):
    """
    Append-only audit trail for shift and cash events.

    entity_type/entity_id is a generic pointer (no FK) so the trail
    survives a compensating delete of the row it describes.
    """
    __tablename__ = "shift_audit_events"
    __table_args__ = (
        db.Index("ix_shift_audit_store_occurred", "store_id", "occurred_at"),
        db.Index("ix_shift_audit_entity", "entity_type", "entity_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)

    # e.g. shift.clock_in, shift.override_approved, closeout.submitted
    event_type = db.Column(db.String(64), nullable=False, index=True)
    entity_type = db.Column(db.String(32), nullable=False)
    entity_id = db.Column(db.Integer, nullable=False)

    actor_profile_id = db.Column(db.Integer, db.ForeignKey("profiles.id"), nullable=True, index=True)

    # Business vs system time
    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    note = db.Column(db.String(255), nullable=True)
    payload = db.Column(db.Text, nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "event_type": self.event_type,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "actor_profile_id": self.actor_profile_id,
            "occurred_at": to_utc_z(self.occurred_at),
            "created_at": to_utc_z(self.created_at),
            "note": self.note,
            "payload": self.payload,
        }
