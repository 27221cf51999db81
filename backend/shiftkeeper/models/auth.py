from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Profile(db.Model):
    """
    An employee or manager.

    Credentials live with the external PIN/login issuer; this table only
    holds what shift rules need: a name, an active flag, and (through
    StoreMembership / StoreManager) which stores the person belongs to.
    """
    __tablename__ = "profiles"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    display_name = db.Column(db.String(120), nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<Profile id={self.id} name={self.display_name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "display_name": self.display_name,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }


class StoreManager(db.Model):
    """
    Manager-level oversight of a store.

    A manager may oversee several stores; approvals, reviews and backfills
    are only accepted for stores listed here.
    """
    __tablename__ = "store_managers"
    __table_args__ = (
        db.UniqueConstraint("profile_id", "store_id", name="uq_store_managers_profile_store"),
        db.Index("ix_store_managers_profile", "profile_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    profile_id = db.Column(db.Integer, db.ForeignKey("profiles.id"), nullable=False)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    granted_by_profile_id = db.Column(db.Integer, db.ForeignKey("profiles.id"), nullable=True)
    granted_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    profile = db.relationship("Profile", foreign_keys=[profile_id], backref=db.backref("managed_stores", lazy=True))
    store = db.relationship("Store", backref=db.backref("managers", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "profile_id": self.profile_id,
            "store_id": self.store_id,
            "granted_by_profile_id": self.granted_by_profile_id,
            "granted_at": to_utc_z(self.granted_at),
        }


class SessionToken(db.Model):
    """
    A verified session handed over by the external auth issuer.

    kind:
    - employee: PIN session at a kiosk, optionally pinned to one store
    - manager: manager login, scoped by StoreManager rows

    Tokens are stored hashed (SHA-256); the plaintext never touches the DB.
    """
    __tablename__ = "session_tokens"
    __table_args__ = (
        db.Index("ix_session_tokens_profile_active", "profile_id", "is_revoked"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    profile_id = db.Column(db.Integer, db.ForeignKey("profiles.id"), nullable=False, index=True)
    kind = db.Column(db.String(16), nullable=False, default="employee")
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=True)

    token_hash = db.Column(db.String(255), nullable=False, unique=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    last_used_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    is_revoked = db.Column(db.Boolean, nullable=False, default=False, index=True)
    revoked_at = db.Column(db.DateTime(timezone=True), nullable=True)

    profile = db.relationship("Profile", backref=db.backref("sessions", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "profile_id": self.profile_id,
            "kind": self.kind,
            "store_id": self.store_id,
            "created_at": to_utc_z(self.created_at),
            "last_used_at": to_utc_z(self.last_used_at),
            "expires_at": to_utc_z(self.expires_at),
            "is_revoked": self.is_revoked,
        }
