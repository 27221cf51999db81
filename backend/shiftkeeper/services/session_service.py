# Overview: Identity resolver: maps a bearer token to a profile plus its store scope.

"""
Session Resolution

Tokens are issued by the external PIN / manager login service. This module
only stores the hash of a verified token and resolves it per request into
an Identity: who is calling and which stores they may act on.

Store scope is recomputed on every request from memberships and manager
grants, so a revoked grant takes effect on the next call rather than at
the next login.

SECURITY:
- Tokens hashed with SHA-256 before storage
- Absolute expiry (SESSION_ABSOLUTE_TIMEOUT)
- Revocable
"""

import secrets
import hashlib
from dataclasses import dataclass, field
from datetime import timedelta

from ..extensions import db
from ..models import SessionToken, Profile
from ..time_utils import utcnow
from . import store_access_service


SESSION_ABSOLUTE_TIMEOUT = timedelta(hours=12)
SESSION_KINDS = ("employee", "manager")


@dataclass
class Identity:
    profile: Profile
    session: SessionToken
    kind: str
    store_ids: set[int] = field(default_factory=set)
    managed_store_ids: set[int] = field(default_factory=set)

    @property
    def profile_id(self) -> int:
        return self.profile.id

    @property
    def is_manager(self) -> bool:
        return self.kind == "manager"


def generate_token() -> str:
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def register_session(
    profile_id: int,
    *,
    kind: str = "employee",
    store_id: int | None = None,
    ttl: timedelta = SESSION_ABSOLUTE_TIMEOUT,
) -> tuple[SessionToken, str]:
    """
    Record a session the external issuer has already verified.

    Returns (session_record, plaintext_token); only the hash is stored.
    """
    if kind not in SESSION_KINDS:
        raise ValueError(f"kind must be one of: {', '.join(SESSION_KINDS)}")

    profile = db.session.get(Profile, profile_id)
    if not profile:
        raise ValueError("Profile not found")
    if not profile.is_active:
        raise ValueError("Profile is not active")

    plaintext_token = generate_token()
    now = utcnow()
    session = SessionToken(
        profile_id=profile_id,
        kind=kind,
        store_id=store_id,
        token_hash=hash_token(plaintext_token),
        created_at=now,
        last_used_at=now,
        expires_at=now + ttl,
        is_revoked=False,
    )
    db.session.add(session)
    db.session.commit()
    return session, plaintext_token


def validate_session(token: str) -> Identity | None:
    """
    Resolve a bearer token to an Identity, or None.

    None for unknown, revoked or expired tokens and for deactivated profiles.
    """
    now = utcnow()
    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False,
    ).first()
    if not session:
        return None

    if session.expires_at < now:
        return None

    profile = session.profile
    if not profile or not profile.is_active:
        session.is_revoked = True
        session.revoked_at = now
        db.session.commit()
        return None

    member_ids = store_access_service.get_member_store_ids(profile.id)
    managed_ids: set[int] = set()

    if session.kind == "manager":
        managed_ids = store_access_service.get_managed_store_ids(profile.id)
        store_ids = member_ids | managed_ids
    elif session.store_id is not None:
        # Kiosk PIN session pinned to one store
        store_ids = {session.store_id} & member_ids
    else:
        store_ids = member_ids

    session.last_used_at = now
    db.session.commit()

    return Identity(
        profile=profile,
        session=session,
        kind=session.kind,
        store_ids=store_ids,
        managed_store_ids=managed_ids,
    )


def revoke_session(token: str) -> bool:
    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False,
    ).first()
    if not session:
        return False
    session.is_revoked = True
    session.revoked_at = utcnow()
    db.session.commit()
    return True
