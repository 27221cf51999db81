from __future__ import annotations

from ..extensions import db
from ..models import Profile, Store, StoreManager, StoreMembership


class AccessDeniedError(PermissionError):
    """403-level: caller acting outside their store/profile scope."""


def get_member_store_ids(profile_id: int) -> set[int]:
    rows = db.session.query(StoreMembership.store_id).filter_by(profile_id=profile_id).all()
    return {row[0] for row in rows}


def get_managed_store_ids(profile_id: int) -> set[int]:
    rows = db.session.query(StoreManager.store_id).filter_by(profile_id=profile_id).all()
    return {row[0] for row in rows}


def is_member(profile_id: int, store_id: int) -> bool:
    return (
        db.session.query(StoreMembership.id)
        .filter_by(profile_id=profile_id, store_id=store_id)
        .first()
        is not None
    )


def require_store_access(identity, store_id: int | None) -> None:
    """Employee or manager must have the store in scope."""
    if store_id is None or store_id not in identity.store_ids:
        raise AccessDeniedError("You do not have access to this store.")


def require_store_manager(identity, store_id: int | None) -> None:
    if not identity.is_manager:
        raise AccessDeniedError("Manager access required.")
    if store_id is None or store_id not in identity.managed_store_ids:
        raise AccessDeniedError("You do not manage this store.")


def require_self_or_manager(identity, *, profile_id: int, store_id: int) -> None:
    """Shift-level writes: the owning employee, or a manager of the store."""
    if identity.is_manager and store_id in identity.managed_store_ids:
        return
    if identity.profile_id != profile_id:
        raise AccessDeniedError("You can only act on your own shift.")
    require_store_access(identity, store_id)


def add_membership(*, profile_id: int, store_id: int) -> StoreMembership:
    if not db.session.get(Profile, profile_id):
        raise ValueError("Profile not found")
    if not db.session.get(Store, store_id):
        raise ValueError("Store not found")

    existing = db.session.query(StoreMembership).filter_by(profile_id=profile_id, store_id=store_id).first()
    if existing:
        return existing

    membership = StoreMembership(profile_id=profile_id, store_id=store_id)
    db.session.add(membership)
    db.session.commit()
    return membership


def grant_manager_access(*, profile_id: int, store_id: int, granted_by_profile_id: int | None = None) -> StoreManager:
    if not db.session.get(Profile, profile_id):
        raise ValueError("Profile not found")
    if not db.session.get(Store, store_id):
        raise ValueError("Store not found")

    existing = db.session.query(StoreManager).filter_by(profile_id=profile_id, store_id=store_id).first()
    if existing:
        return existing

    access = StoreManager(
        profile_id=profile_id,
        store_id=store_id,
        granted_by_profile_id=granted_by_profile_id,
    )
    db.session.add(access)
    db.session.commit()
    return access


def create_profile(display_name: str) -> Profile:
    name = (display_name or "").strip()
    if not name:
        raise ValueError("display_name is required")
    profile = Profile(display_name=name, is_active=True)
    db.session.add(profile)
    db.session.commit()
    return profile
