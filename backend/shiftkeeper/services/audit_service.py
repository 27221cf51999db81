# Overview: Append-only audit trail for shift lifecycle and cash events.

from __future__ import annotations

import json
from datetime import datetime
from typing import Optional

from ..extensions import db
from ..models import ShiftAuditEvent
"""
Audit trail invariants

- Append-only: no updates or deletes of existing events.
- No business logic here; callers decide what happened.
- Events are flushed inside the same DB transaction as the change they record.
- occurred_at is business time; created_at is system time (DB default).
"""


def append_audit_event(
    *,
    store_id: int,
    event_type: str,
    entity_type: str,
    entity_id: int,
    actor_profile_id: int | None = None,
    occurred_at: Optional[datetime] = None,
    note: Optional[str] = None,
    payload: Optional[dict] = None,
) -> ShiftAuditEvent:
    ev = ShiftAuditEvent(
        store_id=store_id,
        event_type=event_type,
        entity_type=entity_type,
        entity_id=entity_id,
        actor_profile_id=actor_profile_id,
        occurred_at=occurred_at,  # if None, db default applies
        note=note[:255] if note else None,
        payload=json.dumps(payload, sort_keys=True, default=str) if payload else None,
    )
    db.session.add(ev)
    db.session.flush()
    return ev


def list_events_for(entity_type: str, entity_id: int) -> list[ShiftAuditEvent]:
    return (
        db.session.query(ShiftAuditEvent)
        .filter_by(entity_type=entity_type, entity_id=entity_id)
        .order_by(ShiftAuditEvent.id.asc())
        .all()
    )
