# Overview: Service-layer operations for the activity log; encapsulates audit writes.

from __future__ import annotations

import json
from typing import Optional
from datetime import datetime

from ..extensions import db
from ..models import ActivityLog
from ..time_utils import utcnow
"""
Activity Log Invariants (authoritative)

- Append-only audit log for cross-cutting domain events.
- No domain/business logic in the log itself.
- Entries are written inside the same DB transaction as the change they record.
- occurred_at is business time; defaults to now.
"""


def append_activity(
    *,
    tenant_id: int,
    event_type: str,
    entity_type: str,
    entity_id: int,
    actor_user_id: int | None = None,
    occurred_at: Optional[datetime] = None,
    note: Optional[str] = None,
    payload: Optional[dict] = None,
) -> ActivityLog:
    """
    Append-only activity entry.

    - No domain logic here.
    - No deletes/updates of existing entries.
    """
    entry = ActivityLog(
        tenant_id=tenant_id,
        event_type=event_type,
        entity_type=entity_type,
        entity_id=entity_id,
        actor_user_id=actor_user_id,
        occurred_at=occurred_at or utcnow(),
        note=note,
        payload=json.dumps(payload, sort_keys=True) if payload else None,
    )
    db.session.add(entry)
    db.session.flush()  # ensures entry.id is assigned without committing
    return entry


def list_activity(tenant_id: int, *, entity_type: str, entity_id: int) -> list[ActivityLog]:
    return (
        db.session.query(ActivityLog)
        .filter_by(tenant_id=tenant_id, entity_type=entity_type, entity_id=entity_id)
        .order_by(ActivityLog.id)
        .all()
    )
