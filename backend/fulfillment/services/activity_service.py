# Overview: Append-only activity log writes.

from __future__ import annotations

from ..extensions import db
from ..models import ActivityLog
"""
Activity log invariants:

- Append-only; no updates or deletes.
- Entries are written inside the same DB transaction as the change they
  record, so an aborted unit of work leaves no entry behind.
"""


def append_activity(
    *,
    actor_id: str | None,
    action: str,
    entity_type: str,
    entity_id,
    details: dict | None = None,
) -> ActivityLog:
    entry = ActivityLog(
        actor_id=str(actor_id) if actor_id is not None else None,
        action=action,
        entity_type=entity_type,
        entity_id=str(entity_id),
        details=details or {},
    )
    db.session.add(entry)
    db.session.flush()  # ensures entry.id is assigned without committing
    return entry
