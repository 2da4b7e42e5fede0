# Overview: Append-only audit trail for owner actions.

from __future__ import annotations

from ..extensions import db
from ..models import AuditLog
"""
Audit Log Invariants

- Append-only: no updates or deletes of existing entries.
- append_audit_event flushes but never commits; the caller owns the transaction.
- before/after are JSON-serializable snapshots (to_dict() output).
"""


def append_audit_event(
    *,
    actor_user_id: int,
    action: str,
    entity_type: str,
    entity_id: int,
    before: dict | None = None,
    after: dict | None = None,
) -> AuditLog:
    entry = AuditLog(
        actor_user_id=actor_user_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        before=before,
        after=after,
    )
    db.session.add(entry)
    db.session.flush()
    return entry


def list_audit_events(owner_id: int, *, action: str | None = None, limit: int = 100) -> list[AuditLog]:
    """Entries recorded for the owner's own actions, newest first."""
    query = db.session.query(AuditLog).filter_by(actor_user_id=owner_id)
    if action:
        query = query.filter_by(action=action)
    return (
        query.order_by(AuditLog.occurred_at.desc(), AuditLog.id.desc())
        .limit(max(1, min(limit, 500)))
        .all()
    )
