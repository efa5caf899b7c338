# Overview: Service-layer operations for the domain event log.

from __future__ import annotations

from datetime import datetime
from typing import Optional

from ..extensions import db
from ..models import DomainEvent
"""
Domain Event Log Invariants (authoritative)

- Append-only: no updates, no deletes.
- No domain/business logic in the log itself.
- Events are added to the caller's session and committed with the domain
  change they describe.
- occurred_at defaults to server "now".
"""


def append_event(
    *,
    event_type: str,
    entity_type: str,
    entity_id: int | None,
    summary: str,
    detail: str | None = None,
    actor_user_id: int | None = None,
    occurred_at: Optional[datetime] = None,
) -> DomainEvent:
    """
    Append one event to the current session (flushes, does not commit).
    """
    ev = DomainEvent(
        event_type=event_type,
        entity_type=entity_type,
        entity_id=entity_id,
        actor_user_id=actor_user_id,
        summary=summary[:255],
        detail=detail[:255] if detail else None,
    )
    if occurred_at is not None:
        ev.occurred_at = occurred_at
    db.session.add(ev)
    db.session.flush()
    return ev


def recent_events(*, limit: int = 10, event_types: list[str] | None = None) -> list[DomainEvent]:
    query = db.session.query(DomainEvent)
    if event_types:
        query = query.filter(DomainEvent.event_type.in_(event_types))
    return (
        query.order_by(DomainEvent.occurred_at.desc(), DomainEvent.id.desc())
        .limit(limit)
        .all()
    )
