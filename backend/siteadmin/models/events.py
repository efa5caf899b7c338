from __future__ import annotations

from ..extensions import db
from siteadmin.time_utils import to_utc_z, utcnow


class DomainEvent(db.Model):
    """
    Append-only domain event (product.created, enquiry.responded, ...).

    The dashboard activity feed reads these rows; nothing updates or deletes them.
    """
    __tablename__ = "domain_events"
    __table_args__ = (
        db.Index("ix_domain_events_type_occurred", "event_type", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    event_type = db.Column(db.String(64), nullable=False, index=True)
    entity_type = db.Column(db.String(32), nullable=False)
    entity_id = db.Column(db.Integer, nullable=True)
    actor_user_id = db.Column(db.Integer, db.ForeignKey("admin_users.id"), nullable=True)

    summary = db.Column(db.String(255), nullable=False)
    detail = db.Column(db.String(255), nullable=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "eventType": self.event_type,
            "entityType": self.entity_type,
            "entityId": self.entity_id,
            "actorUserId": self.actor_user_id,
            "summary": self.summary,
            "detail": self.detail,
            "occurredAt": to_utc_z(self.occurred_at),
        }
