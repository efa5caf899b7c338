# Overview: Service-layer operations for enquiries and their response sub-ledger.

"""
Enquiry Response Sub-ledger

- Responses are append-only and owned by their enquiry (cascade delete).
- position is assigned as len(responses) at append time; (enquiry_id, position)
  is unique, so two concurrent appends cannot both take the same slot.
- The FIRST response moves status new -> in-progress. Later responses never
  touch status, and resolved/spam are only reachable by explicit update.
- Notification delivery (sendEmail) happens after the commit; a delivery
  failure is logged and the response stays appended.
"""

from __future__ import annotations

import csv
import io

from flask import current_app
from sqlalchemy import func, or_

from ..extensions import db
from ..models import Enquiry, EnquiryResponse
from ..validation import ValidationError, pagination_meta
from ..services import notification_service
from ..services.event_log_service import append_event

ENQUIRY_UPDATE_FIELDS = {"status", "priority", "is_read", "is_starred", "tags"}
ENQUIRY_BULK_FIELDS = {"status", "priority", "is_read", "is_starred"}

SORT_FIELDS = {
    "createdAt": Enquiry.created_at,
    "updatedAt": Enquiry.updated_at,
    "name": Enquiry.name,
    "email": Enquiry.email,
    "subject": Enquiry.subject,
    "status": Enquiry.status,
    "priority": Enquiry.priority,
}

EXPORT_HEADERS = ["Name", "Email", "Phone", "Company", "Subject", "Message", "Status", "Priority", "Date"]


def _get(enquiry_id: int) -> Enquiry | None:
    return db.session.query(Enquiry).filter(Enquiry.id == enquiry_id).first()


def status_histogram() -> dict:
    """{total, new, inProgress, resolved, spam} over all enquiries."""
    counts = dict(
        db.session.query(Enquiry.status, func.count(Enquiry.id))
        .group_by(Enquiry.status)
        .all()
    )
    return {
        "total": int(sum(counts.values())),
        "new": int(counts.get("new", 0)),
        "inProgress": int(counts.get("in-progress", 0)),
        "resolved": int(counts.get("resolved", 0)),
        "spam": int(counts.get("spam", 0)),
    }


def create_enquiry(*, patch: dict, ip_address: str | None = None, user_agent: str | None = None) -> dict:
    """
    Public contact-form submission. Always starts as new/medium.
    """
    e = Enquiry(
        name=patch["name"],
        email=patch["email"],
        phone=patch["phone"],
        company=patch.get("company") or "",
        subject=patch["subject"],
        message=patch["message"],
        product_interested=patch.get("product_interested") or None,
        source=patch.get("source") or "website",
        status="new",
        priority="medium",
        ip_address=ip_address,
        user_agent=(user_agent or "")[:255] or None,
    )
    db.session.add(e)
    db.session.flush()

    append_event(
        event_type="enquiry.created",
        entity_type="enquiry",
        entity_id=e.id,
        summary=f"New enquiry from {e.name}",
        detail=e.subject,
    )
    db.session.commit()

    try:
        notification_service.notify_new_enquiry(e)
    except Exception:
        current_app.logger.exception("New-enquiry notification failed for enquiry %s", e.id)

    return e.to_dict()


def list_enquiries(
    *,
    search: str | None = None,
    status: str | None = None,
    priority: str | None = None,
    is_read: bool | None = None,
    is_starred: bool | None = None,
    sort_by: str = "createdAt",
    sort_order: str = "desc",
    page: int = 1,
    limit: int = 10,
) -> dict:
    q = db.session.query(Enquiry)

    if search:
        pattern = f"%{search.strip()}%"
        q = q.filter(or_(
            Enquiry.name.ilike(pattern),
            Enquiry.email.ilike(pattern),
            Enquiry.subject.ilike(pattern),
            Enquiry.message.ilike(pattern),
            Enquiry.company.ilike(pattern),
        ))
    if status and status != "all":
        q = q.filter(Enquiry.status == status)
    if priority and priority != "all":
        q = q.filter(Enquiry.priority == priority)
    if is_read is not None:
        q = q.filter(Enquiry.is_read.is_(is_read))
    if is_starred is not None:
        q = q.filter(Enquiry.is_starred.is_(is_starred))

    sort_col = SORT_FIELDS.get(sort_by, Enquiry.created_at)
    sort_expr = sort_col.asc() if sort_order == "asc" else sort_col.desc()

    total = q.count()
    rows = (
        q.order_by(sort_expr, Enquiry.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return {
        "items": [e.to_dict() for e in rows],
        "stats": status_histogram(),
        "pagination": pagination_meta(page, limit, total),
    }


def get_enquiry(*, enquiry_id: int) -> dict | None:
    """Fetching an enquiry marks it read (idempotent)."""
    e = _get(enquiry_id)
    if not e:
        return None
    if not e.is_read:
        e.is_read = True
        db.session.commit()
    return e.to_dict()


def update_enquiry(*, enquiry_id: int, patch: dict) -> dict | None:
    e = _get(enquiry_id)
    if not e:
        return None

    old_status = e.status
    for k, v in patch.items():
        if k in ENQUIRY_UPDATE_FIELDS:
            setattr(e, k, v)

    if e.status != old_status:
        append_event(
            event_type="enquiry.status_changed",
            entity_type="enquiry",
            entity_id=e.id,
            summary=f"Enquiry from {e.name} marked {e.status}",
            detail=f"{old_status} -> {e.status}",
        )
    db.session.commit()
    return e.to_dict()


def delete_enquiry(*, enquiry_id: int) -> bool:
    e = _get(enquiry_id)
    if not e:
        return False
    db.session.delete(e)
    db.session.commit()
    return True


def add_response(
    *,
    enquiry_id: int,
    message: str | None,
    send_email: bool = False,
    responded_by: int | None = None,
    responded_by_name: str | None = None,
) -> dict | None:
    """
    Append one response. Returns the updated enquiry, or None if not found.

    Raises:
        ValidationError: blank message
    """
    message = (message or "").strip()
    if not message:
        raise ValidationError("Response message is required")

    e = _get(enquiry_id)
    if not e:
        return None

    is_first = len(e.responses) == 0
    e.responses.append(EnquiryResponse(
        position=len(e.responses),
        message=message,
        send_email=bool(send_email),
        responded_by=responded_by,
        responded_by_name=responded_by_name or "Admin",
    ))
    if is_first and e.status == "new":
        e.status = "in-progress"

    append_event(
        event_type="enquiry.responded",
        entity_type="enquiry",
        entity_id=e.id,
        actor_user_id=responded_by,
        summary=f"Responded to enquiry from {e.name}",
        detail=e.subject,
    )
    db.session.commit()

    if send_email:
        try:
            notification_service.send_enquiry_response(e, message)
        except Exception:
            current_app.logger.exception("Response notification failed for enquiry %s", e.id)

    return e.to_dict()


def toggle_flag(*, enquiry_id: int, flag: str) -> dict | None:
    """Unconditional flip of is_read or is_starred."""
    if flag not in ("is_read", "is_starred"):
        raise ValidationError(f"Cannot toggle {flag}")
    e = _get(enquiry_id)
    if not e:
        return None
    setattr(e, flag, not getattr(e, flag))
    db.session.commit()
    return e.to_dict()


def bulk_update(*, enquiry_ids: list[int], patch: dict) -> dict:
    """Unknown update keys are dropped; only status/priority/read/star apply."""
    updates = {k: v for k, v in patch.items() if k in ENQUIRY_BULK_FIELDS}
    if not updates:
        return {"matchedCount": 0, "modifiedCount": 0}

    rows = db.session.query(Enquiry).filter(Enquiry.id.in_(enquiry_ids)).all()
    modified = 0
    for e in rows:
        changed = False
        for k, v in updates.items():
            if getattr(e, k) != v:
                setattr(e, k, v)
                changed = True
        modified += int(changed)
    db.session.commit()
    return {"matchedCount": len(rows), "modifiedCount": modified}


def bulk_delete(*, enquiry_ids: list[int]) -> dict:
    rows = db.session.query(Enquiry).filter(Enquiry.id.in_(enquiry_ids)).all()
    for e in rows:
        db.session.delete(e)
    db.session.commit()
    return {"deletedCount": len(rows)}


def export_rows() -> list[Enquiry]:
    return db.session.query(Enquiry).order_by(Enquiry.created_at.desc(), Enquiry.id.desc()).all()


def export_csv() -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(EXPORT_HEADERS)
    for e in export_rows():
        writer.writerow([
            e.name,
            e.email,
            e.phone,
            e.company or "",
            e.subject,
            e.message,
            e.status,
            e.priority,
            e.created_at.strftime("%Y-%m-%d") if e.created_at else "",
        ])
    return buf.getvalue()
