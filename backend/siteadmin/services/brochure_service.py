# Overview: Service-layer operations for brochures (file metadata, activation, download tracking).

"""
Brochure activation

SINGLE-ACTIVE INVARIANT: at most one brochure has is_active = True.
activate_brochure() holds it by deactivating every other active row and
activating the target in ONE commit. There is no storage constraint.

Files themselves live elsewhere; a brochure only records fileUrl and metadata.
"""

from __future__ import annotations

from sqlalchemy import case, func, or_

from ..extensions import db
from ..models import Brochure
from ..validation import ConflictError, pagination_meta
from ..services.event_log_service import append_event
from siteadmin.time_utils import utcnow

BROCHURE_MUTABLE_FIELDS = {
    "title", "description", "file_name", "file_url", "file_size",
    "mime_type", "version", "category", "tags",
}


def _get(brochure_id: int) -> Brochure | None:
    return db.session.query(Brochure).filter(Brochure.id == brochure_id).first()


def _require_unique_title(title: str, exclude_id: int | None = None) -> None:
    q = db.session.query(Brochure.id).filter(func.lower(Brochure.title) == title.lower())
    if exclude_id is not None:
        q = q.filter(Brochure.id != exclude_id)
    if q.first() is not None:
        raise ConflictError("A brochure with this title already exists")


def _apply(b: Brochure, patch: dict) -> None:
    for k, v in patch.items():
        if k in BROCHURE_MUTABLE_FIELDS:
            setattr(b, k, v)


def list_brochures(
    *,
    category: str | None = None,
    search: str | None = None,
    is_active: bool | None = None,
    page: int = 1,
    limit: int = 20,
) -> dict:
    q = db.session.query(Brochure)
    if category:
        q = q.filter(Brochure.category == category)
    if is_active is not None:
        q = q.filter(Brochure.is_active.is_(is_active))
    if search:
        pattern = f"%{search.strip()}%"
        q = q.filter(or_(Brochure.title.ilike(pattern), Brochure.description.ilike(pattern)))

    total = q.count()
    rows = (
        q.order_by(Brochure.created_at.desc(), Brochure.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return {"items": [b.to_dict() for b in rows], "pagination": pagination_meta(page, limit, total)}


def get_brochure(brochure_id: int) -> dict | None:
    b = _get(brochure_id)
    return b.to_dict() if b else None


def get_active_brochure() -> dict | None:
    """The public brochure. Fetching it counts as a view."""
    b = db.session.query(Brochure).filter(Brochure.is_active.is_(True)).order_by(Brochure.activated_at.desc()).first()
    if not b:
        return None
    db.session.query(Brochure).filter(Brochure.id == b.id).update(
        {Brochure.view_count: Brochure.view_count + 1},
        synchronize_session=False,
    )
    db.session.commit()
    db.session.refresh(b)
    return b.to_dict()


def create_brochure(*, patch: dict, uploaded_by: int | None = None, activate: bool = False) -> dict:
    """
    Raises:
        ConflictError: title already used
    """
    _require_unique_title(patch["title"])
    b = Brochure(uploaded_by=uploaded_by)
    _apply(b, patch)
    db.session.add(b)
    db.session.flush()
    append_event(
        event_type="brochure.created",
        entity_type="brochure",
        entity_id=b.id,
        actor_user_id=uploaded_by,
        summary=f"Brochure uploaded: {b.title}",
        detail=f"version {b.version}",
    )
    db.session.commit()

    if activate:
        return activate_brochure(b.id)
    return b.to_dict()


def update_brochure(*, brochure_id: int, patch: dict) -> dict | None:
    b = _get(brochure_id)
    if not b:
        return None
    if patch.get("title") and patch["title"].lower() != b.title.lower():
        _require_unique_title(patch["title"], exclude_id=b.id)
    _apply(b, patch)
    db.session.commit()
    return b.to_dict()


def activate_brochure(brochure_id: int) -> dict | None:
    """Deactivate every other brochure, then activate this one (single commit)."""
    b = _get(brochure_id)
    if not b:
        return None

    now = utcnow()
    (
        db.session.query(Brochure)
        .filter(Brochure.is_active.is_(True), Brochure.id != b.id)
        .update(
            {Brochure.is_active: False, Brochure.deactivated_at: now, Brochure.updated_at: now},
            synchronize_session=False,
        )
    )
    b.is_active = True
    b.activated_at = now

    append_event(
        event_type="brochure.activated",
        entity_type="brochure",
        entity_id=b.id,
        summary=f"Brochure activated: {b.title}",
    )
    db.session.commit()
    return b.to_dict()


def deactivate_brochure(brochure_id: int) -> dict | None:
    b = _get(brochure_id)
    if not b:
        return None
    b.is_active = False
    b.deactivated_at = utcnow()
    db.session.commit()
    return b.to_dict()


def track_download(brochure_id: int) -> dict | None:
    """Atomic download_count += 1."""
    updated = (
        db.session.query(Brochure)
        .filter(Brochure.id == brochure_id)
        .update(
            {Brochure.download_count: Brochure.download_count + 1, Brochure.last_download_at: utcnow()},
            synchronize_session=False,
        )
    )
    db.session.commit()
    if not updated:
        return None
    title, count = (
        db.session.query(Brochure.title, Brochure.download_count)
        .filter(Brochure.id == brochure_id)
        .one()
    )
    return {"title": title, "downloadCount": count}


def delete_brochure(brochure_id: int) -> bool:
    b = _get(brochure_id)
    if not b:
        return False
    db.session.delete(b)
    db.session.commit()
    return True


def brochure_stats() -> dict:
    total, active, downloads, views = db.session.query(
        func.count(Brochure.id),
        func.sum(case((Brochure.is_active.is_(True), 1), else_=0)),
        func.sum(Brochure.download_count),
        func.sum(Brochure.view_count),
    ).one()
    categories = sorted(c for (c,) in db.session.query(Brochure.category).distinct().all())
    return {
        "totalBrochures": int(total or 0),
        "activeBrochures": int(active or 0),
        "totalDownloads": int(downloads or 0),
        "totalViews": int(views or 0),
        "totalCategories": len(categories),
        "categories": categories,
    }
