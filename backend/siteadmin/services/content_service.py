# Overview: Service-layer CRUD for services, gallery images and clients.

from __future__ import annotations

from sqlalchemy import func, or_

from ..extensions import db
from ..models import Client, GalleryImage, Service
from ..models.content import CLIENT_STATUSES
from ..validation import ConflictError, ValidationError, pagination_meta
from ..services.event_log_service import append_event

SERVICE_MUTABLE_FIELDS = {"title", "description", "status", "duration", "price", "image", "category", "featured", "order"}
GALLERY_MUTABLE_FIELDS = {"title", "url", "category", "alt"}
CLIENT_MUTABLE_FIELDS = {"name", "address", "status", "since", "rating", "project", "project_value", "project_completed"}

SERVICE_SORT_FIELDS = {
    "createdAt": Service.created_at,
    "title": Service.title,
    "price": Service.price,
    "order": Service.order,
    "status": Service.status,
}
CLIENT_SORT_FIELDS = {
    "createdAt": Client.created_at,
    "name": Client.name,
    "since": Client.since,
    "rating": Client.rating,
    "status": Client.status,
}


def _apply(obj, patch: dict, fields: set[str]) -> None:
    for k, v in patch.items():
        if k in fields:
            setattr(obj, k, v)


def _get(model, obj_id: int):
    return db.session.query(model).filter(model.id == obj_id).first()


def _sorted(q, columns: dict, sort_by: str, order: str, fallback):
    col = columns.get(sort_by, fallback)
    return q.order_by(col.asc() if order == "asc" else col.desc())


def _delete(model, obj_id: int) -> bool:
    obj = _get(model, obj_id)
    if not obj:
        return False
    db.session.delete(obj)
    db.session.commit()
    return True


def _bulk_delete(model, ids: list[int]) -> dict:
    deleted = (
        db.session.query(model)
        .filter(model.id.in_(ids))
        .delete(synchronize_session=False)
    )
    db.session.commit()
    return {"deletedCount": deleted}


# ---------------------------------------------------------------------------
# Services
# ---------------------------------------------------------------------------

def service_stats() -> dict:
    counts = dict(db.session.query(Service.status, func.count(Service.id)).group_by(Service.status).all())
    return {
        "total": int(sum(counts.values())),
        "active": int(counts.get("Active", 0)),
        "inactive": int(counts.get("Inactive", 0)),
        "featured": int(counts.get("Featured", 0)),
    }


def list_services(
    *,
    status: str | None = None,
    featured: bool | None = None,
    search: str | None = None,
    sort_by: str = "createdAt",
    order: str = "desc",
    page: int = 1,
    limit: int = 10,
) -> dict:
    q = db.session.query(Service)
    if status and status != "All":
        q = q.filter(Service.status == status)
    if featured is not None:
        q = q.filter(Service.featured.is_(featured))
    if search:
        pattern = f"%{search.strip()}%"
        q = q.filter(or_(Service.title.ilike(pattern), Service.description.ilike(pattern)))

    total = q.count()
    rows = _sorted(q, SERVICE_SORT_FIELDS, sort_by, order, Service.created_at).offset((page - 1) * limit).limit(limit).all()
    return {
        "items": [s.to_dict() for s in rows],
        "stats": service_stats(),
        "pagination": pagination_meta(page, limit, total),
    }


def get_service(service_id: int) -> dict | None:
    s = _get(Service, service_id)
    return s.to_dict() if s else None


def create_service(*, patch: dict) -> dict:
    s = Service()
    _apply(s, patch, SERVICE_MUTABLE_FIELDS)
    db.session.add(s)
    db.session.flush()
    append_event(
        event_type="service.created",
        entity_type="service",
        entity_id=s.id,
        summary=f"New service added: {s.title}",
    )
    db.session.commit()
    return s.to_dict()


def update_service(*, service_id: int, patch: dict) -> dict | None:
    s = _get(Service, service_id)
    if not s:
        return None
    _apply(s, patch, SERVICE_MUTABLE_FIELDS)
    db.session.commit()
    return s.to_dict()


def delete_service(service_id: int) -> bool:
    return _delete(Service, service_id)


def bulk_delete_services(ids: list[int]) -> dict:
    return _bulk_delete(Service, ids)


def toggle_service_status(service_id: int) -> dict | None:
    s = _get(Service, service_id)
    if not s:
        return None
    s.status = "Inactive" if s.status == "Active" else "Active"
    db.session.commit()
    return s.to_dict()


def toggle_service_featured(service_id: int) -> dict | None:
    """Featuring a service also gives it the Featured status; un-featuring drops it back to Active."""
    s = _get(Service, service_id)
    if not s:
        return None
    s.featured = not s.featured
    if s.featured:
        s.status = "Featured"
    elif s.status == "Featured":
        s.status = "Active"
    db.session.commit()
    return s.to_dict()


# ---------------------------------------------------------------------------
# Gallery
# ---------------------------------------------------------------------------

def list_gallery(*, category: str | None = None, page: int = 1, limit: int = 50) -> dict:
    q = db.session.query(GalleryImage)
    if category and category != "all":
        q = q.filter(GalleryImage.category == category)
    total = q.count()
    rows = (
        q.order_by(GalleryImage.created_at.desc(), GalleryImage.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return {
        "items": [g.to_dict() for g in rows],
        "pagination": pagination_meta(page, limit, total),
    }


def gallery_category_counts() -> list[dict]:
    rows = (
        db.session.query(GalleryImage.category, func.count(GalleryImage.id))
        .group_by(GalleryImage.category)
        .order_by(func.count(GalleryImage.id).desc(), GalleryImage.category.asc())
        .all()
    )
    return [{"category": c, "count": int(n)} for c, n in rows]


def get_gallery_image(image_id: int) -> dict | None:
    g = _get(GalleryImage, image_id)
    return g.to_dict() if g else None


def create_gallery_image(*, patch: dict) -> dict:
    g = GalleryImage()
    _apply(g, patch, GALLERY_MUTABLE_FIELDS)
    if not g.alt:
        g.alt = g.title
    db.session.add(g)
    db.session.flush()
    append_event(
        event_type="gallery.created",
        entity_type="gallery",
        entity_id=g.id,
        summary=f"New image added to gallery: {g.title}",
        detail=g.category,
    )
    db.session.commit()
    return g.to_dict()


def update_gallery_image(*, image_id: int, patch: dict) -> dict | None:
    g = _get(GalleryImage, image_id)
    if not g:
        return None
    _apply(g, patch, GALLERY_MUTABLE_FIELDS)
    db.session.commit()
    return g.to_dict()


def delete_gallery_image(image_id: int) -> bool:
    return _delete(GalleryImage, image_id)


# ---------------------------------------------------------------------------
# Clients
# ---------------------------------------------------------------------------

def _require_unique_client_name(name: str, exclude_id: int | None = None) -> None:
    q = db.session.query(Client.id).filter(func.lower(Client.name) == name.lower())
    if exclude_id is not None:
        q = q.filter(Client.id != exclude_id)
    if q.first() is not None:
        raise ConflictError("Client with this name already exists")


def client_stats() -> dict:
    counts = dict(db.session.query(Client.status, func.count(Client.id)).group_by(Client.status).all())
    avg = db.session.query(func.avg(Client.rating)).scalar()
    return {
        "total": int(sum(counts.values())),
        "active": int(counts.get("Active", 0)),
        "inactive": int(counts.get("Inactive", 0)),
        "averageRating": f"{float(avg):.1f}" if avg is not None else "0.0",
    }


def list_clients(
    *,
    search: str | None = None,
    status: str | None = None,
    since: str | None = None,
    sort_by: str = "createdAt",
    sort_order: str = "desc",
    page: int = 1,
    limit: int = 50,
) -> dict:
    q = db.session.query(Client)
    if search:
        q = q.filter(Client.name.ilike(f"%{search.strip()}%"))
    if status and status != "All":
        q = q.filter(Client.status == status)
    if since:
        q = q.filter(Client.since == since)

    total = q.count()
    rows = _sorted(q, CLIENT_SORT_FIELDS, sort_by, sort_order, Client.created_at).offset((page - 1) * limit).limit(limit).all()
    return {
        "items": [c.to_dict() for c in rows],
        "stats": client_stats(),
        "pagination": pagination_meta(page, limit, total),
    }


def get_client(client_id: int) -> dict | None:
    c = _get(Client, client_id)
    return c.to_dict() if c else None


def create_client(*, patch: dict) -> dict:
    """
    Raises:
        ConflictError: a client with the same name (any casing) exists
    """
    _require_unique_client_name(patch["name"])
    c = Client()
    _apply(c, patch, CLIENT_MUTABLE_FIELDS)
    db.session.add(c)
    db.session.flush()
    append_event(
        event_type="client.created",
        entity_type="client",
        entity_id=c.id,
        summary=f"New client added to portfolio: {c.name}",
        detail=c.project,
    )
    db.session.commit()
    return c.to_dict()


def update_client(*, client_id: int, patch: dict) -> dict | None:
    c = _get(Client, client_id)
    if not c:
        return None
    if patch.get("name") and patch["name"].lower() != c.name.lower():
        _require_unique_client_name(patch["name"], exclude_id=c.id)
    _apply(c, patch, CLIENT_MUTABLE_FIELDS)
    db.session.commit()
    return c.to_dict()


def delete_client(client_id: int) -> bool:
    return _delete(Client, client_id)


def bulk_delete_clients(ids: list[int]) -> dict:
    return _bulk_delete(Client, ids)


def update_client_status(*, client_ids: list[int], status: str) -> dict:
    if status not in CLIENT_STATUSES:
        raise ValidationError("Invalid status. Must be Active or Inactive")
    modified = (
        db.session.query(Client)
        .filter(Client.id.in_(client_ids), Client.status != status)
        .update({Client.status: status}, synchronize_session=False)
    )
    db.session.commit()
    return {"modifiedCount": modified}
