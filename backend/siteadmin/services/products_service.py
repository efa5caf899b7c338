# backend/siteadmin/services/products_service.py
"""
Products Service

Every path that creates, recategorizes or deletes a product follows the same
order:
1) write the product (and its domain event) and commit
2) hand the old/new category labels to category_usage_service

Step 2 is best-effort; a failed counter update never undoes step 1.
"""
from __future__ import annotations

import secrets
import string
import time

from sqlalchemy import String, case, cast, func, or_

from ..extensions import db
from ..models import Category, Product
from ..models.catalog import UNCATEGORIZED
from ..validation import ConflictError, ValidationError, pagination_meta
from ..services import category_usage_service as usage
from ..services.event_log_service import append_event

PRODUCT_MUTABLE_FIELDS = {
    "name", "description", "category", "status", "sku", "image_url",
    "price", "stock", "featured", "certified", "popular", "custom",
    "features", "tags", "manufacturer", "warranty",
}

# Bulk update cannot assign one SKU to many rows
BULK_MUTABLE_FIELDS = PRODUCT_MUTABLE_FIELDS - {"sku", "name"}

TOGGLE_FLAGS = ("status", "featured", "certified", "popular")

SORT_FIELDS = {
    "createdAt": Product.created_at,
    "updatedAt": Product.updated_at,
    "name": Product.name,
    "category": Product.category,
    "status": Product.status,
    "price": Product.price,
    "stock": Product.stock,
    "views": Product.views,
    "downloads": Product.downloads,
    "rating": Product.rating,
}

SKU_PREFIXES = {
    "Power Distribution Panels": "PDP",
    "Motor Control & Protection": "MCP",
    "Automation & Control": "ATC",
    "Power Quality & Energy Saving": "PQE",
    "Generator & Power Backup": "GPB",
    "Marketing / Customer Resources": "MKT",
    UNCATEGORIZED: "PRD",
}

_B36 = string.digits + string.ascii_uppercase


def _base36(n: int) -> str:
    out = ""
    while n:
        n, r = divmod(n, 36)
        out = _B36[r] + out
    return out or "0"


def generate_sku(category: str) -> str:
    """PREFIX-<base36 millis>-<3 random chars>, prefix chosen by category."""
    prefix = SKU_PREFIXES.get(category, "PRD")
    stamp = _base36(int(time.time() * 1000))
    rand = "".join(secrets.choice(_B36) for _ in range(3))
    return f"{prefix}-{stamp}-{rand}"


def apply_product_patch(p: Product, patch: dict, fields: set[str] = PRODUCT_MUTABLE_FIELDS) -> None:
    for k, v in patch.items():
        if k not in fields:
            continue
        setattr(p, k, v)


def _get(product_id: int) -> Product | None:
    return db.session.query(Product).filter(Product.id == product_id).first()


def _require_unique_sku(sku: str, exclude_id: int | None = None) -> None:
    q = db.session.query(Product.id).filter(Product.sku == sku)
    if exclude_id is not None:
        q = q.filter(Product.id != exclude_id)
    if q.first() is not None:
        raise ConflictError("Duplicate key error - SKU already exists")


def list_products(
    *,
    category: str | None = None,
    status: str | None = None,
    featured: bool | None = None,
    certified: bool | None = None,
    popular: bool | None = None,
    search: str | None = None,
    sort_by: str = "createdAt",
    order: str = "desc",
    page: int = 1,
    limit: int = 100,
) -> dict:
    """
    Filtered, sorted, paginated product listing.

    category "all" means no category filter. Unknown sort_by falls back to
    createdAt. Search is a case-insensitive substring match over name,
    description, sku and tags.
    """
    q = db.session.query(Product)

    if category and category != "all":
        q = q.filter(Product.category == category)
    if status:
        q = q.filter(Product.status == status)
    if featured is not None:
        q = q.filter(Product.featured.is_(featured))
    if certified is not None:
        q = q.filter(Product.certified.is_(certified))
    if popular is not None:
        q = q.filter(Product.popular.is_(popular))

    if search:
        pattern = f"%{search.strip()}%"
        q = q.filter(or_(
            Product.name.ilike(pattern),
            Product.description.ilike(pattern),
            Product.sku.ilike(pattern),
            cast(Product.tags, String).ilike(pattern),
        ))

    sort_col = SORT_FIELDS.get(sort_by, Product.created_at)
    sort_expr = sort_col.asc() if order == "asc" else sort_col.desc()

    total = q.count()
    rows = (
        q.order_by(sort_expr, Product.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return {
        "items": [p.to_dict() for p in rows],
        "count": len(rows),
        "pagination": pagination_meta(page, limit, total),
    }


def get_product(*, product_id: int, track_view: bool = True) -> dict | None:
    """Fetch one product. Viewing it counts as a view."""
    if track_view:
        if not increment_counter(product_id=product_id, field="views"):
            return None
    p = _get(product_id)
    return p.to_dict() if p else None


def create_product(*, patch: dict, actor_user_id: int | None = None) -> dict:
    """
    Create product using a validated patch dict.

    Raises:
        ConflictError: SKU already exists
    """
    patch = dict(patch)
    patch["category"] = usage.canonical_category_name(patch.get("category"))

    if patch.get("sku"):
        _require_unique_sku(patch["sku"])
    else:
        patch["sku"] = generate_sku(patch["category"])

    p = Product()
    apply_product_patch(p, patch)
    db.session.add(p)
    db.session.flush()

    append_event(
        event_type="product.created",
        entity_type="product",
        entity_id=p.id,
        actor_user_id=actor_user_id,
        summary=f"New product added: {p.name}",
        detail=f"category={p.category} sku={p.sku}",
    )
    db.session.commit()

    usage.on_product_created(p.category)
    return p.to_dict()


def update_product(*, product_id: int, patch: dict, actor_user_id: int | None = None) -> dict | None:
    """
    Apply a validated patch (PUT or PATCH).

    Returns None if not found.

    Raises:
        ConflictError: new SKU already used by another product
    """
    p = _get(product_id)
    if not p:
        return None

    patch = dict(patch)
    if "category" in patch:
        patch["category"] = usage.canonical_category_name(patch["category"])
    if patch.get("sku") and patch["sku"] != p.sku:
        _require_unique_sku(patch["sku"], exclude_id=p.id)

    old_category = p.category
    apply_product_patch(p, patch)

    append_event(
        event_type="product.updated",
        entity_type="product",
        entity_id=p.id,
        actor_user_id=actor_user_id,
        summary=f"Product updated: {p.name}",
        detail=f"Updated fields: {', '.join(sorted(patch.keys()))}",
    )
    db.session.commit()

    if p.category != old_category:
        usage.on_product_recategorized(old_category, p.category)
    return p.to_dict()


def delete_product(*, product_id: int, actor_user_id: int | None = None) -> bool:
    """Hard delete. Returns False if not found."""
    p = _get(product_id)
    if not p:
        return False

    category = p.category
    append_event(
        event_type="product.deleted",
        entity_type="product",
        entity_id=p.id,
        actor_user_id=actor_user_id,
        summary=f"Product deleted: {p.name}",
    )
    db.session.delete(p)
    db.session.commit()

    usage.on_product_deleted(category)
    return True


def toggle_flag(*, product_id: int, flag: str) -> dict | None:
    """
    Flip status (Active <-> Inactive) or one of the boolean badges.

    Raises:
        ValidationError: unknown flag
    """
    if flag not in TOGGLE_FLAGS:
        raise ValidationError(f"Cannot toggle {flag}. Must be one of: {', '.join(TOGGLE_FLAGS)}")

    p = _get(product_id)
    if not p:
        return None

    if flag == "status":
        p.status = "Inactive" if p.status == "Active" else "Active"
    else:
        setattr(p, flag, not getattr(p, flag))
    db.session.commit()
    return p.to_dict()


def bulk_delete(*, product_ids: list[int], actor_user_id: int | None = None) -> dict:
    """
    Delete many products; each deletion is routed through the synchronizer.
    Unknown ids are ignored.
    """
    rows = db.session.query(Product).filter(Product.id.in_(product_ids)).all()
    categories = [p.category for p in rows]

    for p in rows:
        append_event(
            event_type="product.deleted",
            entity_type="product",
            entity_id=p.id,
            actor_user_id=actor_user_id,
            summary=f"Product deleted: {p.name}",
        )
        db.session.delete(p)
    db.session.commit()

    for category in categories:
        usage.on_product_deleted(category)
    return {"deletedCount": len(rows)}


def bulk_update(*, product_ids: list[int], patch: dict, actor_user_id: int | None = None) -> dict:
    """
    Apply the same patch to many products. A category change is routed through
    the synchronizer once per product whose label actually moved.
    """
    disallowed = sorted(set(patch) - BULK_MUTABLE_FIELDS)
    if disallowed:
        raise ValidationError(f"Field not allowed in bulk update: {', '.join(disallowed)}")

    patch = dict(patch)
    if "category" in patch:
        patch["category"] = usage.canonical_category_name(patch["category"])

    rows = db.session.query(Product).filter(Product.id.in_(product_ids)).all()
    moves: list[tuple[str, str]] = []
    modified = 0

    for p in rows:
        before = {k: getattr(p, k) for k in patch}
        old_category = p.category
        apply_product_patch(p, patch, BULK_MUTABLE_FIELDS)
        if any(before[k] != getattr(p, k) for k in patch):
            modified += 1
        if p.category != old_category:
            moves.append((old_category, p.category))

    if modified:
        append_event(
            event_type="product.bulk_updated",
            entity_type="product",
            entity_id=None,
            actor_user_id=actor_user_id,
            summary=f"{modified} products updated",
            detail=f"Updated fields: {', '.join(sorted(patch.keys()))}",
        )
    db.session.commit()

    for old_category, new_category in moves:
        usage.on_product_recategorized(old_category, new_category)
    return {"matchedCount": len(rows), "modifiedCount": modified}


def increment_counter(*, product_id: int, field: str) -> int | None:
    """Atomic views/downloads += 1. Returns the new value, None if not found."""
    col = {"views": Product.views, "downloads": Product.downloads}[field]
    updated = (
        db.session.query(Product)
        .filter(Product.id == product_id)
        .update({col: col + 1}, synchronize_session=False)
    )
    db.session.commit()
    if not updated:
        return None
    return db.session.query(col).filter(Product.id == product_id).scalar()


def rate_product(*, product_id: int, rating) -> dict | None:
    """
    Fold one 1..5 rating into the running average.

    Raises:
        ValidationError: rating missing or out of range
    """
    try:
        value = float(rating)
    except (TypeError, ValueError):
        raise ValidationError("Rating must be between 1 and 5")
    if not 1 <= value <= 5:
        raise ValidationError("Rating must be between 1 and 5")

    p = _get(product_id)
    if not p:
        return None

    total = (p.rating or 0) * (p.review_count or 0)
    p.review_count = (p.review_count or 0) + 1
    p.rating = (total + value) / p.review_count
    db.session.commit()
    return {"rating": p.rating, "reviewCount": p.review_count}


def category_stats() -> list[dict]:
    """Per-label product aggregates, largest category first."""
    rows = (
        db.session.query(
            Product.category,
            func.count(Product.id),
            func.sum(case((Product.status == "Active", 1), else_=0)),
            func.sum(case((Product.status == "Inactive", 1), else_=0)),
            func.sum(case((Product.featured.is_(True), 1), else_=0)),
            func.sum(case((Product.certified.is_(True), 1), else_=0)),
            func.sum(case((Product.popular.is_(True), 1), else_=0)),
            func.sum(Product.stock),
            func.sum(Product.views),
            func.sum(Product.downloads),
            func.avg(Product.rating),
        )
        .group_by(Product.category)
        .order_by(func.count(Product.id).desc(), Product.category.asc())
        .all()
    )
    return [
        {
            "category": r[0],
            "count": int(r[1]),
            "activeCount": int(r[2] or 0),
            "inactiveCount": int(r[3] or 0),
            "featuredCount": int(r[4] or 0),
            "certifiedCount": int(r[5] or 0),
            "popularCount": int(r[6] or 0),
            "totalStock": int(r[7] or 0),
            "totalViews": int(r[8] or 0),
            "totalDownloads": int(r[9] or 0),
            "avgRating": float(r[10] or 0),
        }
        for r in rows
    ]


def category_labels() -> dict:
    """Known product category names: stored categories union labels in use."""
    stored = (
        db.session.query(Category)
        .filter(Category.type == usage.PRODUCT_TYPE)
        .order_by(Category.usage_count.desc(), Category.name.asc())
        .all()
    )
    in_use = sorted(
        name for (name,) in (
            db.session.query(Product.category)
            .filter(Product.status == "Active", Product.category != UNCATEGORIZED)
            .distinct()
            .all()
        )
        if name
    )
    return {
        "all": sorted({c.name for c in stored} | set(in_use)),
        "database": [c.to_dict() for c in stored],
        "inUse": in_use,
    }
