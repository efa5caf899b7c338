# Overview: Service-layer operations for categories (CRUD, rename fan-out, usage report).

from __future__ import annotations

from flask import current_app
from sqlalchemy import case, func

from ..extensions import db
from ..models import Category, Product
from ..models.catalog import CATEGORY_TYPES, UNCATEGORIZED
from ..validation import ConflictError, ValidationError
from ..services import category_usage_service as usage
from ..services.event_log_service import append_event


def _require_type(category_type: str) -> str:
    if category_type not in CATEGORY_TYPES:
        raise ValidationError(f"{category_type} is not a valid type. Must be one of: {', '.join(CATEGORY_TYPES)}")
    return category_type


def _name_taken(name: str, category_type: str, exclude_id: int | None = None) -> bool:
    q = db.session.query(Category.id).filter(
        func.lower(Category.name) == name.lower(),
        Category.type == category_type,
    )
    if exclude_id is not None:
        q = q.filter(Category.id != exclude_id)
    return q.first() is not None


def get_category(category_id: int) -> Category | None:
    return db.session.query(Category).filter(Category.id == category_id).first()


def category_stats(category_type: str = usage.PRODUCT_TYPE) -> dict:
    row = (
        db.session.query(
            func.count(Category.id),
            func.sum(case((Category.usage_count > 0, 1), else_=0)),
            func.sum(case((Category.usage_count <= 0, 1), else_=0)),
            func.sum(case((Category.usage_count > 0, Category.usage_count), else_=0)),
        )
        .filter(Category.type == category_type)
        .one()
    )
    return {
        "total": int(row[0] or 0),
        "used": int(row[1] or 0),
        "unused": int(row[2] or 0),
        "totalUsage": int(row[3] or 0),
    }


def list_categories(*, category_type: str = usage.PRODUCT_TYPE) -> dict:
    """Categories of one type, most used first, with aggregate stats."""
    _require_type(category_type)
    rows = (
        db.session.query(Category)
        .filter(Category.type == category_type)
        .order_by(Category.usage_count.desc(), Category.name.asc())
        .all()
    )
    return {
        "items": [c.to_dict() for c in rows],
        "stats": category_stats(category_type),
    }


def create_category(
    *,
    name: str | None,
    category_type: str = usage.PRODUCT_TYPE,
    description: str | None = None,
    image_url: str | None = None,
    created_by: str | None = None,
) -> dict:
    """
    Raises:
        ValidationError: blank name, unknown type, or the reserved sentinel name
        ConflictError: same name (any casing) already exists within the type
    """
    name = (name or "").strip()
    if not name:
        raise ValidationError("Category name is required")
    _require_type(category_type)
    if name.lower() == UNCATEGORIZED.lower():
        raise ValidationError(f"{UNCATEGORIZED} is reserved")
    if _name_taken(name, category_type):
        raise ConflictError("Category already exists")

    c = Category(
        name=name,
        type=category_type,
        description=description or "",
        image_url=image_url or None,
        created_by=created_by or "api",
    )
    # Products may already carry this label
    if category_type == usage.PRODUCT_TYPE:
        c.usage_count = db.session.query(func.count(Product.id)).filter(Product.category == name).scalar() or 0

    db.session.add(c)
    db.session.flush()
    append_event(
        event_type="category.created",
        entity_type="category",
        entity_id=c.id,
        summary=f"Category created: {c.name}",
    )
    db.session.commit()
    return c.to_dict()


def update_category(
    *,
    category_id: int,
    name: str | None,
    description: str | None = None,
    image_url: str | None = None,
) -> tuple[dict, int] | None:
    """
    Rename (and/or re-describe) a category.

    A product category rename relabels every product holding the old name in
    the same commit; usage_count is unchanged.

    Returns (category dict, products relabelled), or None if not found.
    """
    c = get_category(category_id)
    if not c:
        return None

    new_name = (name or "").strip()
    if not new_name:
        raise ValidationError("Category name is required")
    if new_name.lower() == UNCATEGORIZED.lower():
        raise ValidationError(f"{UNCATEGORIZED} is reserved")

    old_name = c.name
    if old_name.lower() != new_name.lower() and _name_taken(new_name, c.type, exclude_id=c.id):
        raise ConflictError("Category name already exists")

    c.name = new_name
    if description:
        c.description = description
    if image_url:
        c.image_url = image_url

    relabelled = 0
    if old_name != new_name and c.type == usage.PRODUCT_TYPE:
        relabelled = usage.relabel_products(old_name, new_name)
        append_event(
            event_type="category.renamed",
            entity_type="category",
            entity_id=c.id,
            summary=f"Category renamed: {old_name} -> {new_name}",
            detail=f"products_relabelled={relabelled}",
        )
    db.session.commit()

    if relabelled:
        current_app.logger.info("Relabelled %d products %r -> %r", relabelled, old_name, new_name)
    return c.to_dict(), relabelled


def delete_category(*, category_id: int) -> dict | None:
    """
    Reassign referencing products to the sentinel, then delete.

    Returns {"name", "productsUpdated"}, or None if not found.
    """
    c = get_category(category_id)
    if not c:
        return None

    name = c.name
    moved = 0
    if c.type == usage.PRODUCT_TYPE:
        moved = usage.reassign_to_sentinel(name)

    append_event(
        event_type="category.deleted",
        entity_type="category",
        entity_id=c.id,
        summary=f"Category deleted: {name}",
        detail=f"products_reassigned={moved}",
    )
    db.session.delete(c)
    db.session.commit()

    if moved:
        current_app.logger.info("Moved %d products from deleted category %r to %s", moved, name, UNCATEGORIZED)
    return {"name": name, "productsUpdated": moved}


def usage_report(*, category_type: str = usage.PRODUCT_TYPE) -> list[dict]:
    """
    Live product counts next to the stored counters.

    count is recomputed from products; usageCount is the stored (clamped)
    counter. The sentinel is appended when any product carries it.
    """
    _require_type(category_type)
    live = dict(
        db.session.query(Product.category, func.count(Product.id))
        .group_by(Product.category)
        .all()
    )

    categories = (
        db.session.query(Category)
        .filter(Category.type == category_type)
        .order_by(Category.usage_count.desc(), Category.name.asc())
        .all()
    )
    report = [
        {
            "id": c.id,
            "name": c.name,
            "count": int(live.get(c.name, 0)) if category_type == usage.PRODUCT_TYPE else 0,
            "usageCount": max(c.usage_count or 0, 0),
        }
        for c in categories
    ]

    if category_type == usage.PRODUCT_TYPE and live.get(UNCATEGORIZED):
        report.append({
            "id": None,
            "name": UNCATEGORIZED,
            "count": int(live[UNCATEGORIZED]),
            "usageCount": int(live[UNCATEGORIZED]),
        })
    return report
