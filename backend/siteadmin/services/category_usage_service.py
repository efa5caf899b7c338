# Overview: Service-layer operations keeping Category.usage_count in step with products.

"""
Category Usage Synchronizer

Category.usage_count is an EVENTUALLY CONSISTENT COUNTER: the number of
products whose `category` label equals the category name (product type only,
sentinel excluded). It is maintained incrementally from three product
lifecycle paths:

- product created       -> upsert-increment new label
- product recategorized -> decrement old label, then upsert-increment new label
- product deleted       -> decrement label

INVARIANTS / FAILURE SEMANTICS:
- Each counter step is a single atomic statement (UPDATE ... usage_count + 1,
  or INSERT ... ON CONFLICT DO UPDATE). No read-modify-write.
- Steps are NOT a transaction with the product write. The product is committed
  first; counter failures are logged, rolled back and swallowed so the product
  mutation never fails because of them.
- Concurrent recategorizations can still drift the counter. reconcile_usage_counts()
  is the repair procedure: it recomputes every counter from the products table.
- No floor on write; readers clamp at zero (Category.to_dict).
"""

from __future__ import annotations

from typing import Callable

from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Category, Product
from ..models.catalog import UNCATEGORIZED
from siteadmin.time_utils import utcnow

PRODUCT_TYPE = "product"
SYSTEM_CREATOR = "product-system"


def is_tracked(name: str | None) -> bool:
    """Sentinel and empty labels never touch a counter."""
    return bool(name) and name != UNCATEGORIZED


def canonical_category_name(raw: str | None) -> str:
    """
    Normalize a product's category label.

    Blank -> sentinel. If a product category already exists whose name matches
    case-insensitively, reuse its exact stored name so the counter key matches.
    """
    name = (raw or "").strip()
    if not name or name.lower() == UNCATEGORIZED.lower():
        return UNCATEGORIZED

    match = (
        db.session.query(Category.name)
        .filter(func.lower(Category.name) == name.lower(), Category.type == PRODUCT_TYPE)
        .order_by(Category.id.asc())
        .first()
    )
    return match[0] if match else name


def _bump(name: str, delta: int, category_type: str = PRODUCT_TYPE) -> int:
    """Atomic in-place counter change. Returns number of rows touched (0 or 1)."""
    return (
        db.session.query(Category)
        .filter(Category.name == name, Category.type == category_type)
        .update(
            {Category.usage_count: Category.usage_count + delta, Category.updated_at: utcnow()},
            synchronize_session=False,
        )
    )


def _dialect_insert():
    dialect = db.session.get_bind().dialect.name
    if dialect == "sqlite":
        from sqlalchemy.dialects.sqlite import insert
        return insert
    if dialect == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
        return insert
    return None


def upsert_increment(name: str, category_type: str = PRODUCT_TYPE) -> None:
    """
    Create the category with usage_count=1, or add 1 to the existing row.

    One INSERT ... ON CONFLICT (name, type) DO UPDATE statement where the
    backend supports it. Elsewhere: update-first, then insert in a savepoint and
    fall back to update if a concurrent insert won the race.
    """
    insert = _dialect_insert()
    now = utcnow()

    if insert is not None:
        table = Category.__table__
        stmt = insert(table).values(
            name=name,
            type=category_type,
            usage_count=1,
            created_by=SYSTEM_CREATOR,
            description="",
            created_at=now,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[table.c.name, table.c.type],
            set_={"usage_count": table.c.usage_count + 1, "updated_at": now},
        )
        db.session.execute(stmt)
        return

    if _bump(name, 1, category_type):
        return
    try:
        with db.session.begin_nested():
            db.session.add(Category(
                name=name,
                type=category_type,
                usage_count=1,
                created_by=SYSTEM_CREATOR,
                description="",
            ))
    except IntegrityError:
        _bump(name, 1, category_type)


def decrement(name: str, category_type: str = PRODUCT_TYPE) -> int:
    """Subtract 1 if the category exists; missing categories are a silent no-op."""
    return _bump(name, -1, category_type)


def _best_effort(action: str, step: Callable[[], object]) -> bool:
    try:
        step()
        db.session.commit()
        return True
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Category usage sync failed: %s", action)
        return False


def on_product_created(category: str | None) -> bool:
    if not is_tracked(category):
        return True
    done = _best_effort(f"increment {category!r}", lambda: upsert_increment(category))
    if done:
        current_app.logger.info("Category %r usage incremented", category)
    return done


def on_product_recategorized(old_category: str | None, new_category: str | None) -> bool:
    """
    Decrement old, then upsert-increment new. Each step commits on its own; if the
    second fails the counters stay off until reconcile_usage_counts() runs.
    """
    if old_category == new_category:
        return True

    ok = True
    if is_tracked(old_category):
        ok = _best_effort(f"decrement {old_category!r}", lambda: decrement(old_category)) and ok
    if is_tracked(new_category):
        ok = _best_effort(f"increment {new_category!r}", lambda: upsert_increment(new_category)) and ok
    if ok:
        current_app.logger.info("Category usage moved %r -> %r", old_category, new_category)
    return ok


def on_product_deleted(category: str | None) -> bool:
    if not is_tracked(category):
        return True
    done = _best_effort(f"decrement {category!r}", lambda: decrement(category))
    if done:
        current_app.logger.info("Category %r usage decremented", category)
    return done


def relabel_products(old_name: str, new_name: str) -> int:
    """
    Bulk-move every product labelled old_name to new_name (category rename).

    Counters are untouched: the same products now carry the new label.
    Does not commit.
    """
    if old_name == new_name:
        return 0
    return (
        db.session.query(Product)
        .filter(Product.category == old_name)
        .update({Product.category: new_name, Product.updated_at: utcnow()}, synchronize_session=False)
    )


def reassign_to_sentinel(name: str) -> int:
    """Bulk-move products off a category that is about to be deleted. Does not commit."""
    return relabel_products(name, UNCATEGORIZED)


def reconcile_usage_counts(*, create_missing: bool = True) -> dict:
    """
    Repair procedure: recompute every product category counter from products.

    - labels are matched to categories case-insensitively; products carrying a
      differently-cased label are relabelled to the stored category name
    - corrects counters that drifted (including negatives)
    - optionally creates categories for labels that have products but no row
    Commits once at the end.
    """
    label_counts = (
        db.session.query(Product.category, func.count(Product.id))
        .filter(Product.category != UNCATEGORIZED)
        .group_by(Product.category)
        .order_by(Product.category.asc())
        .all()
    )
    live_by_key: dict[str, list[tuple[str, int]]] = {}
    for label, count in label_counts:
        live_by_key.setdefault(label.lower(), []).append((label, int(count)))

    corrected = []
    categories = (
        db.session.query(Category)
        .filter(Category.type == PRODUCT_TYPE)
        .order_by(Category.id.asc())
        .all()
    )
    known = set()
    for cat in categories:
        key = cat.name.lower()
        if key in known:
            continue
        known.add(key)
        labels = live_by_key.get(key, [])
        for label, _ in labels:
            relabel_products(label, cat.name)
        expected = sum(count for _, count in labels)
        if cat.usage_count != expected:
            corrected.append({"name": cat.name, "from": cat.usage_count, "to": expected})
            cat.usage_count = expected

    created = []
    if create_missing:
        for key, labels in sorted(live_by_key.items()):
            if key in known:
                continue
            name = labels[0][0]
            for label, _ in labels[1:]:
                relabel_products(label, name)
            total = sum(count for _, count in labels)
            db.session.add(Category(
                name=name,
                type=PRODUCT_TYPE,
                usage_count=total,
                created_by=SYSTEM_CREATOR,
                description="",
            ))
            created.append({"name": name, "usageCount": total})

    db.session.commit()

    if corrected or created:
        current_app.logger.warning(
            "Category usage reconcile corrected %d counter(s), created %d categor(ies)",
            len(corrected), len(created),
        )
    return {"checked": len(categories), "corrected": corrected, "created": created}
