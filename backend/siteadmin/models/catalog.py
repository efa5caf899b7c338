from __future__ import annotations

from ..extensions import db
from siteadmin.time_utils import to_utc_z, utcnow

# Products pointing here are not tracked by any Category.usage_count
UNCATEGORIZED = "Uncategorized"

PRODUCT_STATUSES = ("Active", "Inactive")
CATEGORY_TYPES = ("product", "gallery", "service", "other")


class Product(db.Model):
    """
    Product catalogue entry.

    CATEGORY DESIGN DECISION:
    Product.category is a free-text label, NOT a foreign key. A label may name a
    Category row that does not exist yet; the usage synchronizer creates it on
    first use. The sentinel "Uncategorized" never gets a Category row.

    SKU is optional but unique when present (stored upper-case).
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_category_status", "category", "status"),
        db.Index("ix_products_featured_status", "featured", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.String(1000), nullable=True)
    category = db.Column(db.String(120), nullable=False, default=UNCATEGORIZED, index=True)
    status = db.Column(db.String(16), nullable=False, default="Active")

    sku = db.Column(db.String(64), nullable=True, unique=True)
    image_url = db.Column(db.Text, nullable=True)

    price = db.Column(db.Float, nullable=False, default=0)
    stock = db.Column(db.Integer, nullable=False, default=0)
    views = db.Column(db.Integer, nullable=False, default=0)
    downloads = db.Column(db.Integer, nullable=False, default=0)
    rating = db.Column(db.Float, nullable=False, default=0)
    review_count = db.Column(db.Integer, nullable=False, default=0)

    featured = db.Column(db.Boolean, nullable=False, default=False)
    certified = db.Column(db.Boolean, nullable=False, default=False)
    popular = db.Column(db.Boolean, nullable=False, default=False)
    custom = db.Column(db.Boolean, nullable=False, default=False)

    features = db.Column(db.JSON, nullable=False, default=list)
    tags = db.Column(db.JSON, nullable=False, default=list)
    manufacturer = db.Column(db.String(120), nullable=True)
    warranty = db.Column(db.String(120), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self) -> str:
        return f"<Product id={self.id} sku={self.sku!r} name={self.name!r} category={self.category!r}>"

    @property
    def in_stock(self) -> bool:
        return (self.stock or 0) > 0

    @property
    def badge_type(self) -> str | None:
        for flag in ("featured", "popular", "certified", "custom"):
            if getattr(self, flag):
                return flag
        return None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "status": self.status,
            "sku": self.sku,
            "imageUrl": self.image_url,
            "price": self.price,
            "stock": self.stock,
            "inStock": self.in_stock,
            "views": self.views,
            "downloads": self.downloads,
            "rating": self.rating,
            "reviewCount": self.review_count,
            "featured": self.featured,
            "certified": self.certified,
            "popular": self.popular,
            "custom": self.custom,
            "badgeType": self.badge_type,
            "features": list(self.features or []),
            "tags": list(self.tags or []),
            "manufacturer": self.manufacturer,
            "warranty": self.warranty,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }


class Category(db.Model):
    """
    Named category within a type namespace (product/gallery/service/other).

    usage_count is a denormalized counter of products labelled with this name.
    It is maintained incrementally by category_usage_service and may drift;
    reconcile_usage_counts() recomputes it from the products table.
    """
    __tablename__ = "categories"
    __table_args__ = (
        db.UniqueConstraint("name", "type", name="uq_categories_name_type"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    type = db.Column(db.String(16), nullable=False, default="product", index=True)
    description = db.Column(db.Text, nullable=True)
    usage_count = db.Column(db.Integer, nullable=False, default=0)
    image_url = db.Column(db.Text, nullable=True)
    created_by = db.Column(db.String(64), nullable=False, default="system")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self) -> str:
        return f"<Category id={self.id} name={self.name!r} type={self.type!r} usage_count={self.usage_count}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "description": self.description or "",
            # Lost updates can push the stored counter below zero
            "usageCount": max(self.usage_count or 0, 0),
            "imageUrl": self.image_url,
            "createdBy": self.created_by,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }
