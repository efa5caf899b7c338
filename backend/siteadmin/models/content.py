from __future__ import annotations

from ..extensions import db
from siteadmin.time_utils import to_utc_z, utcnow

SERVICE_STATUSES = ("Active", "Inactive", "Featured", "Pending")
# Statuses counted as "active" on the dashboard
ACTIVE_SERVICE_STATUSES = ("Active", "Featured")
SERVICE_CATEGORIES = ("Repair", "Maintenance", "Installation", "Consultation", "Other")
CLIENT_STATUSES = ("Active", "Inactive")
BROCHURE_CATEGORIES = ("general", "technical", "marketing", "product", "service", "other")


class Service(db.Model):
    __tablename__ = "services"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(100), nullable=False)
    description = db.Column(db.String(1000), nullable=False)
    status = db.Column(db.String(16), nullable=False, default="Active", index=True)
    duration = db.Column(db.String(64), nullable=False, default="2-4 hours")
    price = db.Column(db.Float, nullable=False, default=0)
    image = db.Column(db.Text, nullable=True)
    category = db.Column(db.String(32), nullable=False, default="Other")
    featured = db.Column(db.Boolean, nullable=False, default=False)
    order = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "status": self.status,
            "duration": self.duration,
            "price": self.price,
            "image": self.image,
            "category": self.category,
            "featured": self.featured,
            "order": self.order,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }


class GalleryImage(db.Model):
    __tablename__ = "gallery_images"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(255), nullable=False)
    url = db.Column(db.Text, nullable=False)
    category = db.Column(db.String(120), nullable=False, default="Uncategorized", index=True)
    alt = db.Column(db.String(255), nullable=False, default="")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "url": self.url,
            "category": self.category,
            "alt": self.alt,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }


class Client(db.Model):
    __tablename__ = "clients"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False, unique=True)
    address = db.Column(db.String(500), nullable=False, default="")
    status = db.Column(db.String(16), nullable=False, default="Active", index=True)
    since = db.Column(db.String(4), nullable=True)
    rating = db.Column(db.Integer, nullable=False, default=5)

    project = db.Column(db.String(255), nullable=True)
    # Rupees; shown in lakhs on the dashboard
    project_value = db.Column(db.Float, nullable=True)
    project_completed = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "address": self.address,
            "status": self.status,
            "since": self.since,
            "rating": self.rating,
            "project": self.project,
            "projectValue": self.project_value,
            "projectCompleted": self.project_completed,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }


class Brochure(db.Model):
    """
    Downloadable brochure (file referenced by URL).

    SINGLE-ACTIVE INVARIANT: at most one row has is_active = True. It is held by
    brochure_service.activate_brochure (deactivate all, then activate one),
    not by a storage constraint.
    """
    __tablename__ = "brochures"
    __table_args__ = (
        db.Index("ix_brochures_category_active", "category", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(100), nullable=False, unique=True)
    description = db.Column(db.String(500), nullable=True)
    file_name = db.Column(db.String(255), nullable=False)
    file_url = db.Column(db.Text, nullable=False)
    file_size = db.Column(db.Integer, nullable=False, default=0)
    mime_type = db.Column(db.String(128), nullable=False, default="application/pdf")
    version = db.Column(db.String(16), nullable=False, default="1.0")
    category = db.Column(db.String(16), nullable=False, default="general")
    tags = db.Column(db.JSON, nullable=False, default=list)

    is_active = db.Column(db.Boolean, nullable=False, default=False)
    download_count = db.Column(db.Integer, nullable=False, default=0)
    view_count = db.Column(db.Integer, nullable=False, default=0)
    last_download_at = db.Column(db.DateTime(timezone=True), nullable=True)
    activated_at = db.Column(db.DateTime(timezone=True), nullable=True)
    deactivated_at = db.Column(db.DateTime(timezone=True), nullable=True)
    uploaded_by = db.Column(db.Integer, db.ForeignKey("admin_users.id"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    @property
    def formatted_size(self) -> str:
        size = float(self.file_size or 0)
        for unit in ("Bytes", "KB", "MB"):
            if size < 1024:
                return f"{round(size, 2):g} {unit}"
            size /= 1024
        return f"{round(size, 2):g} GB"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "fileName": self.file_name,
            "fileUrl": self.file_url,
            "fileSize": self.file_size,
            "formattedSize": self.formatted_size,
            "mimeType": self.mime_type,
            "version": self.version,
            "category": self.category,
            "tags": list(self.tags or []),
            "isActive": self.is_active,
            "downloadCount": self.download_count,
            "viewCount": self.view_count,
            "lastDownloadAt": to_utc_z(self.last_download_at),
            "activatedAt": to_utc_z(self.activated_at),
            "deactivatedAt": to_utc_z(self.deactivated_at),
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }
