from __future__ import annotations

from ..extensions import db
from siteadmin.time_utils import to_utc_z, utcnow

ENQUIRY_STATUSES = ("new", "in-progress", "resolved", "spam")
ENQUIRY_PRIORITIES = ("low", "medium", "high", "urgent")
ENQUIRY_SOURCES = ("website", "email", "phone", "other")


class Enquiry(db.Model):
    """
    Contact-form enquiry.

    Lifecycle: new -> in-progress (automatically, on the first response)
    -> resolved / spam (explicit admin update only).
    """
    __tablename__ = "enquiries"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(120), nullable=False)
    email = db.Column(db.String(255), nullable=False, index=True)
    phone = db.Column(db.String(32), nullable=False)
    company = db.Column(db.String(255), nullable=False, default="")
    subject = db.Column(db.String(255), nullable=False)
    message = db.Column(db.Text, nullable=False)

    # Product name the enquirer asked about; correlated by name on the dashboard
    product_interested = db.Column(db.String(100), nullable=True, index=True)

    status = db.Column(db.String(16), nullable=False, default="new", index=True)
    priority = db.Column(db.String(16), nullable=False, default="medium", index=True)
    is_read = db.Column(db.Boolean, nullable=False, default=False, index=True)
    is_starred = db.Column(db.Boolean, nullable=False, default=False)
    tags = db.Column(db.JSON, nullable=False, default=list)
    source = db.Column(db.String(16), nullable=False, default="website")
    ip_address = db.Column(db.String(64), nullable=True)
    user_agent = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    responses = db.relationship(
        "EnquiryResponse",
        back_populates="enquiry",
        order_by="EnquiryResponse.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Enquiry id={self.id} email={self.email!r} status={self.status!r}>"

    def to_dict(self, include_responses: bool = True) -> dict:
        data = {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "company": self.company,
            "subject": self.subject,
            "message": self.message,
            "productInterested": self.product_interested,
            "status": self.status,
            "priority": self.priority,
            "isRead": self.is_read,
            "isStarred": self.is_starred,
            "tags": list(self.tags or []),
            "source": self.source,
            "responseCount": len(self.responses),
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }
        if include_responses:
            data["responses"] = [r.to_dict() for r in self.responses]
        return data


class EnquiryResponse(db.Model):
    """
    One admin reply to an enquiry.

    Owned by its enquiry (cascade delete) and append-only: there is no edit or
    delete path. position is the 0-based index within the enquiry.
    """
    __tablename__ = "enquiry_responses"
    __table_args__ = (
        db.UniqueConstraint("enquiry_id", "position", name="uq_enquiry_responses_position"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    enquiry_id = db.Column(db.Integer, db.ForeignKey("enquiries.id", ondelete="CASCADE"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False)

    message = db.Column(db.Text, nullable=False)
    responded_by = db.Column(db.Integer, db.ForeignKey("admin_users.id"), nullable=True)
    responded_by_name = db.Column(db.String(120), nullable=False, default="Admin")
    send_email = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    enquiry = db.relationship("Enquiry", back_populates="responses")

    def to_dict(self) -> dict:
        return {
            "message": self.message,
            "respondedBy": self.responded_by,
            "respondedByName": self.responded_by_name,
            "sendEmail": self.send_email,
            "createdAt": to_utc_z(self.created_at),
        }
