# backend/siteadmin/routes/system.py
"""
System health endpoint.

Checks the database and reports row counts for the main tables so a
deployment can be smoke-tested without credentials.
"""

import time
from flask import Blueprint, current_app
from sqlalchemy import func

from ..extensions import db
from ..models import Product, Category, Enquiry, SessionToken
from siteadmin.time_utils import to_utc_z, utcnow

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    start_time = time.time()
    try:
        details = {
            "products": db.session.query(func.count(Product.id)).scalar(),
            "categories": db.session.query(func.count(Category.id)).scalar(),
            "enquiries": db.session.query(func.count(Enquiry.id)).scalar(),
            "active_sessions": db.session.query(func.count(SessionToken.id)).filter(
                SessionToken.is_revoked.is_(False),
                SessionToken.expires_at > utcnow(),
            ).scalar(),
        }
        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": details,
        }
    except Exception:
        db.session.rollback()
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error",
        }


@system_bp.get("/health")
def health():
    """
    200 when the database answers, 503 otherwise.
    """
    database_health = check_database_health()
    healthy = database_health["status"] == "healthy"

    response = {
        "success": healthy,
        "status": "healthy" if healthy else "unhealthy",
        "timestamp": to_utc_z(utcnow()),
        "checks": {"database": database_health},
    }
    return response, 200 if healthy else 503
