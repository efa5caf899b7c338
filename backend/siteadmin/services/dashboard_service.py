# Overview: Service-layer dashboard aggregation; read-only queries across every content table.

from __future__ import annotations

import math
from datetime import datetime, timedelta

from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import Client, Enquiry, EnquiryResponse, GalleryImage, Product, Service
from ..models.content import ACTIVE_SERVICE_STATUSES
from ..services.enquiry_service import status_histogram
from ..services.event_log_service import recent_events
from siteadmin.time_utils import time_ago, utcnow

TIME_RANGES = {"7days": 7, "30days": 30, "90days": 90}
DEFAULT_TIME_RANGE = "7days"

TREND_BUCKETS = 7
BUCKETING_MODES = ("fixed", "proportional")

# Placeholders used until there is enough data to compute the real value
AVG_RESPONSE_PLACEHOLDER = "2 hrs"
SUCCESS_RATE_PLACEHOLDER = 98

TOP_PRODUCTS_LIMIT = 4
TOP_PRODUCT_TREND_THRESHOLD = 30
TOP_PRODUCT_FULL_SCALE = 50
RECENT_CLIENTS_LIMIT = 3
ACTIVITY_LIMIT = 5

# event_type -> (type, icon, actionLabel)
_ACTIVITY_STYLE = {
    "enquiry.created": ("success", "CheckCircle", "View"),
    "enquiry.responded": ("info", "MessageSquare", "View"),
    "enquiry.status_changed": ("info", "Mail", "View"),
    "product.created": ("success", "Package", "View"),
    "product.updated": ("info", "Info", "View"),
    "product.bulk_updated": ("info", "Info", "View"),
    "product.deleted": ("warning", "Trash2", "View"),
    "category.created": ("info", "Tag", "View"),
    "category.renamed": ("info", "Tag", "View"),
    "category.deleted": ("warning", "Tag", "View"),
    "client.created": ("success", "Building2", "View"),
    "gallery.created": ("info", "Image", "View"),
    "brochure.activated": ("info", "FileText", "View"),
}


class DashboardError(Exception):
    """Raised when any dashboard sub-query fails; no partial payload is returned."""
    pass


def round_half_up(value: float) -> int:
    """Nearest integer, .5 rounds toward +infinity (2.5 -> 3, -2.5 -> -2)."""
    return int(math.floor(value + 0.5))


def percentage_change(current: int, previous: int) -> int:
    if previous == 0:
        return 100 if current > 0 else 0
    return round_half_up((current - previous) / previous * 100)


def resolve_time_range(raw: str | None) -> tuple[str, int]:
    """Unknown or missing ranges fall back to 7days."""
    key = raw if raw in TIME_RANGES else DEFAULT_TIME_RANGE
    return key, TIME_RANGES[key]


def trend_buckets(start_date: datetime, days: int, mode: str = "fixed") -> list[tuple[datetime, datetime]]:
    """
    Seven [lo, hi) windows, oldest first.

    fixed: bucket i is the calendar day start_date + i (so 30/90 day ranges
    only chart their first week).
    proportional: the whole window split into seven equal slices.
    """
    if mode == "proportional":
        span = timedelta(days=days) / TREND_BUCKETS
        return [
            (start_date + span * i, start_date + span * (i + 1))
            for i in range(TREND_BUCKETS)
        ]

    buckets = []
    for i in range(TREND_BUCKETS):
        day = (start_date + timedelta(days=i)).replace(hour=0, minute=0, second=0, microsecond=0)
        buckets.append((day, day + timedelta(days=1)))
    return buckets


def _count_created(model, lo: datetime, hi: datetime | None = None, *filters) -> int:
    q = db.session.query(func.count(model.id)).filter(model.created_at >= lo, *filters)
    if hi is not None:
        q = q.filter(model.created_at < hi)
    return int(q.scalar() or 0)


def _metric_card(label: str, model, windows: dict, buckets, *filters) -> dict:
    current = _count_created(model, windows["start"], None, *filters)
    previous = _count_created(model, windows["previous_start"], windows["start"], *filters)
    return {
        "label": label,
        "value": current,
        "change": current - previous,
        "percentage": percentage_change(current, previous),
        "trend": [_count_created(model, lo, hi, *filters) for lo, hi in buckets],
    }


def avg_response_time() -> str:
    """Mean hours from enquiry creation to its first response."""
    rows = (
        db.session.query(Enquiry.created_at, EnquiryResponse.created_at)
        .join(EnquiryResponse, EnquiryResponse.enquiry_id == Enquiry.id)
        .filter(EnquiryResponse.position == 0)
        .all()
    )
    if not rows:
        return AVG_RESPONSE_PLACEHOLDER

    total_hours = sum((responded - created).total_seconds() / 3600 for created, responded in rows)
    avg_hours = round_half_up(total_hours / len(rows))
    if avg_hours < 24:
        return f"{avg_hours} hrs"
    return f"{round_half_up(avg_hours / 24)} days"


def success_rate(histogram: dict) -> int:
    if histogram["total"] == 0:
        return SUCCESS_RATE_PLACEHOLDER
    return round_half_up(histogram["resolved"] / histogram["total"] * 100)


def top_products() -> list[dict]:
    """Products ranked by enquiries naming them (enquiry.product_interested == product.name)."""
    enquiry_count = func.count(Enquiry.id)
    rows = (
        db.session.query(Product.name, enquiry_count)
        .outerjoin(Enquiry, Enquiry.product_interested == Product.name)
        .group_by(Product.id, Product.name)
        .order_by(enquiry_count.desc(), Product.id.asc())
        .limit(TOP_PRODUCTS_LIMIT)
        .all()
    )
    return [
        {
            "name": name,
            "sales": int(count),
            "trend": "up" if count > TOP_PRODUCT_TREND_THRESHOLD else "down",
            "percentage": min(round_half_up(count / TOP_PRODUCT_FULL_SCALE * 100), 100),
        }
        for name, count in rows
    ]


def format_lakhs(value: float | None) -> str:
    if not value:
        return "N/A"
    return f"₹{value / 100000:.1f}L"


def recent_clients() -> list[dict]:
    rows = (
        db.session.query(Client)
        .order_by(Client.created_at.desc(), Client.id.desc())
        .limit(RECENT_CLIENTS_LIMIT)
        .all()
    )
    return [
        {
            "name": c.name,
            "status": c.status,
            "project": c.project or "General Enquiry",
            "value": format_lakhs(c.project_value),
        }
        for c in rows
    ]


def activity_feed(*, pending: int, now: datetime) -> list[dict]:
    """Latest domain events, with a pending-enquiry alert on top when needed."""
    feed = []

    if pending > 0:
        oldest_pending = (
            db.session.query(func.min(Enquiry.created_at))
            .filter(Enquiry.status == "new")
            .scalar()
        )
        feed.append({
            "type": "warning",
            "message": f"{pending} enquiries pending response",
            "detail": "Requires immediate attention",
            "time": time_ago(oldest_pending, now),
            "icon": "AlertCircle",
            "actionLabel": "Respond",
        })

    for ev in recent_events(limit=ACTIVITY_LIMIT):
        kind, icon, action = _ACTIVITY_STYLE.get(ev.event_type, ("info", "Info", "View"))
        feed.append({
            "type": kind,
            "message": ev.summary,
            "detail": ev.detail or "",
            "time": time_ago(ev.occurred_at, now),
            "icon": icon,
            "actionLabel": action,
            "entityType": ev.entity_type,
            "entityId": ev.entity_id,
        })
    return feed


def pending_tasks(pending: int) -> list[dict]:
    return [
        {
            "task": f"Respond to {pending} enquiries",
            "priority": "high" if pending > 5 else "medium",
            "dueDate": "Today",
        },
        {"task": "Update product catalog", "priority": "medium", "dueDate": "Tomorrow"},
        {"task": "Review gallery images", "priority": "low", "dueDate": "This week"},
    ]


def dashboard_stats(*, time_range: str | None = None, now: datetime | None = None, bucketing: str | None = None) -> dict:
    """
    Compose the management dashboard snapshot.

    Windows: current = [now - N days, now], previous = [now - 2N days, now - N days).
    All queries run in the request session; nothing is written.

    Raises:
        DashboardError: any query failed
    """
    range_key, days = resolve_time_range(time_range)
    now = now or utcnow()
    start = now - timedelta(days=days)
    windows = {"start": start, "previous_start": start - timedelta(days=days)}

    mode = bucketing or current_app.config.get("DASHBOARD_TREND_BUCKETING", "fixed")
    if mode not in BUCKETING_MODES:
        mode = "fixed"
    buckets = trend_buckets(start, days, mode)

    try:
        cards = [
            _metric_card("Total Products", Product, windows, buckets),
            _metric_card("Active Services", Service, windows, buckets, Service.status.in_(ACTIVE_SERVICE_STATUSES)),
            _metric_card("Gallery Images", GalleryImage, windows, buckets),
            _metric_card("New Enquiries", Enquiry, windows, buckets),
        ]

        total_clients = db.session.query(func.count(Client.id)).filter(Client.status == "Active").scalar() or 0
        projects_done = db.session.query(func.count(Client.id)).filter(Client.project_completed.is_(True)).scalar() or 0
        client_rating = db.session.query(func.avg(Client.rating)).scalar()
        pending = db.session.query(func.count(Enquiry.id)).filter(Enquiry.status == "new").scalar() or 0

        histogram = status_histogram()
        avg_response = avg_response_time()
        rate = success_rate(histogram)
        leaders = top_products()
        clients = recent_clients()
        activity = activity_feed(pending=pending, now=now)
    except SQLAlchemyError as exc:
        current_app.logger.exception("Dashboard aggregation failed (timeRange=%s)", range_key)
        raise DashboardError("Failed to get dashboard stats") from exc

    enquiry_card = cards[3]

    return {
        "timeRange": range_key,
        "trendBucketing": mode,
        "stats": cards,
        "metrics": [
            {"label": "Total Clients", "value": f"{total_clients}+", "icon": "Users"},
            {"label": "Projects Done", "value": f"{projects_done}+", "icon": "Award"},
            {"label": "Avg. Response", "value": avg_response, "icon": "Clock"},
            {"label": "Success Rate", "value": f"{rate}%", "icon": "Target"},
        ],
        "topProducts": leaders,
        "recentClients": clients,
        "recentActivity": activity,
        "pendingTasks": pending_tasks(pending),
        "performanceMetrics": {
            "projectsCompleted": int(projects_done),
            "enquiryGrowth": enquiry_card["percentage"],
            "clientRating": round(float(client_rating), 1) if client_rating is not None else 0,
        },
        "enquiryStats": histogram,
    }
