# Overview: Flask API routes for enquiries; parses input and returns JSON responses.

# backend/siteadmin/routes/enquiries.py
"""
Enquiry routes.

POST /api/enquiries is the public contact form. Everything else is admin-only.
Responses are appended one at a time through POST /<id>/responses.
"""
from flask import Blueprint, Response, g, request

from ..services import enquiry_service
from ..models import Enquiry
from ..models.enquiries import ENQUIRY_PRIORITIES, ENQUIRY_SOURCES, ENQUIRY_STATUSES
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_enquiry,
    parse_id,
    parse_id_list,
    parse_bool_arg,
    coerce_bool,
    parse_pagination,
    ValidationError,
)
from ..decorators import require_auth, current_user_id
from ..responses import ok, fail
from siteadmin.time_utils import utcnow

CREATE_POLICY = ModelValidationPolicy(
    writable_fields={"name", "email", "phone", "company", "subject", "message", "product_interested", "source"},
    required_on_create={"name", "email", "phone", "subject", "message"},
    choices={"source": ENQUIRY_SOURCES},
)

UPDATE_POLICY = ModelValidationPolicy(
    writable_fields=set(enquiry_service.ENQUIRY_UPDATE_FIELDS),
    choices={"status": ENQUIRY_STATUSES, "priority": ENQUIRY_PRIORITIES},
)

BULK_POLICY = ModelValidationPolicy(
    writable_fields=set(enquiry_service.ENQUIRY_BULK_FIELDS),
    choices={"status": ENQUIRY_STATUSES, "priority": ENQUIRY_PRIORITIES},
)

enquiries_bp = Blueprint("enquiries", __name__, url_prefix="/api/enquiries")


@enquiries_bp.post("")
def create_enquiry_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Enquiry, payload=payload, policy=CREATE_POLICY, partial=False)
        enforce_rules_enquiry(patch)
    except ValidationError as e:
        return fail(str(e), 400)

    created = enquiry_service.create_enquiry(
        patch=patch,
        ip_address=request.remote_addr,
        user_agent=request.headers.get("User-Agent"),
    )
    return ok(
        created,
        message="Enquiry submitted successfully. We will get back to you soon!",
        status=201,
    )


@enquiries_bp.get("")
@require_auth
def list_enquiries_route():
    """
    Query params:
    - search: substring over name, email, subject, message, company
    - status, priority: exact match ("all" = no filter)
    - isRead, isStarred: "true"/"false"
    - sortBy (default createdAt), sortOrder (asc|desc)
    - page (default 1), limit (default 10)
    """
    try:
        page, limit = parse_pagination(request.args, default_limit=10)
    except ValidationError as e:
        return fail(str(e), 400)

    result = enquiry_service.list_enquiries(
        search=request.args.get("search"),
        status=request.args.get("status"),
        priority=request.args.get("priority"),
        is_read=parse_bool_arg(request.args.get("isRead")),
        is_starred=parse_bool_arg(request.args.get("isStarred")),
        sort_by=request.args.get("sortBy", "createdAt"),
        sort_order=request.args.get("sortOrder", "desc"),
        page=page,
        limit=limit,
    )
    return ok(result["items"], stats=result["stats"], pagination=result["pagination"])


@enquiries_bp.get("/stats")
@require_auth
def enquiry_stats_route():
    return ok(enquiry_service.status_histogram())


@enquiries_bp.get("/export")
@require_auth
def export_route():
    fmt = (request.args.get("format") or "csv").lower()

    if fmt == "json":
        rows = [e.to_dict(include_responses=False) for e in enquiry_service.export_rows()]
        return ok(rows, count=len(rows))
    if fmt != "csv":
        return fail("format must be csv or json", 400)

    filename = f"enquiries-{utcnow().strftime('%Y%m%d')}.csv"
    return Response(
        enquiry_service.export_csv(),
        mimetype="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@enquiries_bp.put("/bulk")
@require_auth
def bulk_update_route():
    payload = request.get_json(silent=True) or {}
    try:
        ids = parse_id_list(payload.get("ids"), "enquiry")
        patch = validate_payload(
            model=Enquiry,
            payload=payload.get("updates") or {},
            policy=BULK_POLICY,
            partial=True,
        )
    except ValidationError as e:
        return fail(str(e), 400)

    result = enquiry_service.bulk_update(enquiry_ids=ids, patch=patch)
    return ok(result, message=f"{result['modifiedCount']} enquiries updated")


@enquiries_bp.post("/bulk/delete")
@require_auth
def bulk_delete_route():
    payload = request.get_json(silent=True) or {}
    try:
        ids = parse_id_list(payload.get("ids"), "enquiry")
    except ValidationError as e:
        return fail(str(e), 400)

    result = enquiry_service.bulk_delete(enquiry_ids=ids)
    return ok(result, message=f"{result['deletedCount']} enquiries deleted")


@enquiries_bp.get("/<enquiry_id>")
@require_auth
def get_enquiry_route(enquiry_id):
    try:
        eid = parse_id(enquiry_id, "enquiry")
    except ValidationError as e:
        return fail(str(e), 400)

    enquiry = enquiry_service.get_enquiry(enquiry_id=eid)
    if not enquiry:
        return fail("Enquiry not found", 404)
    return ok(enquiry)


@enquiries_bp.put("/<enquiry_id>")
@require_auth
def update_enquiry_route(enquiry_id):
    payload = request.get_json(silent=True) or {}
    try:
        eid = parse_id(enquiry_id, "enquiry")
        patch = validate_payload(model=Enquiry, payload=payload, policy=UPDATE_POLICY, partial=True)
    except ValidationError as e:
        return fail(str(e), 400)

    enquiry = enquiry_service.update_enquiry(enquiry_id=eid, patch=patch)
    if not enquiry:
        return fail("Enquiry not found", 404)
    return ok(enquiry, message="Enquiry updated successfully")


@enquiries_bp.delete("/<enquiry_id>")
@require_auth
def delete_enquiry_route(enquiry_id):
    try:
        eid = parse_id(enquiry_id, "enquiry")
    except ValidationError as e:
        return fail(str(e), 400)

    if not enquiry_service.delete_enquiry(enquiry_id=eid):
        return fail("Enquiry not found", 404)
    return ok(message="Enquiry deleted successfully")


@enquiries_bp.post("/<enquiry_id>/responses")
@require_auth
def add_response_route(enquiry_id):
    payload = request.get_json(silent=True) or {}
    try:
        eid = parse_id(enquiry_id, "enquiry")
        enquiry = enquiry_service.add_response(
            enquiry_id=eid,
            message=payload.get("message"),
            send_email=coerce_bool("sendEmail", payload.get("sendEmail", False)),
            responded_by=current_user_id(),
            responded_by_name=g.current_user.name,
        )
    except ValidationError as e:
        return fail(str(e), 400)

    if not enquiry:
        return fail("Enquiry not found", 404)
    return ok(enquiry, message="Response added successfully")


@enquiries_bp.patch("/<enquiry_id>/read")
@require_auth
def toggle_read_route(enquiry_id):
    try:
        eid = parse_id(enquiry_id, "enquiry")
    except ValidationError as e:
        return fail(str(e), 400)

    enquiry = enquiry_service.toggle_flag(enquiry_id=eid, flag="is_read")
    if not enquiry:
        return fail("Enquiry not found", 404)
    return ok(enquiry, message=f"Enquiry marked as {'read' if enquiry['isRead'] else 'unread'}")


@enquiries_bp.patch("/<enquiry_id>/star")
@require_auth
def toggle_star_route(enquiry_id):
    try:
        eid = parse_id(enquiry_id, "enquiry")
    except ValidationError as e:
        return fail(str(e), 400)

    enquiry = enquiry_service.toggle_flag(enquiry_id=eid, flag="is_starred")
    if not enquiry:
        return fail("Enquiry not found", 404)
    return ok(enquiry, message=f"Enquiry {'starred' if enquiry['isStarred'] else 'unstarred'}")
