# Overview: Flask API routes for the services catalogue; parses input and returns JSON responses.

from flask import Blueprint, request

from ..services import content_service
from ..models import Service
from ..models.content import SERVICE_CATEGORIES, SERVICE_STATUSES
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_service,
    parse_id,
    parse_id_list,
    parse_bool_arg,
    parse_pagination,
    ValidationError,
)
from ..decorators import require_auth
from ..responses import ok, fail

SERVICE_POLICY = ModelValidationPolicy(
    writable_fields=set(content_service.SERVICE_MUTABLE_FIELDS),
    required_on_create={"title", "description"},
    choices={"status": SERVICE_STATUSES, "category": SERVICE_CATEGORIES},
)

services_bp = Blueprint("services", __name__, url_prefix="/api/services")


def _validated(payload: dict, *, partial: bool) -> dict:
    patch = validate_payload(model=Service, payload=payload, policy=SERVICE_POLICY, partial=partial)
    enforce_rules_service(patch)
    return patch


@services_bp.get("")
def list_services_route():
    try:
        page, limit = parse_pagination(request.args, default_limit=10)
    except ValidationError as e:
        return fail(str(e), 400)

    result = content_service.list_services(
        status=request.args.get("status"),
        featured=parse_bool_arg(request.args.get("featured")),
        search=request.args.get("search"),
        sort_by=request.args.get("sortBy", "createdAt"),
        order=request.args.get("order", "desc"),
        page=page,
        limit=limit,
    )
    return ok(result["items"], stats=result["stats"], pagination=result["pagination"])


@services_bp.get("/stats")
def service_stats_route():
    return ok(content_service.service_stats())


@services_bp.get("/<service_id>")
def get_service_route(service_id):
    try:
        sid = parse_id(service_id, "service")
    except ValidationError as e:
        return fail(str(e), 400)

    service = content_service.get_service(sid)
    if not service:
        return fail("Service not found", 404)
    return ok(service)


@services_bp.post("")
@require_auth
def create_service_route():
    payload = request.get_json(silent=True) or {}
    try:
        patch = _validated(payload, partial=False)
    except ValidationError as e:
        return fail(str(e), 400)

    return ok(content_service.create_service(patch=patch), message="Service created successfully", status=201)


@services_bp.put("/<service_id>")
@require_auth
def update_service_route(service_id):
    payload = request.get_json(silent=True) or {}
    try:
        sid = parse_id(service_id, "service")
        patch = _validated(payload, partial=True)
    except ValidationError as e:
        return fail(str(e), 400)

    service = content_service.update_service(service_id=sid, patch=patch)
    if not service:
        return fail("Service not found", 404)
    return ok(service, message="Service updated successfully")


@services_bp.delete("/<service_id>")
@require_auth
def delete_service_route(service_id):
    try:
        sid = parse_id(service_id, "service")
    except ValidationError as e:
        return fail(str(e), 400)

    if not content_service.delete_service(sid):
        return fail("Service not found", 404)
    return ok(message="Service deleted successfully")


@services_bp.post("/bulk-delete")
@require_auth
def bulk_delete_services_route():
    payload = request.get_json(silent=True) or {}
    try:
        ids = parse_id_list(payload.get("ids"), "service")
    except ValidationError as e:
        return fail(str(e), 400)

    result = content_service.bulk_delete_services(ids)
    return ok(result, message=f"{result['deletedCount']} services deleted successfully")


@services_bp.patch("/<service_id>/status")
@require_auth
def toggle_status_route(service_id):
    try:
        sid = parse_id(service_id, "service")
    except ValidationError as e:
        return fail(str(e), 400)

    service = content_service.toggle_service_status(sid)
    if not service:
        return fail("Service not found", 404)
    return ok(service, message=f"Service {service['status'].lower()}")


@services_bp.patch("/<service_id>/featured")
@require_auth
def toggle_featured_route(service_id):
    try:
        sid = parse_id(service_id, "service")
    except ValidationError as e:
        return fail(str(e), 400)

    service = content_service.toggle_service_featured(sid)
    if not service:
        return fail("Service not found", 404)
    return ok(service, message=f"Service {'featured' if service['featured'] else 'unfeatured'}")
