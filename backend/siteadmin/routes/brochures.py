# Overview: Flask API routes for brochures; parses input and returns JSON responses.

# backend/siteadmin/routes/brochures.py
"""
Brochure routes.

Public: GET /active (counts a view) and track-download.
Admin: CRUD, activate/deactivate, stats.
"""
from flask import Blueprint, request

from ..services import brochure_service
from ..models import Brochure
from ..models.content import BROCHURE_CATEGORIES
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    parse_id,
    parse_bool_arg,
    parse_pagination,
    ValidationError,
    ConflictError,
)
from ..decorators import require_auth, current_user_id
from ..responses import ok, fail

BROCHURE_POLICY = ModelValidationPolicy(
    writable_fields=set(brochure_service.BROCHURE_MUTABLE_FIELDS),
    required_on_create={"title", "file_name", "file_url"},
    choices={"category": BROCHURE_CATEGORIES},
)

brochures_bp = Blueprint("brochures", __name__, url_prefix="/api/brochures")


@brochures_bp.get("/active")
def active_brochure_route():
    brochure = brochure_service.get_active_brochure()
    if not brochure:
        return fail("No active brochure available at the moment", 404)
    return ok(brochure)


@brochures_bp.route("/<brochure_id>/track-download", methods=["POST", "PATCH"])
def track_download_route(brochure_id):
    try:
        bid = parse_id(brochure_id, "brochure")
    except ValidationError as e:
        return fail(str(e), 400)

    result = brochure_service.track_download(bid)
    if not result:
        return fail("Brochure not found", 404)
    return ok(result, message="Download tracked successfully")


@brochures_bp.get("")
@require_auth
def list_brochures_route():
    try:
        page, limit = parse_pagination(request.args, default_limit=20)
    except ValidationError as e:
        return fail(str(e), 400)

    result = brochure_service.list_brochures(
        category=request.args.get("category"),
        search=request.args.get("search"),
        is_active=parse_bool_arg(request.args.get("isActive")),
        page=page,
        limit=limit,
    )
    return ok(result["items"], count=len(result["items"]), pagination=result["pagination"])


@brochures_bp.get("/stats")
@require_auth
def brochure_stats_route():
    return ok(brochure_service.brochure_stats())


@brochures_bp.get("/<brochure_id>")
@require_auth
def get_brochure_route(brochure_id):
    try:
        bid = parse_id(brochure_id, "brochure")
    except ValidationError as e:
        return fail(str(e), 400)

    brochure = brochure_service.get_brochure(bid)
    if not brochure:
        return fail("Brochure not found", 404)
    return ok(brochure)


@brochures_bp.post("")
@require_auth
def create_brochure_route():
    payload = dict(request.get_json(silent=True) or {})
    activate = bool(payload.pop("isActive", False))

    try:
        patch = validate_payload(model=Brochure, payload=payload, policy=BROCHURE_POLICY, partial=False)
        created = brochure_service.create_brochure(
            patch=patch,
            uploaded_by=current_user_id(),
            activate=activate,
        )
    except ConflictError as e:
        return fail(str(e), 400)
    except ValidationError as e:
        return fail(str(e), 400)

    return ok(created, message="Brochure uploaded successfully", status=201)


@brochures_bp.put("/<brochure_id>")
@require_auth
def update_brochure_route(brochure_id):
    payload = request.get_json(silent=True) or {}
    try:
        bid = parse_id(brochure_id, "brochure")
        patch = validate_payload(model=Brochure, payload=payload, policy=BROCHURE_POLICY, partial=True)
        brochure = brochure_service.update_brochure(brochure_id=bid, patch=patch)
    except ConflictError as e:
        return fail(str(e), 400)
    except ValidationError as e:
        return fail(str(e), 400)

    if not brochure:
        return fail("Brochure not found", 404)
    return ok(brochure, message="Brochure updated successfully")


@brochures_bp.patch("/<brochure_id>/activate")
@require_auth
def activate_brochure_route(brochure_id):
    try:
        bid = parse_id(brochure_id, "brochure")
    except ValidationError as e:
        return fail(str(e), 400)

    brochure = brochure_service.activate_brochure(bid)
    if not brochure:
        return fail("Brochure not found", 404)
    return ok(brochure, message="Brochure activated successfully")


@brochures_bp.patch("/<brochure_id>/deactivate")
@require_auth
def deactivate_brochure_route(brochure_id):
    try:
        bid = parse_id(brochure_id, "brochure")
    except ValidationError as e:
        return fail(str(e), 400)

    brochure = brochure_service.deactivate_brochure(bid)
    if not brochure:
        return fail("Brochure not found", 404)
    return ok(brochure, message="Brochure deactivated successfully")


@brochures_bp.delete("/<brochure_id>")
@require_auth
def delete_brochure_route(brochure_id):
    try:
        bid = parse_id(brochure_id, "brochure")
    except ValidationError as e:
        return fail(str(e), 400)

    if not brochure_service.delete_brochure(bid):
        return fail("Brochure not found", 404)
    return ok(message="Brochure deleted successfully")
