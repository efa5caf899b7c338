# Overview: Flask API routes for clients; parses input and returns JSON responses.

# backend/siteadmin/routes/clients.py
"""
Client portfolio routes.

Client names are unique (case-insensitive); a duplicate is reported as a 400
like any other validation problem.
"""
from flask import Blueprint, request

from ..services import content_service
from ..models import Client
from ..models.content import CLIENT_STATUSES
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_client,
    parse_id,
    parse_id_list,
    parse_pagination,
    ValidationError,
    ConflictError,
)
from ..decorators import require_auth
from ..responses import ok, fail

CLIENT_POLICY = ModelValidationPolicy(
    writable_fields=set(content_service.CLIENT_MUTABLE_FIELDS),
    required_on_create={"name"},
    choices={"status": CLIENT_STATUSES},
)

clients_bp = Blueprint("clients", __name__, url_prefix="/api/clients")


def _validated(payload: dict, *, partial: bool) -> dict:
    patch = validate_payload(model=Client, payload=payload, policy=CLIENT_POLICY, partial=partial)
    enforce_rules_client(patch)
    return patch


@clients_bp.get("")
def list_clients_route():
    try:
        page, limit = parse_pagination(request.args, default_limit=50)
    except ValidationError as e:
        return fail(str(e), 400)

    result = content_service.list_clients(
        search=request.args.get("search"),
        status=request.args.get("status"),
        since=request.args.get("since"),
        sort_by=request.args.get("sortBy", "createdAt"),
        sort_order=request.args.get("sortOrder", "desc"),
        page=page,
        limit=limit,
    )
    return ok(result["items"], stats=result["stats"], pagination=result["pagination"])


@clients_bp.get("/stats")
def client_stats_route():
    return ok(content_service.client_stats())


@clients_bp.get("/<client_id>")
def get_client_route(client_id):
    try:
        cid = parse_id(client_id, "client")
    except ValidationError as e:
        return fail(str(e), 400)

    client = content_service.get_client(cid)
    if not client:
        return fail("Client not found", 404)
    return ok(client)


@clients_bp.post("")
@require_auth
def create_client_route():
    payload = request.get_json(silent=True) or {}
    try:
        patch = _validated(payload, partial=False)
        created = content_service.create_client(patch=patch)
    except ConflictError as e:
        return fail(str(e), 400)
    except ValidationError as e:
        return fail(str(e), 400)

    return ok(created, message="Client created successfully", status=201)


@clients_bp.put("/<client_id>")
@require_auth
def update_client_route(client_id):
    payload = request.get_json(silent=True) or {}
    try:
        cid = parse_id(client_id, "client")
        patch = _validated(payload, partial=True)
        client = content_service.update_client(client_id=cid, patch=patch)
    except ConflictError as e:
        return fail(str(e), 400)
    except ValidationError as e:
        return fail(str(e), 400)

    if not client:
        return fail("Client not found", 404)
    return ok(client, message="Client updated successfully")


@clients_bp.delete("/<client_id>")
@require_auth
def delete_client_route(client_id):
    try:
        cid = parse_id(client_id, "client")
    except ValidationError as e:
        return fail(str(e), 400)

    if not content_service.delete_client(cid):
        return fail("Client not found", 404)
    return ok(message="Client deleted successfully")


@clients_bp.post("/bulk-delete")
@require_auth
def bulk_delete_clients_route():
    payload = request.get_json(silent=True) or {}
    try:
        ids = parse_id_list(payload.get("ids"), "client")
    except ValidationError as e:
        return fail(str(e), 400)

    result = content_service.bulk_delete_clients(ids)
    return ok(result, message=f"{result['deletedCount']} clients deleted successfully")


@clients_bp.patch("/status")
@require_auth
def update_client_status_route():
    payload = request.get_json(silent=True) or {}
    try:
        ids = parse_id_list(payload.get("ids"), "client")
        result = content_service.update_client_status(client_ids=ids, status=payload.get("status"))
    except ValidationError as e:
        return fail(str(e), 400)

    return ok(result, message=f"{result['modifiedCount']} clients updated to {payload['status']}")
