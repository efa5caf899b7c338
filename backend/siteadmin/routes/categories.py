# Overview: Flask API routes for categories; parses input and returns JSON responses.

# backend/siteadmin/routes/categories.py
"""
Category routes.

Product-type categories carry a usageCount maintained by the product write
paths. Renames and deletes fan out to the products table; /reconcile repairs
drifted counters.
"""
from flask import Blueprint, request

from ..services import category_service
from ..services import category_usage_service
from ..validation import normalize_keys, parse_id, ValidationError, ConflictError
from ..decorators import require_auth, current_user_id
from ..responses import ok, fail

categories_bp = Blueprint("categories", __name__, url_prefix="/api/categories")


def _category_type() -> str:
    return (request.args.get("type") or category_usage_service.PRODUCT_TYPE).strip().lower()


@categories_bp.get("")
def list_categories_route():
    try:
        result = category_service.list_categories(category_type=_category_type())
    except ValidationError as e:
        return fail(str(e), 400)
    return ok(result["items"], count=len(result["items"]), stats=result["stats"])


@categories_bp.get("/usage")
def usage_report_route():
    try:
        report = category_service.usage_report(category_type=_category_type())
    except ValidationError as e:
        return fail(str(e), 400)
    return ok(report, count=len(report))


@categories_bp.get("/<category_id>")
def get_category_route(category_id):
    try:
        cid = parse_id(category_id, "category")
    except ValidationError as e:
        return fail(str(e), 400)

    category = category_service.get_category(cid)
    if not category:
        return fail("Category not found", 404)
    return ok(category.to_dict())


@categories_bp.post("")
@require_auth
def create_category_route():
    data = normalize_keys(request.get_json(silent=True) or {})

    try:
        created = category_service.create_category(
            name=data.get("name"),
            category_type=(data.get("type") or category_usage_service.PRODUCT_TYPE).strip().lower(),
            description=data.get("description"),
            image_url=data.get("image_url"),
            created_by=str(current_user_id()),
        )
    except ConflictError as e:
        return fail(str(e), 400)
    except ValidationError as e:
        return fail(str(e), 400)

    return ok(created, message="Category created successfully", status=201)


@categories_bp.route("/<category_id>", methods=["PUT", "PATCH"])
@require_auth
def update_category_route(category_id):
    data = normalize_keys(request.get_json(silent=True) or {})

    try:
        cid = parse_id(category_id, "category")
        result = category_service.update_category(
            category_id=cid,
            name=data.get("name"),
            description=data.get("description"),
            image_url=data.get("image_url"),
        )
    except ConflictError as e:
        return fail(str(e), 400)
    except ValidationError as e:
        return fail(str(e), 400)

    if result is None:
        return fail("Category not found", 404)

    category, relabelled = result
    message = "Category updated successfully"
    if relabelled:
        message = f"Category updated successfully. {relabelled} products updated"
    return ok(category, message=message, productsUpdated=relabelled)


@categories_bp.delete("/<category_id>")
@require_auth
def delete_category_route(category_id):
    try:
        cid = parse_id(category_id, "category")
    except ValidationError as e:
        return fail(str(e), 400)

    info = category_service.delete_category(category_id=cid)
    if info is None:
        return fail("Category not found", 404)
    return ok(message="Category deleted successfully", info=info)


@categories_bp.post("/reconcile")
@require_auth
def reconcile_route():
    data = request.get_json(silent=True) or {}
    result = category_usage_service.reconcile_usage_counts(
        create_missing=bool(data.get("createMissing", True)),
    )
    return ok(
        result,
        message=f"Checked {result['checked']} categories, corrected {len(result['corrected'])}",
    )
