# Overview: Flask API routes for products; parses input and returns JSON responses.

# backend/siteadmin/routes/products.py
"""
Product management routes.

SECURITY: Reads are public (the website lists products); writes require an
admin session. View/download/rating counters are public too.
"""
from flask import Blueprint, request

from ..services import products_service
from ..models import Product
from ..models.catalog import PRODUCT_STATUSES, UNCATEGORIZED
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_product,
    parse_id,
    parse_id_list,
    parse_bool_arg,
    parse_pagination,
    ValidationError,
    ConflictError,
)
from ..decorators import require_auth, current_user_id
from ..responses import ok, fail

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields=set(products_service.PRODUCT_MUTABLE_FIELDS),
    required_on_create={"name"},
    choices={"status": PRODUCT_STATUSES},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


def _validated(payload: dict, *, partial: bool) -> dict:
    # A null category means "no category", same as leaving it out
    payload = {k: v for k, v in payload.items() if not (k == "category" and v is None)}
    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=partial)
    enforce_rules_product(patch)
    return patch


@products_bp.get("")
def list_products():
    """
    Query params:
    - category, status: exact match ("all" = any category)
    - featured, certified, popular: "true"/"false"
    - search: substring over name, description, sku, tags
    - sortBy (default createdAt), order (asc|desc)
    - page (default 1), limit (default 100)
    """
    try:
        page, limit = parse_pagination(request.args, default_limit=100)
    except ValidationError as e:
        return fail(str(e), 400)

    result = products_service.list_products(
        category=request.args.get("category"),
        status=request.args.get("status"),
        featured=parse_bool_arg(request.args.get("featured")),
        certified=parse_bool_arg(request.args.get("certified")),
        popular=parse_bool_arg(request.args.get("popular")),
        search=request.args.get("search"),
        sort_by=request.args.get("sortBy", "createdAt"),
        order=request.args.get("order", "desc"),
        page=page,
        limit=limit,
    )
    return ok(result["items"], count=result["count"], pagination=result["pagination"])


@products_bp.get("/stats/categories")
def category_stats_route():
    stats = products_service.category_stats()
    return ok(stats, count=len(stats))


@products_bp.get("/categories/list")
def category_labels_route():
    labels = products_service.category_labels()
    return ok(labels, count=len(labels["all"]))


@products_bp.get("/<product_id>")
def get_product_route(product_id):
    try:
        pid = parse_id(product_id, "product")
    except ValidationError as e:
        return fail(str(e), 400)

    product = products_service.get_product(product_id=pid)
    if not product:
        return fail("Product not found", 404)
    return ok(product)


@products_bp.post("")
@require_auth
def create_product_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = _validated(payload, partial=False)
        created = products_service.create_product(patch=patch, actor_user_id=current_user_id())
    except ConflictError as e:
        return fail(str(e), 400)
    except ValidationError as e:
        return fail(str(e), 400)

    return ok(created, message="Product created successfully", status=201)


@products_bp.put("/<product_id>")
@require_auth
def replace_product_route(product_id):
    """Full update: name is required and an omitted category resets to Uncategorized."""
    payload = request.get_json(silent=True) or {}

    try:
        pid = parse_id(product_id, "product")
        patch = _validated(payload, partial=False)
        patch.setdefault("category", UNCATEGORIZED)
        updated = products_service.update_product(product_id=pid, patch=patch, actor_user_id=current_user_id())
    except ConflictError as e:
        return fail(str(e), 400)
    except ValidationError as e:
        return fail(str(e), 400)

    if not updated:
        return fail("Product not found", 404)
    return ok(updated, message="Product updated successfully")


@products_bp.patch("/<product_id>")
@require_auth
def patch_product_route(product_id):
    payload = request.get_json(silent=True) or {}

    try:
        pid = parse_id(product_id, "product")
        patch = _validated(payload, partial=True)
        updated = products_service.update_product(product_id=pid, patch=patch, actor_user_id=current_user_id())
    except ConflictError as e:
        return fail(str(e), 400)
    except ValidationError as e:
        return fail(str(e), 400)

    if not updated:
        return fail("Product not found", 404)
    return ok(updated, message="Product updated")


@products_bp.delete("/<product_id>")
@require_auth
def delete_product_route(product_id):
    try:
        pid = parse_id(product_id, "product")
    except ValidationError as e:
        return fail(str(e), 400)

    if not products_service.delete_product(product_id=pid, actor_user_id=current_user_id()):
        return fail("Product not found", 404)
    return ok({"id": pid}, message="Product deleted successfully")


@products_bp.patch("/<product_id>/toggle/<flag>")
@require_auth
def toggle_product_route(product_id, flag):
    try:
        pid = parse_id(product_id, "product")
        product = products_service.toggle_flag(product_id=pid, flag=flag)
    except ValidationError as e:
        return fail(str(e), 400)

    if not product:
        return fail("Product not found", 404)

    if flag == "status":
        message = f"Product status changed to {product['status']}"
    else:
        message = f"Product {flag} set to {str(product[flag]).lower()}"
    return ok(product, message=message)


@products_bp.post("/bulk-delete")
@require_auth
def bulk_delete_route():
    payload = request.get_json(silent=True) or {}
    try:
        ids = parse_id_list(payload.get("ids"), "product")
    except ValidationError as e:
        return fail(str(e), 400)

    result = products_service.bulk_delete(product_ids=ids, actor_user_id=current_user_id())
    return ok(result, message=f"Successfully deleted {result['deletedCount']} products")


@products_bp.post("/bulk-update")
@require_auth
def bulk_update_route():
    payload = request.get_json(silent=True) or {}
    try:
        ids = parse_id_list(payload.get("ids"), "product")
        patch = _validated(payload.get("updates") or {}, partial=True)
        result = products_service.bulk_update(product_ids=ids, patch=patch, actor_user_id=current_user_id())
    except ValidationError as e:
        return fail(str(e), 400)

    return ok(result, message=f"{result['modifiedCount']} products updated")


@products_bp.post("/<product_id>/views")
def increment_views_route(product_id):
    try:
        pid = parse_id(product_id, "product")
    except ValidationError as e:
        return fail(str(e), 400)

    views = products_service.increment_counter(product_id=pid, field="views")
    if views is None:
        return fail("Product not found", 404)
    return ok(message="Views incremented", views=views)


@products_bp.post("/<product_id>/downloads")
def increment_downloads_route(product_id):
    try:
        pid = parse_id(product_id, "product")
    except ValidationError as e:
        return fail(str(e), 400)

    downloads = products_service.increment_counter(product_id=pid, field="downloads")
    if downloads is None:
        return fail("Product not found", 404)
    return ok(message="Downloads incremented", downloads=downloads)


@products_bp.post("/<product_id>/rating")
def rate_product_route(product_id):
    payload = request.get_json(silent=True) or {}
    try:
        pid = parse_id(product_id, "product")
        result = products_service.rate_product(product_id=pid, rating=payload.get("rating"))
    except ValidationError as e:
        return fail(str(e), 400)

    if result is None:
        return fail("Product not found", 404)
    return ok(message="Rating updated", **result)
