# Overview: Flask API routes for gallery images; parses input and returns JSON responses.

from flask import Blueprint, request

from ..services import content_service
from ..models import GalleryImage
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    parse_id,
    parse_pagination,
    ValidationError,
)
from ..decorators import require_auth
from ..responses import ok, fail

GALLERY_POLICY = ModelValidationPolicy(
    writable_fields=set(content_service.GALLERY_MUTABLE_FIELDS),
    required_on_create={"title", "url"},
)

gallery_bp = Blueprint("gallery", __name__, url_prefix="/api/gallery")


@gallery_bp.get("")
def list_gallery_route():
    try:
        page, limit = parse_pagination(request.args, default_limit=50)
    except ValidationError as e:
        return fail(str(e), 400)

    result = content_service.list_gallery(category=request.args.get("category"), page=page, limit=limit)
    return ok(result["items"], count=len(result["items"]), pagination=result["pagination"])


@gallery_bp.get("/categories")
def gallery_categories_route():
    return ok(content_service.gallery_category_counts())


@gallery_bp.get("/<image_id>")
def get_gallery_image_route(image_id):
    try:
        gid = parse_id(image_id, "image")
    except ValidationError as e:
        return fail(str(e), 400)

    image = content_service.get_gallery_image(gid)
    if not image:
        return fail("Image not found", 404)
    return ok(image)


@gallery_bp.post("")
@require_auth
def create_gallery_image_route():
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=GalleryImage, payload=payload, policy=GALLERY_POLICY, partial=False)
    except ValidationError as e:
        return fail(str(e), 400)

    return ok(content_service.create_gallery_image(patch=patch), message="Image uploaded successfully", status=201)


@gallery_bp.put("/<image_id>")
@require_auth
def update_gallery_image_route(image_id):
    payload = request.get_json(silent=True) or {}
    try:
        gid = parse_id(image_id, "image")
        patch = validate_payload(model=GalleryImage, payload=payload, policy=GALLERY_POLICY, partial=True)
    except ValidationError as e:
        return fail(str(e), 400)

    image = content_service.update_gallery_image(image_id=gid, patch=patch)
    if not image:
        return fail("Image not found", 404)
    return ok(image, message="Image updated successfully")


@gallery_bp.delete("/<image_id>")
@require_auth
def delete_gallery_image_route(image_id):
    try:
        gid = parse_id(image_id, "image")
    except ValidationError as e:
        return fail(str(e), 400)

    if not content_service.delete_gallery_image(gid):
        return fail("Image not found", 404)
    return ok(message="Image deleted successfully")
