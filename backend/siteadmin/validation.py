from __future__ import annotations
from datetime import datetime
from siteadmin.time_utils import parse_iso_datetime

import re
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, Float, Integer, String, Text
from sqlalchemy.orm import DeclarativeMeta


MAX_PRICE = 9_999_999.99

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


class ValidationError(ValueError):
    """400-level input problem."""


class ConflictError(ValueError):
    """Duplicate unique key (SKU, client name, brochure title, category name)."""


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    - choices: enum-like fields and their allowed values
    """
    writable_fields: set[str]
    required_on_create: set[str] = field(default_factory=set)
    choices: dict[str, tuple] = field(default_factory=dict)


def to_snake(key: str) -> str:
    """imageUrl -> image_url; already-snake keys pass through."""
    return _CAMEL_BOUNDARY.sub("_", key).lower()


def normalize_keys(payload: dict) -> dict:
    return {to_snake(k): v for k, v in payload.items()}


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def coerce_bool(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "1", "yes", "on"):
            return True
        if lowered in ("false", "0", "no", "off", ""):
            return False
        raise ValidationError(f"{key} must be a boolean")
    return bool(value)


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    # Integers - strict validation to reject floats and scientific notation
    if isinstance(coltype, Integer):
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        if isinstance(value, str):
            stripped = value.strip()
            if not stripped or "e" in stripped.lower() or "." in stripped:
                raise ValidationError(f"{col.key} must be an integer")
            try:
                return int(stripped)
            except ValueError:
                raise ValidationError(f"{col.key} must be an integer")
        if isinstance(value, float) and value.is_integer():
            return int(value)
        raise ValidationError(f"{col.key} must be an integer")

    if isinstance(coltype, Float):
        if isinstance(value, bool):
            raise ValidationError(f"{col.key} must be a number")
        if isinstance(value, (int, float)):
            return float(value)
        if isinstance(value, str):
            try:
                return float(value.strip())
            except ValueError:
                raise ValidationError(f"{col.key} must be a number")
        raise ValidationError(f"{col.key} must be a number")

    if isinstance(coltype, Boolean):
        return coerce_bool(col.key, value)

    # Datetimes (accept ISO-8601 strings; normalize to UTC)
    if isinstance(coltype, DateTime):
        if isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                dt = parse_iso_datetime(value)
            except ValueError:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            if dt is None:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            return dt
        raise ValidationError(f"{col.key} must be a datetime")

    # JSON columns hold lists of short strings (tags, features)
    if isinstance(coltype, JSON):
        if not isinstance(value, list):
            raise ValidationError(f"{col.key} must be a list")
        return [str(v).strip() for v in value if str(v).strip()]

    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields) and enum choices
    - required_on_create (if partial=False)
    Returns a cleaned patch dict keyed by column name.

    Keys may arrive camelCase (imageUrl) or snake_case (image_url).
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    payload = normalize_keys(payload)

    if not partial:
        missing = sorted(
            f for f in policy.required_on_create
            if payload.get(f) is None or (isinstance(payload.get(f), str) and not payload[f].strip())
        )
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "" and col.default is None:
                raise ValidationError(f"{k} cannot be blank")

        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        allowed = policy.choices.get(k)
        if allowed is not None and val not in allowed:
            raise ValidationError(f"{val} is not a valid {k}. Must be one of: {', '.join(allowed)}")

        patch[k] = val

    return patch


def parse_id(raw: Any, label: str = "resource") -> int:
    """Route ids are plain positive integers; anything else is a 400, not a 404."""
    try:
        value = int(str(raw).strip())
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid {label} ID")
    if value <= 0:
        raise ValidationError(f"Invalid {label} ID")
    return value


def parse_id_list(raw: Any, label: str = "resource") -> list[int]:
    if not isinstance(raw, list) or not raw:
        raise ValidationError(f"Please provide {label} IDs")
    return [parse_id(v, label) for v in raw]


def parse_bool_arg(raw: str | None) -> bool | None:
    """Query-string flag: absent -> None (no filter), "true" -> True, anything else -> False."""
    if raw is None or raw == "":
        return None
    return raw.strip().lower() == "true"


def parse_pagination(args, *, default_limit: int, max_limit: int = 500) -> tuple[int, int]:
    """page/limit query params -> (page >= 1, 1 <= limit <= max_limit)."""
    try:
        page = int(args.get("page", 1))
        limit = int(args.get("limit", default_limit))
    except (TypeError, ValueError):
        raise ValidationError("page and limit must be integers")
    return max(page, 1), min(max(limit, 1), max_limit)


def pagination_meta(page: int, limit: int, total: int) -> dict:
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "pages": (total + limit - 1) // limit if total else 0,
    }


def enforce_rules_product(patch: dict) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Keep these small and centralized.
    """
    if "price" in patch and patch["price"] is not None:
        if patch["price"] < 0:
            raise ValidationError("Price cannot be negative")
        if patch["price"] > MAX_PRICE:
            raise ValidationError(f"Price cannot exceed {MAX_PRICE:,.2f}")

    if "stock" in patch and patch["stock"] is not None and patch["stock"] < 0:
        raise ValidationError("Stock cannot be negative")

    if "rating" in patch and patch["rating"] is not None and not 0 <= patch["rating"] <= 5:
        raise ValidationError("rating must be between 0 and 5")

    image_url = patch.get("image_url")
    if image_url and not image_url.startswith(("data:image", "http://", "https://")):
        raise ValidationError("Invalid image format. Must be a base64 string or valid URL")

    if patch.get("sku"):
        patch["sku"] = patch["sku"].upper()
    if "tags" in patch and patch["tags"] is not None:
        patch["tags"] = [t.lower() for t in patch["tags"]]


_EMAIL_RE = re.compile(r"^\S+@\S+\.\S+$")


def enforce_rules_enquiry(patch: dict) -> None:
    if "email" in patch and patch["email"] is not None:
        email = patch["email"].lower()
        if not _EMAIL_RE.match(email):
            raise ValidationError("Please enter a valid email")
        patch["email"] = email


def enforce_rules_service(patch: dict) -> None:
    if "price" in patch and patch["price"] is not None and patch["price"] < 0:
        raise ValidationError("Price cannot be negative")
    if patch.get("status") == "Featured":
        patch["featured"] = True


_YEAR_RE = re.compile(r"^\d{4}$")


def enforce_rules_client(patch: dict) -> None:
    if patch.get("since") and not _YEAR_RE.match(patch["since"]):
        raise ValidationError("Please enter a valid year (YYYY format)")
    if "rating" in patch and patch["rating"] is not None and not 1 <= patch["rating"] <= 5:
        raise ValidationError("Rating must be between 1 and 5")
    if "project_value" in patch and patch["project_value"] is not None and patch["project_value"] < 0:
        raise ValidationError("projectValue cannot be negative")
