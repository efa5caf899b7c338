# Overview: JSON envelope helpers shared by every blueprint.
#
# Every response body has the shape
#   {"success": bool, "data"?, "message"?, "error"?, "pagination"?}
# plus endpoint-specific extras (count, stats, info, ...).

from __future__ import annotations

from flask import jsonify


def ok(data=None, *, message: str | None = None, status: int = 200, **extra):
    body: dict = {"success": True}
    if message is not None:
        body["message"] = message
    if data is not None:
        body["data"] = data
    body.update({k: v for k, v in extra.items() if v is not None})
    return jsonify(body), status


def fail(message: str, status: int = 400, *, error: str | None = None, **extra):
    body: dict = {"success": False, "message": message}
    if error is not None:
        body["error"] = error
    body.update({k: v for k, v in extra.items() if v is not None})
    return jsonify(body), status
