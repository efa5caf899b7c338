# Overview: Flask API routes for admin auth; parses input and returns JSON responses.

# backend/siteadmin/routes/auth.py
"""
Admin authentication routes.

Login returns an opaque bearer token. Every protected route expects it in
the Authorization header ("Bearer <token>").
"""

from flask import Blueprint, request, g

from ..services import auth_service
from ..services import session_service
from ..decorators import require_auth, bearer_token
from ..responses import ok, fail


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/login")
def login_route():
    data = request.get_json(silent=True) or {}
    email = data.get("email")
    password = data.get("password")

    if not all([email, password]):
        return fail("Please provide email and password", 400)

    user = auth_service.authenticate(email, password)
    if not user:
        return fail("Invalid credentials", 401)

    _, token = session_service.create_session(
        user.id,
        user_agent=request.headers.get("User-Agent"),
        ip_address=request.remote_addr,
    )
    return ok({"token": token, "user": user.to_dict()}, message="Login successful")


@auth_bp.get("/verify")
@require_auth
def verify_route():
    return ok({"user": g.current_user.to_dict()}, message="Token is valid")


@auth_bp.post("/logout")
@require_auth
def logout_route():
    session_service.revoke_session(bearer_token())
    return ok(message="Logged out successfully")
