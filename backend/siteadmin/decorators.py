# Overview: Request decorators for API routes.

from functools import wraps
from flask import request, g

from .responses import fail
from .services import session_service


def bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header.split(" ", 1)[1].strip() or None


def require_auth(f):
    """
    Require an admin session.

    Sets g.current_user to the authenticated AdminUser.

    SECURITY: Returns 401 if:
    - No Authorization header
    - Invalid, revoked or expired token
    - Admin account deactivated
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = bearer_token()
        if not token:
            return fail("Not authorized, no token", 401)

        user = session_service.validate_session(token)
        if not user:
            return fail("Not authorized, token failed", 401)

        g.current_user = user
        return f(*args, **kwargs)

    return decorated_function


def current_user_id() -> int | None:
    user = getattr(g, "current_user", None)
    return user.id if user else None
