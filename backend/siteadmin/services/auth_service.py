# Overview: Service-layer operations for admin authentication.

"""
Admin Authentication Service

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor from Config.BCRYPT_ROUNDS, 12 by default)
- Minimum 8 characters required
- Session tokens managed separately (see session_service.py)
"""

import bcrypt
from flask import current_app

from ..extensions import db
from ..models import AdminUser
from siteadmin.time_utils import utcnow

MIN_PASSWORD_LENGTH = 8


class PasswordValidationError(Exception):
    """Raised when password doesn't meet strength requirements."""
    pass


def validate_password_strength(password: str) -> None:
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise PasswordValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")


def hash_password(password: str) -> str:
    """Validate, then bcrypt-hash. Stored as a utf-8 string."""
    validate_password_strength(password)
    rounds = int(current_app.config.get("BCRYPT_ROUNDS", 12))
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """Timing-safe bcrypt check; malformed hashes never match."""
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def create_admin(email: str, password: str, name: str = "Admin") -> AdminUser:
    """
    Create an admin account.

    Raises:
        ValueError: email already registered
        PasswordValidationError: password too weak
    """
    email = (email or "").strip().lower()
    if not email:
        raise ValueError("Email is required")

    existing = db.session.query(AdminUser).filter(AdminUser.email == email).first()
    if existing:
        raise ValueError("An admin with this email already exists")

    user = AdminUser(
        email=email,
        name=name or "Admin",
        password_hash=hash_password(password),
    )
    db.session.add(user)
    db.session.commit()
    return user


def authenticate(email: str, password: str) -> AdminUser | None:
    """
    Returns the admin if the credentials are valid and the account is active.
    Updates last_login_at on success.
    """
    email = (email or "").strip().lower()
    user = (
        db.session.query(AdminUser)
        .filter(AdminUser.email == email, AdminUser.is_active.is_(True))
        .first()
    )
    if not user:
        return None

    if verify_password(password or "", user.password_hash):
        user.last_login_at = utcnow()
        db.session.commit()
        return user

    return None
