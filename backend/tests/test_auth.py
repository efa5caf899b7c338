"""
Admin auth, session lifecycle, app-level error envelopes and CLI commands.
"""

from datetime import timedelta

import pytest

from siteadmin.extensions import db
from siteadmin.models import AdminUser, Category, Product, SessionToken
from siteadmin.services.auth_service import PasswordValidationError, create_admin
from siteadmin.services.session_service import hash_token
from siteadmin.time_utils import utcnow

ADMIN_EMAIL = "admin@test.local"
ADMIN_PASSWORD = "Password123!"


# =============================================================================
# LOGIN / VERIFY / LOGOUT
# =============================================================================


class TestLogin:

    def test_login_returns_token(self, client, admin):
        resp = client.post("/api/auth/login", json={"email": ADMIN_EMAIL.upper(), "password": ADMIN_PASSWORD})

        assert resp.status_code == 200
        assert resp.json["message"] == "Login successful"
        assert resp.json["data"]["token"]
        assert resp.json["data"]["user"]["email"] == ADMIN_EMAIL
        assert "passwordHash" not in resp.json["data"]["user"]

    def test_token_is_stored_hashed(self, client, admin):
        token = client.post("/api/auth/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD}).json["data"]["token"]

        db.session.expire_all()
        row = db.session.query(SessionToken).one()
        assert row.token_hash == hash_token(token)
        assert row.token_hash != token

    @pytest.mark.parametrize("payload", [{}, {"email": ADMIN_EMAIL}, {"password": ADMIN_PASSWORD}])
    def test_missing_credentials(self, client, admin, payload):
        resp = client.post("/api/auth/login", json=payload)
        assert resp.status_code == 400
        assert resp.json["message"] == "Please provide email and password"

    def test_wrong_password(self, client, admin):
        resp = client.post("/api/auth/login", json={"email": ADMIN_EMAIL, "password": "wrong-password"})
        assert resp.status_code == 401
        assert resp.json["message"] == "Invalid credentials"

    def test_inactive_admin_cannot_login(self, client, admin):
        admin.is_active = False
        db.session.commit()

        resp = client.post("/api/auth/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})

        assert resp.status_code == 401


class TestSession:

    def test_verify(self, client, admin_headers):
        resp = client.get("/api/auth/verify", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json["data"]["user"]["name"] == "Test Admin"

    def test_no_token(self, client):
        resp = client.get("/api/auth/verify")
        assert resp.status_code == 401
        assert resp.json["message"] == "Not authorized, no token"

    def test_logout_revokes_token(self, client, admin_headers):
        resp = client.post("/api/auth/logout", headers=admin_headers)
        assert resp.status_code == 200

        resp = client.get("/api/auth/verify", headers=admin_headers)
        assert resp.status_code == 401
        assert resp.json["message"] == "Not authorized, token failed"

    def test_expired_token_rejected(self, client, admin_headers):
        db.session.query(SessionToken).update({"expires_at": utcnow() - timedelta(hours=1)})
        db.session.commit()

        assert client.get("/api/auth/verify", headers=admin_headers).status_code == 401

    def test_deactivated_admin_loses_session(self, client, admin, admin_headers):
        admin.is_active = False
        db.session.commit()

        assert client.get("/api/auth/verify", headers=admin_headers).status_code == 401

        db.session.expire_all()
        row = db.session.query(SessionToken).one()
        assert row.is_revoked is True
        assert row.revoked_reason == "User account deactivated"


class TestPasswords:

    def test_short_password_rejected(self, db_session):
        with pytest.raises(PasswordValidationError):
            create_admin("ops@test.local", "short")

    def test_duplicate_email_rejected(self, admin):
        with pytest.raises(ValueError):
            create_admin(ADMIN_EMAIL.upper(), ADMIN_PASSWORD)


# =============================================================================
# APP-LEVEL ENVELOPES
# =============================================================================


class TestAppEnvelopes:

    def test_health(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json["status"] == "healthy"
        assert resp.json["checks"]["database"]["details"]["products"] == 0

    def test_unknown_route(self, client):
        resp = client.get("/api/nope")
        assert resp.status_code == 404
        assert resp.json == {"success": False, "message": "Route /api/nope not found"}

    def test_cors_only_for_allowed_origins(self, app, client):
        original = app.config["CORS_ALLOWED_ORIGINS"]
        app.config["CORS_ALLOWED_ORIGINS"] = ["http://localhost:5173"]
        try:
            allowed = client.get("/health", headers={"Origin": "http://localhost:5173"})
            other = client.get("/health", headers={"Origin": "http://evil.example"})
        finally:
            app.config["CORS_ALLOWED_ORIGINS"] = original

        assert allowed.headers["Access-Control-Allow-Origin"] == "http://localhost:5173"
        assert "Access-Control-Allow-Origin" not in other.headers


# =============================================================================
# CLI
# =============================================================================


class TestCli:

    def test_system_init_is_idempotent(self, app):
        runner = app.test_cli_runner()

        first = runner.invoke(args=["system", "init"])
        second = runner.invoke(args=["system", "init"])

        assert "PASS Created admin: admin@siteadmin.local" in first.output
        assert "already exists, skipping" in second.output
        db.session.expire_all()
        assert db.session.query(AdminUser).count() == 1

    def test_users_create_rejects_weak_password(self, app):
        runner = app.test_cli_runner()

        result = runner.invoke(args=["users", "create", "--email", "ops@test.local", "--password", "short"])

        assert "FAIL Password validation failed" in result.output

    def test_categories_reconcile(self, app, db_session):
        db_session.add(Product(name="Imported", category="Legacy", sku="IMP-1"))
        db_session.add(Category(name="Drives", type="product", usage_count=3))
        db_session.commit()

        result = app.test_cli_runner().invoke(args=["categories", "reconcile"])

        assert "FIX   Drives: 3 -> 0" in result.output
        assert "NEW   Legacy (usage 1)" in result.output

    def test_categories_usage_marks_drift(self, app, db_session):
        db_session.add(Category(name="Drives", type="product", usage_count=3))
        db_session.commit()

        result = app.test_cli_runner().invoke(args=["categories", "usage"])

        assert "DRIFT" in result.output
