"""
Pytest fixtures for site admin backend tests.

Provides the in-memory database, a per-test table wipe, the test client and
an authenticated admin.
"""

import pytest
from siteadmin import create_app
from siteadmin.extensions import db
from siteadmin.services.auth_service import create_admin

ADMIN_EMAIL = "admin@test.local"
ADMIN_PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BCRYPT_ROUNDS': 4,
        'ADMIN_NOTIFY_EMAIL': '',
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function', autouse=True)
def db_session(app):
    """Fresh tables for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def admin(db_session):
    """Default admin account."""
    return create_admin(ADMIN_EMAIL, ADMIN_PASSWORD, name="Test Admin")


@pytest.fixture(scope='function')
def admin_headers(client, admin):
    """Authorization headers for the default admin."""
    token = get_auth_token(client, ADMIN_EMAIL, ADMIN_PASSWORD)
    assert token, "login failed in fixture"
    return auth_headers(token)


def get_auth_token(client, email: str, password: str) -> str:
    """Helper to get auth token for an admin."""
    response = client.post('/api/auth/login', json={
        'email': email,
        'password': password
    })
    if response.status_code == 200:
        return response.json['data']['token']
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def make_product(client, admin_headers):
    """Factory: POST a product through the API and return its JSON representation."""
    def _make(**fields) -> dict:
        payload = {"name": "Test Panel", "price": 1000}
        payload.update(fields)
        response = client.post('/api/products', json=payload, headers=admin_headers)
        assert response.status_code == 201, response.json
        return response.json['data']
    return _make
