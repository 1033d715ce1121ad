"""
Pytest fixtures for the back-office tests.

Provides an application on an in-memory database, test clients (one per
"browser"), seeded reference data and a dashboard user.
"""

import pytest

from backoffice import create_app
from backoffice.extensions import db
from backoffice.models import Branch, Store, User
from backoffice.services.auth_service import hash_password


PASSWORD = "Password123!"


@pytest.fixture(scope='function')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SECRET_KEY': 'test-secret-key',
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'SESSION_IDLE_TIMEOUT_MINUTES': 240,
        'INGEST_API_KEY': None,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """First browser."""
    return app.test_client()


@pytest.fixture(scope='function')
def other_client(app):
    """Second browser, separate cookie jar."""
    return app.test_client()


@pytest.fixture(scope='function')
def session_store(app):
    return app.extensions["session_store"]


@pytest.fixture(scope='function')
def seed(app):
    """Store S1 with branch B1, as POS terminals reference them."""
    store = Store(store_name="S1", store_description="Store One", active="yes")
    db.session.add(store)
    db.session.flush()
    branch = Branch(branch_name="B1", branch_description="Branch One", store_name="S1", status="active")
    db.session.add(branch)
    db.session.commit()
    return {"store": store, "branch": branch}


def _make_user(email: str, name: str, is_active: bool = True) -> User:
    user = User(
        name=name,
        email=email,
        # low cost factor keeps the suite fast
        password_hash=hash_password(PASSWORD, rounds=4),
        is_active=is_active,
    )
    db.session.add(user)
    db.session.commit()
    return user


@pytest.fixture(scope='function')
def user(app):
    return _make_user("ana@example.com", "Ana Cruz")


@pytest.fixture(scope='function')
def inactive_user(app):
    return _make_user("old@example.com", "Former Staff", is_active=False)


@pytest.fixture(scope='function')
def json_login(user):
    """Log in through the JSON API and return the bearer token."""
    def _login(client, email=None, password=PASSWORD):
        resp = client.post("/login", json={"email": email or user.email, "password": password})
        assert resp.status_code == 200, resp.get_json()
        return resp.get_json()["token"]
    return _login


@pytest.fixture(scope='function')
def browser_login(user):
    """Log in with a form post, the way the dashboard page does."""
    def _login(client, email=None, password=PASSWORD, remember=False):
        data = {"email": email or user.email, "password": password}
        if remember:
            data["remember"] = "on"
        return client.post("/login", data=data)
    return _login
