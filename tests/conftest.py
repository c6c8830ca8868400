"""Shared test fixtures for the issue reporting test suite.

Provides:
- app: Flask app configured for testing (in-memory SQLite, inline notifications)
- client: Flask test client
- db_session: clean database per test (tables created/dropped)
- push_relay: patched requests.post for the push relay
- seed_data: an employee, a second employee, a manager and an admin
- account_factory: create extra accounts with or without a profile

No app context stays pushed while a test runs. Each test-client request gets
its own context (and its own `g`), so several signed-in clients in one test
never see each other's user. Tests that touch the database directly wrap
that code in `with app.app_context():`.
"""

from unittest.mock import MagicMock, patch

import pytest
from werkzeug.security import generate_password_hash

from app import create_app
from app.extensions import db as _db, role_sessions
from app.models.account import Account
from app.models.user import User


@pytest.fixture(scope="session")
def app():
    """Create the Flask application configured for testing."""
    app = create_app("testing")
    yield app


@pytest.fixture(autouse=True)
def db_session(app):
    """Create all tables before each test, drop after.

    Open role sessions are closed first so no live query outlives its tables.
    """
    with app.app_context():
        _db.create_all()
    yield _db
    role_sessions.clear()
    with app.app_context():
        _db.session.remove()
        _db.drop_all()


@pytest.fixture
def client(app):
    """Flask test client."""
    return app.test_client()


@pytest.fixture(autouse=True)
def push_relay():
    """Every push goes to a mock relay that accepts it."""
    with patch("app.services.push_service.requests.post") as mock_post:
        mock_post.return_value = MagicMock(status_code=200)
        mock_post.return_value.raise_for_status.return_value = None
        yield mock_post


def make_account(app, email, password="password123", full_name=None,
                 role="employee", push_token=None, with_profile=True,
                 is_active=True):
    """Create an account and (optionally) its profile row. Returns the UID."""
    with app.app_context():
        account = Account(
            email=email,
            password_hash=generate_password_hash(password),
            display_name=full_name or email.split("@")[0].title(),
            is_active=is_active,
        )
        _db.session.add(account)
        _db.session.flush()

        if with_profile:
            profile = User(
                id=account.id,
                email=email,
                full_name=account.display_name,
                role=role,
                push_token=push_token,
            )
            _db.session.add(profile)
        _db.session.commit()
        return account.id


@pytest.fixture
def seed_data(app, db_session):
    """Seed accounts for each role.

    Returns a dict of plain IDs/emails so tests can use them across contexts.
    """
    employee_id = make_account(
        app, "emp@example.com", full_name="Erin Employee",
        push_token="ExponentPushToken[employee]",
    )
    other_id = make_account(app, "other@example.com", full_name="Omar Other")
    manager_id = make_account(
        app, "lead@example.com", full_name="Mina Manager", role="manager",
    )
    admin_id = make_account(
        app, "root@example.com", full_name="Ada Admin", role="admin",
    )
    return {
        "employee_id": employee_id,
        "employee_email": "emp@example.com",
        "other_id": other_id,
        "other_email": "other@example.com",
        "manager_id": manager_id,
        "manager_email": "lead@example.com",
        "admin_id": admin_id,
        "admin_email": "root@example.com",
        "password": "password123",
    }


@pytest.fixture
def account_factory(app, db_session):
    """make_account bound to the test app; returns the new account's UID."""

    def factory(email, **kwargs):
        return make_account(app, email, **kwargs)

    return factory
