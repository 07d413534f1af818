"""
Test configuration and fixtures for Tarot API tests
"""

from dataclasses import dataclass
import datetime
import os
import sys

import pytest

# Add the project root to the Python path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

# Set environment variables for testing before importing the app
os.environ["ENVIRONMENT"] = "test"
os.environ.pop("SPARKPOST_API_KEY", None)

from tarotapi import app as flask_app  # noqa: E402
from tarotapi import db  # noqa: E402
from tarotapi.errors import EmailDeliveryError  # noqa: E402
from tarotapi.models import User  # noqa: E402
from tarotapi.services import AuthService, UserService  # noqa: E402
from tarotapi.services.credential_store import (  # noqa: E402
    TOKEN_COLUMNS,
    CredentialStore,
)
from tarotapi.utils.passwords import PasswordHasher  # noqa: E402

USER_TEST_PASSWORD = "UserPass123"
ADMIN_TEST_PASSWORD = "AdminPass123"
NEW_PASSWORD = "NewPass456"

START_TIME = datetime.datetime(2025, 1, 15, 12, 0, 0)

hasher = PasswordHasher()


@pytest.fixture(scope="function")
def app():
    """Create application for testing"""
    with flask_app.app_context():
        db.create_all()
        try:
            yield flask_app
        finally:
            db.session.remove()
            db.drop_all()


@pytest.fixture
def client(app):
    """Create test client"""
    return app.test_client()


@pytest.fixture
def runner(app):
    """Create test CLI runner"""
    return app.test_cli_runner()


def _create_user(username, password, email, is_admin=False, verified=True):
    user = User(
        username=username,
        password_hash=hasher.hash(password),
        email=email,
        is_admin=is_admin,
        email_verified=verified,
    )
    db.session.add(user)
    db.session.commit()
    db.session.refresh(user)
    return user


@pytest.fixture
def regular_user(app):
    """Create a verified regular user"""
    return _create_user("reader", USER_TEST_PASSWORD, "reader@test.com")


@pytest.fixture
def other_user(app):
    return _create_user("querent", USER_TEST_PASSWORD, "querent@test.com")


@pytest.fixture
def unverified_user(app):
    return _create_user(
        "newcomer", USER_TEST_PASSWORD, "newcomer@test.com", verified=False
    )


@pytest.fixture
def admin_user(app):
    """Create admin user for testing"""
    return _create_user(
        "admin", ADMIN_TEST_PASSWORD, "admin@test.com", is_admin=True
    )


def _login(client, username, password):
    response = client.post(
        "/api/auth/login", json={"username": username, "password": password}
    )
    assert response.status_code == 200, response.get_json()
    return client


@pytest.fixture
def user_client(app, regular_user):
    """Test client with a regular user session"""
    return _login(app.test_client(), "reader", USER_TEST_PASSWORD)


@pytest.fixture
def admin_client(app, admin_user):
    """Test client with an admin session"""
    return _login(app.test_client(), "admin", ADMIN_TEST_PASSWORD)


# In-memory collaborators for service level tests


@dataclass
class FakeUser:
    id: int
    username: str
    password_hash: str
    email: str | None = None
    display_name: str | None = None
    is_admin: bool = False
    email_verified: bool = False
    verification_token: str | None = None
    verification_token_expires: datetime.datetime | None = None
    verification_sent_at: datetime.datetime | None = None
    reset_token: str | None = None
    reset_token_expires: datetime.datetime | None = None
    failed_login_attempts: int = 0
    last_failed_login: datetime.datetime | None = None
    account_locked_until: datetime.datetime | None = None
    last_login: datetime.datetime | None = None


class InMemoryCredentialStore(CredentialStore):
    def __init__(self):
        self.users = {}
        self._next_id = 1

    def find_by_id(self, user_id):
        return self.users.get(user_id)

    def find_by_username(self, username):
        return next((u for u in self.users.values() if u.username == username), None)

    def find_by_email(self, email):
        if not email:
            return None
        return next(
            (u for u in self.users.values() if u.email == email.lower()), None
        )

    def find_by_token(self, token, kind):
        column = TOKEN_COLUMNS[kind]
        if not token:
            return None
        return next(
            (u for u in self.users.values() if getattr(u, column) == token), None
        )

    def persist(self, user_id, fields):
        user = self.users.get(user_id)
        if user is None:
            return None
        for key, value in fields.items():
            setattr(user, key, value)
        return user

    def create_user(self, fields):
        user = FakeUser(id=self._next_id, **fields)
        self.users[user.id] = user
        self._next_id += 1
        return user

    def delete_user(self, user_id):
        return self.users.pop(user_id, None) is not None

    def list_users(self):
        return sorted(self.users.values(), key=lambda u: u.username)

    def count_unverified(self):
        return sum(1 for u in self.users.values() if not u.email_verified)


class FakeClock:
    """Controllable clock returning naive UTC datetimes"""

    def __init__(self, now=START_TIME):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += datetime.timedelta(**kwargs)


class RecordingMailer:
    def __init__(self):
        self.sent = []
        self.fail = False

    def _record(self, kind, *args):
        if self.fail:
            raise EmailDeliveryError("Failed to send email: connection refused")
        self.sent.append((kind, *args))

    def send_verification_email(self, email, token, username):
        self._record("verification", email, token, username)

    def send_password_reset_email(self, email, token, username):
        self._record("reset", email, token, username)

    def send_admin_verified_email(self, email, username):
        self._record("admin_verified", email, username)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return InMemoryCredentialStore()


@pytest.fixture
def mailer():
    return RecordingMailer()


@pytest.fixture
def auth(store, mailer, clock):
    """AuthService wired to in-memory collaborators"""
    return AuthService(store, hasher, mailer, clock=clock)


@pytest.fixture
def accounts(store, mailer, clock):
    """UserService wired to in-memory collaborators"""
    return UserService(store, hasher, mailer, clock=clock)


@pytest.fixture
def make_user(store):
    """Factory for users stored in the in-memory store"""

    def _make(username="alice", password=USER_TEST_PASSWORD, **fields):
        fields.setdefault("email", f"{username}@example.com")
        fields.setdefault("display_name", username)
        fields.setdefault("email_verified", True)
        return store.create_user(
            {"username": username, "password_hash": hasher.hash(password), **fields}
        )

    return _make
