"""
Shared fixtures.

The environment is populated before any application module is imported,
because ``core.config`` builds its settings object at import time.
"""

import os
import tempfile

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET", "test-access-secret-0123456789abcdef0123")
os.environ.setdefault("JWT_REFRESH_SECRET", "test-refresh-secret-0123456789abcdef01")
os.environ.setdefault("BCRYPT_SALT_ROUNDS", "10")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("HIREHAND_LOG_DIR", tempfile.mkdtemp(prefix="hirehand-test-log-"))

import itertools  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from core.config import load_settings  # noqa: E402
from database import Base, create_session_factory  # noqa: E402
from main import create_app  # noqa: E402
from models.refresh_token import RefreshToken  # noqa: E402
from models.role import ADMIN_ROLE, Role, UserRoleRelation  # noqa: E402
from models.user import User  # noqa: E402

API = "/api/v1"
REFRESH_COOKIE = "refreshToken"
DEFAULT_PASSWORD = "secret1"

_email_counter = itertools.count(1)


class FakeMailer:
    """Records every message instead of sending it."""

    def __init__(self):
        self.sent = []

    def send_password_reset(self, to_email, token):
        self.sent.append(("password_reset", to_email, token))
        return True

    def send_email_verification(self, to_email, token):
        self.sent.append(("email_verification", to_email, token))
        return True

    def tokens(self, kind, to_email=None):
        return [t for k, e, t in self.sent if k == kind and (to_email is None or e == to_email)]


# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------


@pytest.fixture
def settings():
    return load_settings()


@pytest.fixture
def session_factory():
    factory = create_session_factory("sqlite://")
    engine = factory.kw["bind"]
    Base.metadata.create_all(bind=engine)
    yield factory
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def mailer():
    return FakeMailer()


@pytest.fixture
def make_app(session_factory, mailer):
    """Build an app on the per-test database, optionally with setting overrides."""

    def _make(**overrides):
        return create_app(load_settings(**overrides), session_factory=session_factory, mailer=mailer)

    return _make


@pytest.fixture
def app(make_app):
    return make_app()


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def unique_email(prefix="user"):
    return f"{prefix}{next(_email_counter)}@x.com"


def sign_up(client, email=None, password=DEFAULT_PASSWORD, name="Test User", **flags):
    body = {"name": name, "email": email or unique_email(), "password": password}
    body.update(flags)
    return client.post(f"{API}/auth/sign-up", json=body)


def log_in(client, email, password=DEFAULT_PASSWORD):
    return client.post(f"{API}/auth/log-in", json={"email": email, "password": password})


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


def post_with_refresh_cookie(client, path, token, **kwargs):
    """
    POST carrying exactly one refresh cookie.  The client jar is cleared so a
    cookie set by an earlier response cannot shadow *token*.
    """
    client.cookies.clear()
    headers = kwargs.pop("headers", {})
    if token is not None:
        headers["Cookie"] = f"{REFRESH_COOKIE}={token}"
    return client.post(f"{API}{path}", headers=headers, **kwargs)


def set_flags(db, user_id, **flags):
    db.query(User).filter(User.id == user_id).update(flags, synchronize_session=False)
    db.commit()


def live_refresh_tokens(db, user_id):
    db.expire_all()
    return (
        db.query(RefreshToken)
        .filter(RefreshToken.user_id == user_id, RefreshToken.is_revoked.is_(False))
        .all()
    )


def grant_admin(db, user_id):
    role = db.query(Role).filter(Role.name == ADMIN_ROLE).first()
    if role is None:
        role = Role(name=ADMIN_ROLE)
        db.add(role)
        db.flush()
    db.add(UserRoleRelation(user_id=user_id, role_id=role.id))
    db.commit()


@pytest.fixture
def registered(client):
    """A signed-up user: ``(user_id, email, access_token, refresh_token)``."""
    email = unique_email("alice")
    resp = sign_up(client, email=email, name="Alice")
    assert resp.status_code == 201, resp.text
    data = resp.json()["data"]
    return data["user"]["id"], email, data["accessToken"], resp.cookies.get(REFRESH_COOKIE)
