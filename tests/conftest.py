"""
tests/conftest.py -- Shared test fixtures for DevCamper tests.

This module provides:
  - RecordingMailer: stand-in EmailSender that records messages and can be
    switched to fail, so forgot-password rollback is testable offline
  - _make_test_stores(): isolated in-memory DBs for users + directory
  - _patch_lifespan(): wires test stores into app.state, bypassing real startup
  - api_client: TestClient plus an admin JWT for API integration tests
  - settings / user_store / auth_service: objects for unit tests

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
for the TestClient fixtures because sync route handlers run in a thread pool.
Plain :memory: DBs are per-connection and would present a blank schema to
each worker thread. The named URI format shares one in-memory instance across
all connections in the same process. Each test module gets its own name.

ENVIRONMENT and ALLOWED_HOSTS must be set before any api/ import: api.main
reads Settings at import time to configure middleware.
"""

from __future__ import annotations

import os
from collections.abc import Generator
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

# CRITICAL: set before importing api/ so get_settings() generates a dev
# SECRET_KEY and TrustedHostMiddleware accepts TestClient's "testserver" host.
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("ALLOWED_HOSTS", '["testserver", "localhost"]')

import pytest
from fastapi.testclient import TestClient

from api.limiter import limiter
from api.main import app
from auth.models import Role, User
from auth.service import AuthService
from auth.store import UserStore
from auth.tokens import ResetTokenGenerator, TokenIssuer, hash_password
from core.config import Settings, get_settings
from core.mailer import DeliveryResult, OutgoingEmail
from directory.store import DirectoryStore

# Credential endpoints are rate-limited per IP; every TestClient request
# comes from the same address.
limiter.enabled = False

ADMIN_EMAIL = "admin@devcamper.io"
ADMIN_PASSWORD = "adminpass123"


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class RecordingMailer:
    """EmailSender replacement. Set fail=True to simulate an SMTP outage.

    Set error to an exception instance to have send() raise it instead.
    """

    def __init__(self) -> None:
        self.sent: list[OutgoingEmail] = []
        self.fail = False
        self.error: Optional[BaseException] = None

    async def send(self, email: OutgoingEmail) -> DeliveryResult:
        if self.error is not None:
            raise self.error
        if self.fail:
            return DeliveryResult(ok=False, error="connection refused")
        self.sent.append(email)
        return DeliveryResult(ok=True)


class FakeClock:
    """Controllable now() for expiry tests. Starts at the real current time."""

    def __init__(self) -> None:
        self.current = datetime.now(timezone.utc)

    def __call__(self) -> datetime:
        return self.current


def reset_token_from(email: OutgoingEmail) -> str:
    """Pull the plaintext reset token out of a reset email body."""
    for line in email.body.splitlines():
        if "/resetpassword/" in line:
            return line.strip().rsplit("/", 1)[-1]
    raise AssertionError(f"No reset link in email body: {email.body!r}")


# ---------------------------------------------------------------------------
# Unit-test fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def settings() -> Settings:
    return Settings(environment="development", secret_key="k" * 48, reset_token_expire_minutes=10)


@pytest.fixture
def user_store() -> Generator[UserStore, None, None]:
    store = UserStore("sqlite:///:memory:")
    yield store
    store.close()


@pytest.fixture
def mailer() -> RecordingMailer:
    return RecordingMailer()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def auth_service(user_store, settings, mailer, clock) -> AuthService:
    return AuthService(
        user_store,
        TokenIssuer(settings),
        ResetTokenGenerator(settings),
        mailer,
        settings,
        now=clock,
    )


# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def _make_test_stores(db_suffix: str) -> tuple[UserStore, DirectoryStore]:
    """Create isolated named shared-memory SQLite stores for test isolation.

    Args:
        db_suffix: Unique string appended to the DB name so test modules
                   don't share state.
    """
    url = f"sqlite:///file:test_devcamper_{db_suffix}?mode=memory&cache=shared&uri=true"
    return UserStore(url), DirectoryStore(url)


def _patch_lifespan(user_store: UserStore, directory: DirectoryStore, mailer: RecordingMailer):
    """Return an async context manager that replaces the real lifespan.

    Wires pre-created test stores and the recording mailer into app.state so
    TestClient routes never touch the real database or an SMTP server.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        settings = get_settings()
        app.state.settings = settings
        app.state.user_store = user_store
        app.state.directory = directory
        app.state.mailer = mailer
        app.state.auth = AuthService(
            user_store,
            TokenIssuer(settings),
            ResetTokenGenerator(settings),
            mailer,
            settings,
        )
        yield

    return test_lifespan


# ---------------------------------------------------------------------------
# Module-scoped fixtures -- one TestClient per test module for speed
# ---------------------------------------------------------------------------


@pytest.fixture(scope="module")
def api_client(request) -> Generator[tuple[TestClient, str, int], None, None]:
    """Yield (client, admin_token, admin_id) for API integration tests.

    The admin is created directly in the store (self-registration cannot
    create admins). Tests reach the recording mailer through
    client.app.state.mailer.
    """
    suffix = request.module.__name__.rsplit(".", 1)[-1]
    user_store, directory = _make_test_stores(suffix)

    admin = User(
        name="Test Admin",
        email=ADMIN_EMAIL,
        hashed_password=hash_password(ADMIN_PASSWORD),
        role=Role.admin,
    )
    uid = user_store.create_user(admin)
    token = TokenIssuer(get_settings()).issue(uid)

    app.router.lifespan_context = _patch_lifespan(user_store, directory, RecordingMailer())

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, token, uid

    directory.close()
    user_store.close()


def register(client: TestClient, name: str, email: str, password: str = "secret123") -> str:
    """Register a standard user through the API and return their token.

    The client's cookie jar is cleared afterwards: the token cookie would
    otherwise take priority over the Bearer header on later requests.
    """
    resp = client.post("/api/v1/auth/register", json={"name": name, "email": email, "password": password})
    assert resp.status_code == 200, resp.text
    client.cookies.clear()
    return resp.json()["token"]


def user_id_of(client: TestClient, token: str) -> int:
    resp = client.get("/api/v1/auth/me", headers=bearer(token))
    assert resp.status_code == 200, resp.text
    return resp.json()["data"]["id"]


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}
