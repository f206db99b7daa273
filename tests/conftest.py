"""
tests/conftest.py -- Shared test fixtures for Gatekeeper tests.

This module provides:
  - auth_config / store / service: in-process objects for unit tests
  - FixedClock: a settable clock for exact token-expiry checks
  - _patch_lifespan(): wires a test store and service into app.state
  - api_client: TestClient against the real FastAPI app

Design: Named shared-memory SQLite URIs (not plain :memory:) are used for the
API client because TestClient runs sync route handlers in a thread pool.
Plain :memory: DBs are per-connection and would present a blank schema to
each worker thread.

DEBUG, BCRYPT_ROUNDS and LOGIN_RATE_LIMIT must be set before any core import
so get_settings() auto-generates SECRET_KEY, accepts the cheap test cost, and
does not throttle the test client.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone

# CRITICAL: set before any auth/core import.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("LOGIN_RATE_LIMIT", "1000/minute")

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.models import AuthConfig
from auth.service import AuthService
from auth.store import IdentityStore

TEST_SECRET = "test-secret-key-that-is-long-enough-0123456789"


class FixedClock:
    """Callable clock that returns a settable instant."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


# ---------------------------------------------------------------------------
# Unit-test fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def auth_config() -> AuthConfig:
    return AuthConfig(secret_key=TEST_SECRET, token_expire_seconds=3600, bcrypt_rounds=4)


@pytest.fixture
def store() -> Generator[IdentityStore, None, None]:
    s = IdentityStore("sqlite:///:memory:")
    yield s
    s.close()


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def service(store: IdentityStore, auth_config: AuthConfig, clock: FixedClock) -> AuthService:
    return AuthService(store, auth_config, clock=clock)


# ---------------------------------------------------------------------------
# API fixtures
# ---------------------------------------------------------------------------


def _patch_lifespan(identity_store: IdentityStore, auth_service: AuthService):
    """Return an async context manager that replaces the real lifespan."""

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.identity_store = identity_store
        app.state.auth_service = auth_service
        yield

    return test_lifespan


@pytest.fixture(scope="module")
def api_client() -> Generator[tuple[TestClient, AuthService], None, None]:
    """Yield (client, service) for API integration tests.

    The TestClient uses the real FastAPI app with a patched lifespan so tests
    hit real route handlers but use an isolated in-memory store. The service
    is returned so tests can mint tokens with the same secret.
    """
    db_name = f"test_auth_{uuid.uuid4().hex}"
    identity_store = IdentityStore(f"sqlite:///file:{db_name}?mode=memory&cache=shared&uri=true")
    auth_service = AuthService(
        identity_store,
        AuthConfig(secret_key=TEST_SECRET, token_expire_seconds=3600, bcrypt_rounds=4),
    )

    app.router.lifespan_context = _patch_lifespan(identity_store, auth_service)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, auth_service

    identity_store.close()
