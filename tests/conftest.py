"""
tests/conftest.py -- Shared test fixtures for authgate.

This module provides:
  - FakeClock: a settable clock so expiry and renewal are tested without sleeping
  - store / manager: an in-memory AuthStore and a SessionManager on the fake clock
  - make_user(): inserts a user row directly (no PBKDF2 cost)
  - api_client: TestClient over the real FastAPI app with a patched lifespan

Design: the API fixture uses a named shared-memory SQLite URI (not plain
:memory:) because TestClient runs sync route handlers in a thread pool.
Plain :memory: DBs are per-connection and would present a blank schema to
each worker thread. The named URI format
(file:name?mode=memory&cache=shared&uri=true) shares one in-memory instance
across all connections in the same process.

The TestClient base_url is https:// because the session cookie is Secure;
httpx would not send it back over plain http.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable, Generator
from contextlib import asynccontextmanager
from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.models import User
from auth.sessions import SessionManager, SessionPolicy, generate_user_id
from auth.store import AuthStore
from core.clock import truncate_to_millis, utc_now


class FakeClock:
    """A clock that only moves when told to."""

    def __init__(self, start: datetime | None = None) -> None:
        # Start at the real current second so cookie Expires values computed
        # from this clock are in the future for httpx's cookie jar.
        self.now = start or utc_now().replace(microsecond=0)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now = self.now + delta


# ---------------------------------------------------------------------------
# Core fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def policy() -> SessionPolicy:
    return SessionPolicy(duration=timedelta(days=30))


@pytest.fixture
def store() -> Generator[AuthStore, None, None]:
    s = AuthStore("sqlite:///:memory:")
    yield s
    s.close()


@pytest.fixture
def manager(store: AuthStore, policy: SessionPolicy, clock: FakeClock) -> SessionManager:
    return SessionManager(store, policy, clock=clock)


@pytest.fixture
def make_user(store: AuthStore, clock: FakeClock) -> Callable[..., User]:
    """Insert a user with a placeholder hash. Tests that need a real hash call hash_password() themselves."""

    def _make(email: str = "a@example.com", password_hash: str = "c2FsdA==.aGFzaA==") -> User:
        user = User(
            id=generate_user_id(),
            email=email,
            password_hash=password_hash,
            created_at=truncate_to_millis(clock()),
        )
        store.insert_user(user)
        return user

    return _make


# ---------------------------------------------------------------------------
# API fixtures
# ---------------------------------------------------------------------------


def _patch_lifespan(auth_store: AuthStore, session_manager: SessionManager):
    """Return an async context manager that replaces the real lifespan.

    Wires pre-created test objects into app.state so TestClient routes see an
    isolated store and a fake clock rather than the production database.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.auth_store = auth_store
        app.state.session_manager = session_manager
        app.state.purge_task = None
        yield

    return test_lifespan


@pytest.fixture
def api_client() -> Generator[tuple[TestClient, SessionManager, FakeClock], None, None]:
    """Yield (client, session_manager, clock) for API integration tests.

    One fresh named in-memory database per test, so cookie jars and rows
    never leak between tests.
    """
    url = f"sqlite:///file:test_auth_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true"
    auth_store = AuthStore(url)
    fake_clock = FakeClock()
    session_manager = SessionManager(auth_store, SessionPolicy(duration=timedelta(days=30)), clock=fake_clock)

    app.router.lifespan_context = _patch_lifespan(auth_store, session_manager)

    with TestClient(app, base_url="https://testserver", raise_server_exceptions=True) as client:
        yield client, session_manager, fake_clock

    auth_store.close()
