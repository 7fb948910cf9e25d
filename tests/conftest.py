"""
tests/conftest.py -- Shared test fixtures for OpenAudit tests.

This module provides:
  - make_stores(): isolated in-memory DBs for users, sessions and documents
  - _patch_lifespan(): wires test stores into app.state, bypassing real startup
  - stores / client: function-scoped stores and a TestClient bound to them
  - make_user / sign_in: factories for arranging signed-in callers

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs route handlers in a thread pool. Plain :memory: DBs
are per-connection and would present a blank schema to each worker thread.
Every fixture invocation gets its own DB name so tests never share rows.

DEBUG must be set before any auth/core import so get_settings() auto-generates
SECRET_KEY in dev mode rather than raising ValueError. ALLOWED_HOSTS must
include TestClient's default host for TrustedHostMiddleware.
"""

from __future__ import annotations

import asyncio
import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager
from dataclasses import dataclass

# CRITICAL: set before any api/auth/core import.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("ALLOWED_HOSTS", '["testserver", "localhost"]')

import pytest
from fastapi.testclient import TestClient
from limits.storage import MemoryStorage

from api.limiter import limiter
from api.main import app
from auth.brute_force import BruteForceGuard
from auth.models import User
from auth.session_store import SessionStore
from auth.sessions import SessionAuthenticator
from auth.store import UserStore
from auth.tokens import hash_password
from documents.store import DocumentStore

PASSWORD = "correct horse battery"

# Large enough that no ordinary test trips a budget.
TEST_BUDGETS = {
    "signup": 1000,
    "confirm-email": 1000,
    "resend-confirm-code": 1000,
    "signin": 1000,
    "signout": 1000,
    "forgot-password": 1000,
    "reset-password": 1000,
    "do-not-email": 1000,
}


@dataclass
class Stores:
    users: UserStore
    sessions: SessionStore
    documents: DocumentStore
    authenticator: SessionAuthenticator
    guard: BruteForceGuard

    def close(self) -> None:
        self.documents.close()
        self.sessions.close()
        self.users.close()


def _memory_url(name: str) -> str:
    return f"sqlite:///file:{name}_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true"


def make_stores(budgets: dict[str, int] | None = None, session_ttl: int = 3600) -> Stores:
    """Create a fresh, isolated set of stores.

    Users and sessions share one database, as they do in production.
    """
    auth_url = _memory_url("test_auth")
    users = UserStore(auth_url)
    sessions = SessionStore(auth_url, ttl=session_ttl)
    documents = DocumentStore(_memory_url("test_docs"))
    return Stores(
        users=users,
        sessions=sessions,
        documents=documents,
        authenticator=SessionAuthenticator(users, sessions),
        guard=BruteForceGuard(MemoryStorage(), budgets or TEST_BUDGETS, window_seconds=3600),
    )


def _patch_lifespan(stores: Stores):
    """Return an async context manager that replaces the real lifespan.

    The purge_task is a long-sleeping coroutine so shutdown can .cancel() a
    real asyncio.Task just like production.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.user_store = stores.users
        app.state.session_store = stores.sessions
        app.state.document_store = stores.documents
        app.state.authenticator = stores.authenticator
        app.state.brute_force = stores.guard
        app.state.purge_task = asyncio.create_task(asyncio.sleep(99999))
        yield
        app.state.purge_task.cancel()

    return test_lifespan


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_flood_limit() -> None:
    """Keep the app-wide slowapi limit from carrying over between tests."""
    limiter.reset()


@pytest.fixture
def stores() -> Generator[Stores, None, None]:
    s = make_stores()
    yield s
    s.close()


def start_client(stores: Stores) -> TestClient:
    app.router.lifespan_context = _patch_lifespan(stores)
    return TestClient(app, raise_server_exceptions=True)


@pytest.fixture
def client(stores: Stores) -> Generator[TestClient, None, None]:
    with start_client(stores) as c:
        yield c


@pytest.fixture
def make_user(stores: Stores):
    """Factory creating a user directly in the store (confirmed by default)."""

    def _make(username: str, *, confirmed: bool = True, password: str = PASSWORD) -> User:
        return stores.users.create_user(
            User(
                username=username,
                email=f"{username}@example.com",
                hashed_password=hash_password(password),
                email_confirmed=confirmed,
            )
        )

    return _make


@pytest.fixture
def sign_in(client: TestClient):
    """Return a helper that replaces the client's cookies with a fresh session for a user."""

    def _sign_in(user: User, password: str = PASSWORD) -> None:
        client.cookies.clear()
        resp = client.post("/api/v1/user/signin", json={"email": user.email, "password": password})
        assert resp.status_code == 200, resp.text

    return _sign_in


@pytest.fixture
def client_with_budgets():
    """Factory yielding a TestClient whose brute-force budgets are overridden.

    Usage:
        client, stores = client_with_budgets({"signin": 2})
    """
    opened: list[tuple[TestClient, Stores]] = []

    def _open(budgets: dict[str, int]) -> tuple[TestClient, Stores]:
        s = make_stores({**TEST_BUDGETS, **budgets})
        c = start_client(s)
        c.__enter__()
        opened.append((c, s))
        return c, s

    yield _open

    for c, s in opened:
        c.__exit__(None, None, None)
        s.close()
