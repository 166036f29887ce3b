"""
tests/conftest.py -- Shared test fixtures for Yamerito integration tests.

This module provides:
  - _make_test_store(): creates an isolated in-memory DB for the user store
  - _patch_lifespan(): wires the test store into app.state, bypassing real startup
  - api_client: TestClient with an admin JWT for API integration tests
  - user_store: a fresh store for repository unit tests

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs sync route handlers in a thread pool. Plain :memory:
DBs are per-connection and would present a blank schema to each worker thread.
The named URI format (file:name?mode=memory&cache=shared&uri=true) shares
one in-memory instance across all connections in the same process.

JWT_SECRET_KEY must be set before any auth/core import: get_settings() is
cached on first use and the signing secret is write-once.
"""

from __future__ import annotations

import os
from collections.abc import Generator
from contextlib import asynccontextmanager
from itertools import count

# CRITICAL: Set the environment before any auth/core import.
os.environ.setdefault("JWT_SECRET_KEY", "test-signing-secret-0123456789-abcdefghij")
os.environ.setdefault("LOGIN_RATE_LIMIT", "1000/minute")
os.environ.setdefault("DATABASE_URL", "sqlite:///file:test_default?mode=memory&cache=shared&uri=true")
os.environ.setdefault("FRONTEND_DIST_DIR", "tests/_no_frontend_build")

import pytest
from fastapi.testclient import TestClient

from asgi import app
from auth.models import Role, User
from auth.passwords import hash_password
from auth.store import UserStore
from auth.tokens import init_signing_secret, issue_token

ADMIN_USERNAME = "testadmin"
ADMIN_PASSWORD = "testpass123"

_db_counter = count()

# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def _make_test_store(db_suffix: str) -> UserStore:
    """Create an isolated named shared-memory SQLite store.

    Args:
        db_suffix: Unique string appended to the DB name so test modules
                   don't share state.
    """
    return UserStore(db_url=f"sqlite:///file:test_auth_{db_suffix}?mode=memory&cache=shared&uri=true")


def _patch_lifespan(user_store: UserStore):
    """Return an async context manager that replaces the real lifespan.

    Wires the pre-created test store into app.state so TestClient routes see
    an isolated test DB rather than the configured database.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        init_signing_secret()
        app.state.user_store = user_store
        yield

    return test_lifespan


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def user_store() -> Generator[UserStore, None, None]:
    """A fresh, empty store per test."""
    store = _make_test_store(f"unit_{next(_db_counter)}")
    yield store
    store.close()


@pytest.fixture(scope="module")
def api_client(request) -> Generator[tuple[TestClient, str, int], None, None]:
    """Yield (client, token, user_id) for API integration tests.

    The TestClient uses the real ASGI app (API + SPA routers) with a patched
    lifespan, so tests hit real route handlers, middleware and exception
    handlers but use an isolated in-memory store. The admin user is created
    before the client starts and its token goes in Authorization headers.
    """
    user_store = _make_test_store(request.module.__name__.rsplit(".", 1)[-1])

    uid = user_store.create_user(
        User(
            username=ADMIN_USERNAME,
            hashed_password=hash_password(ADMIN_PASSWORD),
            role=Role.ADMIN,
        )
    )
    token = issue_token(user_id=uid, username=ADMIN_USERNAME, role=Role.ADMIN)

    app.router.lifespan_context = _patch_lifespan(user_store)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, token, uid

    user_store.close()
