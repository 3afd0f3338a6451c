"""
tests/conftest.py -- Shared test fixtures for HerdWatch integration tests.

This module provides:
  - _make_test_stores(): creates isolated in-memory DBs for users + herd data
  - _patch_lifespan(): wires test stores into app.state, bypassing real startup
  - api_client: TestClient plus a farmer account's JWT for API integration tests
  - other_user: a second account on the same client, for ownership tests
  - herd_store: a bare HerdStore on a private :memory: DB for store unit tests

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs route handlers in a thread pool. Plain :memory: DBs
are per-connection and would present a blank schema to each worker thread.
The named URI format (file:name?mode=memory&cache=shared&uri=true) shares
one in-memory instance across all connections in the same process.

Environment must be set before any api/auth/core import:
  DEBUG=true               -- get_settings() auto-generates SECRET_KEY
  RATE_LIMIT_ENABLED=false -- the suite registers and logs in far more often
                              than the per-IP limits allow
  ALLOWED_HOSTS            -- TestClient sends Host: testserver
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager

os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("ALLOWED_HOSTS", '["testserver", "localhost"]')

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.models import User
from auth.store import UserStore
from auth.tokens import create_access_token, hash_password
from herd.store import HerdStore

# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def _make_test_stores(db_suffix: str) -> tuple[UserStore, HerdStore]:
    """Create isolated named shared-memory SQLite stores.

    Args:
        db_suffix: Unique string appended to the DB name so test modules
                   don't share state.
    """
    users_url = f"sqlite:///file:test_users_{db_suffix}?mode=memory&cache=shared&uri=true"
    herd_url = f"sqlite:///file:test_herd_{db_suffix}?mode=memory&cache=shared&uri=true"
    return UserStore(db_url=users_url), HerdStore(db_url=herd_url)


def _patch_lifespan(user_store: UserStore, herd: HerdStore):
    """Return an async context manager that replaces the real lifespan."""

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.user_store = user_store
        app.state.herd = herd
        yield

    return test_lifespan


# ---------------------------------------------------------------------------
# Module-scoped fixtures -- one TestClient per test module for speed
# ---------------------------------------------------------------------------


@pytest.fixture(scope="module")
def api_client() -> Generator[tuple[TestClient, str, int], None, None]:
    """Yield (client, token, user_id) for API integration tests.

    Each test module gets its own pair of databases, so ids start at 1 and
    counts are predictable within a module. The farmer account
    (farmer@herd.test / testpass123) exists before the client starts.
    """
    user_store, herd = _make_test_stores(uuid.uuid4().hex[:8])

    farmer = User(
        name="Test Farmer",
        email="farmer@herd.test",
        hashed_password=hash_password("testpass123"),
        role="farmer",
    )
    uid = user_store.create_user(farmer)
    token = create_access_token(user_id=uid, email=farmer.email, expire_seconds=3600)

    app.router.lifespan_context = _patch_lifespan(user_store, herd)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, token, uid

    user_store.close()
    herd.close()


@pytest.fixture(scope="module")
def other_user(api_client) -> tuple[str, int]:
    """Register a second account through the API and return (token, user_id)."""
    client, _, _ = api_client
    resp = client.post(
        "/api/v1/auth/register",
        json={"name": "Other Farmer", "email": "other@herd.test", "password": "otherpass123"},
    )
    assert resp.status_code == 201, resp.text
    data = resp.json()
    return data["access_token"], data["user"]["id"]


@pytest.fixture
def herd_store() -> Generator[HerdStore, None, None]:
    """A HerdStore on a private single-connection in-memory database."""
    store = HerdStore(db_url="sqlite:///:memory:")
    yield store
    store.close()
