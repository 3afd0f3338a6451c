"""
tests/test_health.py -- Integration tests for GET /api/v1/health.

Covers:
  - 200 response with status, version, and components fields
  - components.database reports 'ok' when both stores answer
  - "degraded" when a store fails its ping
  - No authentication required
  - Error envelope for unknown routes and validation failures
"""

from __future__ import annotations

import inspect
from unittest.mock import patch


def test_health_returns_200_with_components(api_client):
    """Health endpoint returns 200 with status, version, and components."""
    client, _token, _ = api_client
    resp = client.get("/api/v1/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "healthy"
    assert data["version"]
    assert data["components"] == {"app": "ok", "database": "ok"}


def test_health_no_auth_required(api_client):
    """Health endpoint is accessible without any authentication headers."""
    client, _, _ = api_client
    resp = client.get("/api/v1/health", headers={})
    assert resp.status_code == 200
    assert resp.json()["status"] == "healthy"


def test_health_degraded_when_database_unreachable(api_client):
    """A failing store ping flips status to degraded without erroring."""
    client, _, _ = api_client
    herd = client.app.state.herd
    with patch.object(herd, "ping", return_value=False):
        resp = client.get("/api/v1/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "degraded"
    assert data["components"]["database"] == "unavailable"


def test_unknown_route_uses_error_envelope(api_client):
    """Starlette's own 404 is wrapped in the same envelope as route errors."""
    client, _, _ = api_client
    resp = client.get("/api/v1/no-such-route")
    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == "http_404"


def test_validation_error_names_the_field(api_client):
    client, token, _ = api_client
    resp = client.post("/api/v1/farms", json={}, headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 422
    error = resp.json()["error"]
    assert error["code"] == "validation_error"
    assert "body.name" in error["detail"]


def test_health_handler_runs_in_thread_pool():
    """Store pings block, so the handler must be sync for FastAPI to offload it."""
    from api.main import health

    assert not inspect.iscoroutinefunction(health)
