"""
tests/test_dashboard_routes.py -- Integration tests for /api/v1/dashboard.

Every test in this module runs against one database, so the herd is built
once by the `herd` fixture and the assertions read from it.

Coverage:
  - status-counts and species-counts match the seeded herd
  - sensor-anomalies lists every animal, null sensor_data where absent
  - seven-day-averages: overall + today's row, old readings excluded
  - latest-readings: one per animal with readings
  - All routes scoped to the caller; 401 without a token
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient


def _h(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture(scope="module")
def herd(api_client) -> dict[str, int]:
    client, token, _uid = api_client
    ids: dict[str, int] = {}
    for name, species, status in (
        ("Bess", "cattle", "Healthy"),
        ("Clover", "cattle", "Needs Attention"),
        ("Woolly", "sheep", "Critical"),
        ("Nibbles", "goat", None),
    ):
        body = {"name": name, "species": species}
        if status:
            body["status"] = status
        resp = client.post("/api/v1/livestock", json=body, headers=_h(token))
        assert resp.status_code == 201, resp.text
        ids[name] = resp.json()["id"]

    old = (datetime.now(timezone.utc) - timedelta(days=10)).isoformat()
    readings = (
        ("Bess", {"temperature": 38.0, "heart_rate": 60, "spo2": 98.0}),
        ("Bess", {"temperature": 39.0, "heart_rate": 70, "spo2": 96.0}),
        ("Clover", {"temperature": 40.0, "heart_rate": 80}),
        ("Woolly", {"temperature": 45.0, "timestamp": old}),
    )
    for name, body in readings:
        resp = client.post(f"/api/v1/livestock/{ids[name]}/sensor-data", json=body, headers=_h(token))
        assert resp.status_code == 201, resp.text

    client.put(
        f"/api/v1/livestock/{ids['Woolly']}/anomalies",
        json={"type": "fleece rot", "severity": "critical", "resolved": False},
        headers=_h(token),
    )
    return ids


class TestDashboard:
    def test_requires_auth(self, api_client: tuple[TestClient, str, int]) -> None:
        client, _token, _uid = api_client
        for path in ("status-counts", "species-counts", "sensor-anomalies", "seven-day-averages", "latest-readings"):
            assert client.get(f"/api/v1/dashboard/{path}").status_code == 401, path

    def test_status_counts(self, api_client, herd) -> None:
        client, token, _uid = api_client
        resp = client.get("/api/v1/dashboard/status-counts", headers=_h(token))
        assert resp.status_code == 200
        assert resp.json() == {"total": 4, "healthy": 1, "needs_attention": 1, "critical": 1}

    def test_species_counts(self, api_client, herd) -> None:
        client, token, _uid = api_client
        rows = client.get("/api/v1/dashboard/species-counts", headers=_h(token)).json()
        assert rows[0] == {"species": "cattle", "total": 2}
        assert {r["species"] for r in rows} == {"cattle", "sheep", "goat"}

    def test_sensor_anomalies(self, api_client, herd) -> None:
        client, token, _uid = api_client
        rows = client.get("/api/v1/dashboard/sensor-anomalies", headers=_h(token)).json()
        by_id = {r["livestock"]["id"]: r for r in rows}
        assert set(by_id) == set(herd.values())
        assert by_id[herd["Bess"]]["sensor_data"]["temperature"] == 39.0
        assert by_id[herd["Nibbles"]]["sensor_data"] is None
        assert by_id[herd["Woolly"]]["anomaly"]["type"] == "fleece rot"

    def test_seven_day_averages(self, api_client, herd) -> None:
        client, token, _uid = api_client
        resp = client.get("/api/v1/dashboard/seven-day-averages", headers=_h(token))
        assert resp.status_code == 200, resp.text
        data = resp.json()
        assert data["window_days"] == 7
        overall = data["overall"]
        assert overall["readings"] == 3
        assert overall["temperature"] == 39.0
        assert overall["heart_rate"] == 70.0
        assert overall["spo2"] == 97.0
        assert overall["respiratory_rate"] is None
        today = datetime.now(timezone.utc).date().isoformat()
        assert [d["day"] for d in data["days"]] == [today]

    def test_latest_readings(self, api_client, herd) -> None:
        client, token, _uid = api_client
        rows = client.get("/api/v1/dashboard/latest-readings", headers=_h(token)).json()
        by_animal = {r["livestock_id"]: r for r in rows}
        assert set(by_animal) == {herd["Bess"], herd["Clover"], herd["Woolly"]}
        assert by_animal[herd["Bess"]]["temperature"] == 39.0

    def test_other_user_sees_empty_dashboard(self, api_client, other_user, herd) -> None:
        client, _token, _uid = api_client
        other_token, _ = other_user
        counts = client.get("/api/v1/dashboard/status-counts", headers=_h(other_token)).json()
        assert counts == {"total": 0, "healthy": 0, "needs_attention": 0, "critical": 0}
        assert client.get("/api/v1/dashboard/sensor-anomalies", headers=_h(other_token)).json() == []
        assert client.get("/api/v1/dashboard/latest-readings", headers=_h(other_token)).json() == []
        averages = client.get("/api/v1/dashboard/seven-day-averages", headers=_h(other_token)).json()
        assert averages["overall"]["readings"] == 0
        assert averages["days"] == []
