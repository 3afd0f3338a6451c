"""
tests/test_auth_routes.py -- Integration tests for /api/v1/auth routes.

Coverage:
  - register: 201 with user + token, duplicate email 409, validation 422
  - login: valid 200, wrong password and unknown email both 401 bad_credentials
  - profile: 200 with token, 401 missing_token / invalid_token otherwise
  - Cache-Control: no-store on token responses

Fixtures used (from conftest.py):
  - api_client: (client, token, uid) -- farmer@herd.test / testpass123
"""

from __future__ import annotations

from fastapi.testclient import TestClient


class TestRegister:
    def test_register_returns_user_and_token(self, api_client: tuple[TestClient, str, int]) -> None:
        """POST /auth/register must return 201 with the new user and a bearer token."""
        client, _token, _uid = api_client
        resp = client.post(
            "/api/v1/auth/register",
            json={"name": "Vet Jo", "email": "Jo@Vets.test", "password": "vetpass1234", "role": "veterinarian"},
        )
        assert resp.status_code == 201, f"Expected 201, got {resp.status_code}: {resp.text}"
        data = resp.json()
        assert data["user"]["email"] == "jo@vets.test"
        assert data["user"]["role"] == "veterinarian"
        assert data["token_type"] == "bearer"
        assert data["expires_in"] == 3600
        assert "hashed_password" not in data["user"]
        assert resp.headers["Cache-Control"] == "no-store"

        profile = client.get("/api/v1/auth/profile", headers={"Authorization": f"Bearer {data['access_token']}"})
        assert profile.status_code == 200
        assert profile.json()["email"] == "jo@vets.test"

    def test_register_defaults_role_to_farmer(self, api_client: tuple[TestClient, str, int]) -> None:
        client, _token, _uid = api_client
        resp = client.post(
            "/api/v1/auth/register",
            json={"name": "Sam", "email": "sam@herd.test", "password": "sampass1234"},
        )
        assert resp.status_code == 201
        assert resp.json()["user"]["role"] == "farmer"

    def test_register_duplicate_email_conflicts(self, api_client: tuple[TestClient, str, int]) -> None:
        """Emails are case-insensitive, so a re-cased duplicate must also return 409."""
        client, _token, _uid = api_client
        resp = client.post(
            "/api/v1/auth/register",
            json={"name": "Dup", "email": "FARMER@herd.test", "password": "whatever123"},
        )
        assert resp.status_code == 409, f"Expected 409, got {resp.status_code}: {resp.text}"
        assert resp.json()["error"]["code"] == "email_taken"

    def test_register_rejects_short_password(self, api_client: tuple[TestClient, str, int]) -> None:
        client, _token, _uid = api_client
        resp = client.post(
            "/api/v1/auth/register",
            json={"name": "Short", "email": "short@herd.test", "password": "abc"},
        )
        assert resp.status_code == 422
        assert resp.json()["error"]["code"] == "validation_error"

    def test_register_rejects_password_over_72_bytes(self, api_client: tuple[TestClient, str, int]) -> None:
        """40 two-byte characters pass a character count but exceed bcrypt's byte limit."""
        client, _token, _uid = api_client
        resp = client.post(
            "/api/v1/auth/register",
            json={"name": "Accent", "email": "accent@herd.test", "password": "é" * 40},
        )
        assert resp.status_code == 422
        error = resp.json()["error"]
        assert error["code"] == "validation_error"
        assert "body.password" in error["detail"]

    def test_register_accepts_multibyte_password_at_limit(self, api_client: tuple[TestClient, str, int]) -> None:
        client, _token, _uid = api_client
        password = "é" * 36
        resp = client.post(
            "/api/v1/auth/register",
            json={"name": "Accent", "email": "accent72@herd.test", "password": password},
        )
        assert resp.status_code == 201, resp.text
        login = client.post("/api/v1/auth/login", json={"email": "accent72@herd.test", "password": password})
        assert login.status_code == 200

    def test_register_rejects_unknown_role(self, api_client: tuple[TestClient, str, int]) -> None:
        client, _token, _uid = api_client
        resp = client.post(
            "/api/v1/auth/register",
            json={"name": "Root", "email": "root@herd.test", "password": "rootpass123", "role": "superuser"},
        )
        assert resp.status_code == 422

    def test_register_rejects_malformed_email(self, api_client: tuple[TestClient, str, int]) -> None:
        client, _token, _uid = api_client
        resp = client.post(
            "/api/v1/auth/register",
            json={"name": "Bad", "email": "not-an-email", "password": "badpass123"},
        )
        assert resp.status_code == 422


class TestLogin:
    def test_login_valid_credentials(self, api_client: tuple[TestClient, str, int]) -> None:
        """POST /auth/login with correct credentials must return 200 with access_token and the user."""
        client, _token, uid = api_client
        resp = client.post("/api/v1/auth/login", json={"email": "farmer@herd.test", "password": "testpass123"})
        assert resp.status_code == 200, f"Expected 200, got {resp.status_code}: {resp.text}"
        data = resp.json()
        assert data["access_token"]
        assert data["user"]["id"] == uid
        assert resp.headers["Cache-Control"] == "no-store"

    def test_login_email_is_case_insensitive(self, api_client: tuple[TestClient, str, int]) -> None:
        client, _token, _uid = api_client
        resp = client.post("/api/v1/auth/login", json={"email": "Farmer@Herd.Test", "password": "testpass123"})
        assert resp.status_code == 200

    def test_login_wrong_password(self, api_client: tuple[TestClient, str, int]) -> None:
        """A wrong password must return 401 with the bad_credentials error code."""
        client, _token, _uid = api_client
        resp = client.post("/api/v1/auth/login", json={"email": "farmer@herd.test", "password": "wrongpassword"})
        assert resp.status_code == 401, f"Expected 401, got {resp.status_code}: {resp.text}"
        assert resp.json()["error"]["code"] == "bad_credentials"

    def test_login_unknown_email_matches_wrong_password(self, api_client: tuple[TestClient, str, int]) -> None:
        """Unknown email and wrong password must be indistinguishable to the client."""
        client, _token, _uid = api_client
        unknown = client.post("/api/v1/auth/login", json={"email": "nobody@herd.test", "password": "testpass123"})
        wrong = client.post("/api/v1/auth/login", json={"email": "farmer@herd.test", "password": "nope-nope"})
        assert unknown.status_code == wrong.status_code == 401
        assert unknown.json() == wrong.json()


class TestProfile:
    def test_profile_authenticated(self, api_client: tuple[TestClient, str, int]) -> None:
        client, token, uid = api_client
        resp = client.get("/api/v1/auth/profile", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 200, f"Expected 200, got {resp.status_code}: {resp.text}"
        data = resp.json()
        assert data["id"] == uid
        assert data["email"] == "farmer@herd.test"
        assert data["role"] == "farmer"
        assert data["name"] == "Test Farmer"

    def test_profile_missing_token(self, api_client: tuple[TestClient, str, int]) -> None:
        client, _token, _uid = api_client
        resp = client.get("/api/v1/auth/profile")
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "missing_token"
        assert resp.json()["error"]["detail"] is None

    def test_profile_invalid_token(self, api_client: tuple[TestClient, str, int]) -> None:
        client, _token, _uid = api_client
        resp = client.get("/api/v1/auth/profile", headers={"Authorization": "Bearer not.a.jwt"})
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "invalid_token"
        assert resp.json()["error"]["detail"] is None

    def test_profile_wrong_scheme(self, api_client: tuple[TestClient, str, int]) -> None:
        """A Basic header is not a bearer token and must be treated as missing."""
        client, token, _uid = api_client
        resp = client.get("/api/v1/auth/profile", headers={"Authorization": f"Basic {token}"})
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "missing_token"
