"""Unit tests for core/config.py -- Settings validation and timestamp helpers."""

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from core.config import Settings, to_iso


def test_debug_mode_generates_secret_key(monkeypatch):
    monkeypatch.delenv("SECRET_KEY", raising=False)
    settings = Settings(debug=True, secret_key="")
    assert len(settings.secret_key) >= 32


def test_production_requires_secret_key(monkeypatch):
    monkeypatch.delenv("SECRET_KEY", raising=False)
    with pytest.raises(ValidationError, match="SECRET_KEY is required"):
        Settings(debug=False, secret_key="")


def test_short_secret_key_rejected():
    with pytest.raises(ValidationError, match="at least 32 characters"):
        Settings(debug=False, secret_key="too-short")


def test_list_settings_parse_json_from_env(monkeypatch):
    monkeypatch.setenv("CORS_ORIGINS", '["https://herd.example"]')
    settings = Settings(debug=True)
    assert settings.cors_origins == ["https://herd.example"]


def test_defaults():
    settings = Settings(debug=True, secret_key="k" * 32)
    assert settings.token_expire_seconds == 3600
    assert settings.sas_token_ttl_seconds == 600
    assert settings.recent_notifications_limit == 4
    assert settings.database_url.startswith("sqlite:///")


def test_to_iso_normalizes_to_utc_seconds():
    local = datetime(2024, 5, 1, 14, 30, 15, 987654, tzinfo=timezone(timedelta(hours=2)))
    assert to_iso(local) == "2024-05-01T12:30:15+00:00"


def test_to_iso_treats_naive_as_utc():
    assert to_iso(datetime(2024, 1, 2, 3, 4, 5)) == "2024-01-02T03:04:05+00:00"
