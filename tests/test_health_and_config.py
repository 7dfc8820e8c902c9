"""
Health/readiness endpoints and startup configuration validation.
"""

from unittest.mock import patch

from app.main import validate_settings


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["ok"] is True
    assert "update_location_cron_util" in data["templates"]
    assert data["features"]["scheduler_enabled"] is False
    assert data["features"]["whatsapp_dry_run"] is True
    assert data["features"]["weekly_campaign_configured"] is False


def test_ready(client):
    response = client.get("/ready")
    assert response.status_code == 200
    assert response.json() == {"ok": True, "database": "connected"}


def test_correlation_id_generated_when_missing(client):
    response = client.get("/health")
    assert len(response.headers["X-Correlation-ID"]) == 36


def test_dev_settings_are_valid():
    assert validate_settings() == []


def test_production_requires_secrets():
    with (
        patch("app.main.settings.app_env", "production"),
        patch("app.main.settings.jwt_secret", "changeme"),
    ):
        errors = validate_settings()
    assert any(e.startswith("ADMIN_API_KEY is required in production") for e in errors)
    assert any(e.startswith("WHATSAPP_APP_SECRET is required in production") for e in errors)
    assert any(e.startswith("JWT_SECRET must be a random value") for e in errors)


def test_production_with_strong_settings():
    with (
        patch("app.main.settings.app_env", "production"),
        patch("app.main.settings.admin_api_key", "k" * 40),
        patch("app.main.settings.whatsapp_app_secret", "meta-app-secret"),
        patch("app.main.settings.jwt_secret", "a9f8e7d6c5b4a3928171605f4e3d2c1b0a"),
    ):
        assert validate_settings() == []
