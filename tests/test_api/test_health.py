"""Tests for health check endpoints."""

from __future__ import annotations


class TestHealthEndpoints:
    """Tests for /health and /health/detailed endpoints."""

    def test_health_basic(self, test_client) -> None:
        """Test GET /health returns 200 with status=healthy."""
        response = test_client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    def test_health_detailed_structure(self, test_client) -> None:
        """Test GET /health/detailed returns expected structure."""
        response = test_client.get("/health/detailed")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["checks"]["database"] == "ok"
        assert data["active_sessions"] == 0
        assert data["version"] == "0.1.0"

    def test_health_detailed_checks_services(self, test_client) -> None:
        """Provider keys from the test settings are all reported as configured."""
        response = test_client.get("/health/detailed")

        checks = response.json()["checks"]
        for provider in ("groq", "sarvam", "elevenlabs", "google_sheets"):
            assert checks[provider] == "configured"


class TestHealthMissingKeys:
    def test_missing_provider_keys(self, test_client, settings_factory) -> None:
        from src.api.routes import health

        bare = settings_factory(
            sarvam_api_key=None,
            elevenlabs_api_key=None,
            google_sheets_access_token=None,
        )
        test_client.app.dependency_overrides[health.get_settings] = lambda: bare

        checks = test_client.get("/health/detailed").json()["checks"]

        assert checks["groq"] == "configured"
        assert checks["sarvam"] == "missing"
        assert checks["elevenlabs"] == "missing"
        assert checks["google_sheets"] == "missing"
