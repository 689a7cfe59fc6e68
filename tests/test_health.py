"""
Tests for health check endpoints.
"""
from unittest.mock import MagicMock

from fastapi.testclient import TestClient

from cashflow_api.core.revocation import RedisRevocationRegistry


class TestHealth:
    """Tests for health check endpoints."""

    def test_basic_health(self, client: TestClient):
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["services"] == {"database": "connected"}
        assert "timestamp" in data

    def test_ready(self, client: TestClient):
        response = client.get("/health/ready")

        assert response.status_code == 200
        assert response.json() == {"status": "ready"}

    def test_redis_down_is_unhealthy(self, app, client: TestClient):
        redis_client = MagicMock()
        redis_client.ping.side_effect = ConnectionError("refused")
        app.state.revocation_registry = RedisRevocationRegistry(redis_client, default_ttl=None)

        response = client.get("/health")

        assert response.status_code == 503
        assert response.json()["services"]["redis"] == "disconnected"

    def test_health_needs_no_token(self, client: TestClient):
        assert client.get("/health").status_code == 200


class TestApp:

    def test_root(self, client: TestClient):
        response = client.get("/")

        assert response.status_code == 200
        assert response.json()["health"] == "/health"

    def test_unknown_route(self, client: TestClient):
        response = client.get("/non-existent-route")

        assert response.status_code == 404
        body = response.json()
        assert body["success"] is False
        assert body["code"] == "not_found"

    def test_request_id_is_echoed_in_errors(self, client: TestClient):
        response = client.get("/user/me", headers={"X-Request-ID": "req-123"})

        assert response.json()["request_id"] == "req-123"
