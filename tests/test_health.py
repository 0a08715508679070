"""Tests for /health and / endpoints."""

from tests.factories import make_user


class TestHealth:

    def test_health_returns_200(self, client, db):
        make_user(db)
        resp = client.get("/health")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "healthy"
        assert data["db"] == "ok"
        assert data["account_count"] == 1
        assert "uptime_seconds" in data
        assert "version" in data

    def test_root_returns_api_info(self, client):
        resp = client.get("/")
        assert resp.status_code == 200
        assert resp.json()["name"] == "Timekeeper API"


class TestResponseHeaders:

    def test_response_includes_middleware_headers(self, client):
        resp = client.get("/health")
        assert "x-request-id" in resp.headers
        assert "x-response-time" in resp.headers

    def test_request_id_is_propagated(self, client):
        resp = client.get("/health", headers={"X-Request-ID": "trace-123"})
        assert resp.headers["x-request-id"] == "trace-123"
