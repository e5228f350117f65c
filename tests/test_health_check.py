import logging
from unittest.mock import patch

from django.db import DatabaseError


class TestHealthCheck:
    def test_health_check_returns_200(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert "timestamp" in data
        assert set(data["services"]) == {"database", "cache"}

    def test_database_probe_reports_pending_events(self, client, create_order):
        create_order()
        database = client.get("/health").json()["services"]["database"]
        assert database["status"] == "up"
        assert "response_time_ms" in database
        assert database["pending_events"] == 1

    def test_cache_probe(self, client):
        cache = client.get("/health").json()["services"]["cache"]
        assert cache["status"] == "up"
        assert "response_time_ms" in cache

    def test_database_down_returns_503(self, client, caplog):
        with patch(
            "modules.core.views._probe_database", side_effect=DatabaseError("offline")
        ), caplog.at_level(logging.ERROR):
            response = client.get("/health")

        assert response.status_code == 503
        data = response.json()
        assert data["status"] == "unhealthy"
        assert data["services"]["database"] == {"status": "down"}
        assert any("health_check.database_down" in r.getMessage() for r in caplog.records)

    def test_cache_down_returns_503(self, client):
        with patch(
            "modules.core.views._probe_cache", side_effect=ConnectionError("offline")
        ):
            response = client.get("/health")

        assert response.status_code == 503
        assert response.json()["services"]["cache"] == {"status": "down"}

    def test_health_is_public(self, client):
        assert client.get("/health").status_code == 200
