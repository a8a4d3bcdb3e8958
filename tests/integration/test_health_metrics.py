"""Integration tests for /health, /healthz and /metrics endpoints."""

from collections.abc import Iterator
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from backend.app.config import Settings
from backend.app.llm.client import DeterministicGenerationClient
from backend.app.main import create_app


@pytest.fixture
def client() -> Iterator[TestClient]:
    """Create test client."""
    app = create_app(
        Settings(allow_offline_generation=True, database_url=None, redis_url=None),
        client=DeterministicGenerationClient(),
    )
    with TestClient(app) as test_client:
        yield test_client


def test_health_always_ok(client: TestClient) -> None:
    """Test /health returns 200."""
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_root(client: TestClient) -> None:
    """Test the root endpoint names the service."""
    assert client.get("/").json()["message"] == "Agent Dash API"


class TestHealthEndpoint:
    """Test /healthz endpoint."""

    def test_healthz_in_memory(self, client: TestClient) -> None:
        """Test in-memory stores report as healthy."""
        response = client.get("/healthz")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["components"] == {
            "db": "in_memory",
            "redis": "not_configured",
            "generation": "ok",
        }

    @patch("backend.app.api.routes.health.check_db")
    def test_healthz_returns_503_when_db_fails(
        self, mock_check_db: MagicMock, client: TestClient
    ) -> None:
        """Test /healthz returns 503 when the database check fails."""
        mock_check_db.return_value = (False, "error: OperationalError")

        response = client.get("/healthz")

        assert response.status_code == 503
        data = response.json()
        assert data["status"] == "degraded"
        assert data["components"]["db"] == "error: OperationalError"

    @patch("backend.app.api.routes.health.check_redis")
    def test_healthz_returns_503_when_redis_fails(
        self, mock_check_redis: MagicMock, client: TestClient
    ) -> None:
        """Test /healthz returns 503 when Redis check fails."""
        mock_check_redis.return_value = (False, "error: ConnectionError")

        response = client.get("/healthz")

        assert response.status_code == 503
        assert response.json()["components"]["redis"] == "error: ConnectionError"

    def test_unconfigured_generation_is_not_fatal(self) -> None:
        """Test a missing key is reported without failing the health check."""
        app = create_app(
            Settings(allow_offline_generation=False, database_url=None, redis_url=None)
        )

        with TestClient(app) as client:
            response = client.get("/healthz")

        assert response.status_code == 200
        assert response.json()["components"]["generation"] == "not_configured"

    def test_sqlite_database_reports_ok(self, tmp_path: Path) -> None:
        """Test a configured database is checked with a real query."""
        app = create_app(
            Settings(
                allow_offline_generation=True,
                database_url=f"sqlite:///{tmp_path}/health.db",
                redis_url=None,
            )
        )

        with TestClient(app) as client:
            response = client.get("/healthz")

        assert response.status_code == 200
        assert response.json()["components"]["db"] == "ok"


class TestMetricsEndpoint:
    """Test /metrics endpoint."""

    def test_metrics_exposes_generation_and_transition_series(self, client: TestClient) -> None:
        """Test metrics include generation and conversation series after a flow."""
        conversation_id = client.post("/conversations").json()["id"]
        client.post(
            f"/conversations/{conversation_id}/uploads",
            json={"files": [{"name": "a.csv", "mime_type": "text/csv", "content": "a,b\n1,2\n"}]},
        )

        response = client.get("/metrics")

        assert response.status_code == 200
        assert "text/plain" in response.headers["content-type"]
        body = response.text
        assert "generation_latency_ms" in body
        assert "generation_fallbacks_total" in body
        assert 'conversation_transitions_total{from_step="upload",to_step="data-selection"}' in body
