"""Tests for health check endpoints."""

from unittest.mock import AsyncMock, patch

import pytest

from basal_tracker import __version__


class TestHealthEndpoint:
    """Tests for /health endpoint."""

    @pytest.mark.asyncio
    async def test_returns_healthy_with_db_connected(self, client):
        with patch(
            "basal_tracker.routers.health.check_database_connection",
            new_callable=AsyncMock,
        ) as mock_db:
            mock_db.return_value = True

            response = await client.get("/health")

            assert response.status_code == 200
            data = response.json()
            assert data["status"] == "healthy"
            assert data["database"] == "connected"

    @pytest.mark.asyncio
    async def test_returns_degraded_when_db_disconnected(self, client):
        with patch(
            "basal_tracker.routers.health.check_database_connection",
            new_callable=AsyncMock,
        ) as mock_db:
            mock_db.return_value = False

            response = await client.get("/health")

            assert response.status_code == 503
            data = response.json()
            assert data["status"] == "degraded"
            assert data["database"] == "disconnected"


class TestLivenessProbe:
    """Tests for /health/live endpoint."""

    @pytest.mark.asyncio
    async def test_returns_alive(self, client):
        """Liveness never touches the database."""
        with patch(
            "basal_tracker.routers.health.check_database_connection",
            new_callable=AsyncMock,
        ) as mock_db:
            response = await client.get("/health/live")

            assert response.status_code == 200
            assert response.json()["status"] == "alive"
            mock_db.assert_not_called()


class TestReadinessProbe:
    """Tests for /health/ready endpoint."""

    @pytest.mark.asyncio
    async def test_returns_ready_with_db_connected(self, client):
        with patch(
            "basal_tracker.routers.health.check_database_connection",
            new_callable=AsyncMock,
        ) as mock_db:
            mock_db.return_value = True

            response = await client.get("/health/ready")

            assert response.status_code == 200
            data = response.json()
            assert data["status"] == "ready"
            assert data["database"] == "connected"

    @pytest.mark.asyncio
    async def test_returns_not_ready_when_db_disconnected(self, client):
        with patch(
            "basal_tracker.routers.health.check_database_connection",
            new_callable=AsyncMock,
        ) as mock_db:
            mock_db.return_value = False

            response = await client.get("/health/ready")

            assert response.status_code == 503
            assert response.json()["status"] == "not_ready"


class TestRootEndpoint:
    """Tests for root endpoint."""

    @pytest.mark.asyncio
    async def test_returns_api_info(self, client):
        response = await client.get("/")

        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "Basal Tracker API"
        assert data["version"] == __version__
        assert data["docs"] == "/docs"


class TestCorrelationId:
    """Correlation ID propagation through CorrelationIdMiddleware."""

    @pytest.mark.asyncio
    async def test_echoes_incoming_correlation_id(self, client):
        response = await client.get(
            "/health/live", headers={"X-Correlation-ID": "req-42"}
        )

        assert response.headers["x-correlation-id"] == "req-42"

    @pytest.mark.asyncio
    async def test_generates_correlation_id_when_missing(self, client):
        first = await client.get("/health/live")
        second = await client.get("/health/live")

        assert first.headers["x-correlation-id"]
        assert first.headers["x-correlation-id"] != second.headers["x-correlation-id"]
