"""Tests for the health endpoints."""

from __future__ import annotations

import pytest

from company_service.features.health.providers import MessagingHealthProvider
from company_service.features.health.schemas import HealthStatus
from company_service.infra.messaging import MessagingRuntime


@pytest.mark.unit
class TestHealthEndpoints:
    """Test suite for /health, /health/live and /health/ready."""

    @pytest.mark.asyncio
    async def test_health_returns_service_info(self, client):
        response = await client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ok"
        assert body["service"] == "company-service"
        assert body["version"] == "1.0.0"
        assert body["uptime_seconds"] >= 0

    @pytest.mark.asyncio
    async def test_liveness_ignores_messaging(self, client, messaging_runtime):
        messaging_runtime.is_ready.return_value = False

        response = await client.get("/health/live")

        assert response.status_code == 200
        assert response.json()["alive"] is True

    @pytest.mark.asyncio
    async def test_ready_when_subscriber_consuming(self, client):
        response = await client.get("/health/ready")

        assert response.status_code == 200
        body = response.json()
        assert body["ready"] is True
        assert body["status"] == "ready"
        assert body["checks"]["messaging"]["status"] == "healthy"

    @pytest.mark.asyncio
    async def test_not_ready_returns_503(self, client, messaging_runtime):
        messaging_runtime.is_ready.return_value = False
        messaging_runtime.subscriber.state = "reconnecting"
        messaging_runtime.subscriber.supervisor.attempts = 2

        response = await client.get("/health/ready")

        assert response.status_code == 503
        body = response.json()
        assert body["ready"] is False
        assert body["status"] == "not_ready"
        check = body["checks"]["messaging"]
        assert check["status"] == "unhealthy"
        assert check["metadata"]["subscriber_state"] == "reconnecting"
        assert check["metadata"]["reconnect_attempts"] == 2

    @pytest.mark.asyncio
    async def test_disabled_messaging_is_not_ready(self, app, client):
        app.state.messaging = MessagingRuntime()

        response = await client.get("/health/ready")

        assert response.status_code == 503
        assert response.json()["checks"]["messaging"]["metadata"]["enabled"] is False

    @pytest.mark.asyncio
    async def test_provider_error_reports_unhealthy(self, client, messaging_runtime):
        messaging_runtime.is_ready.side_effect = RuntimeError("state unavailable")

        response = await client.get("/health/ready")

        assert response.status_code == 503
        assert "state unavailable" in response.json()["checks"]["messaging"]["message"]


@pytest.mark.unit
class TestMessagingHealthProvider:
    """Test suite for MessagingHealthProvider."""

    @pytest.mark.asyncio
    async def test_reports_exhausted_supervisor(self, messaging_runtime):
        messaging_runtime.is_ready.return_value = False
        messaging_runtime.subscriber.supervisor.exhausted = True

        result = await MessagingHealthProvider(messaging_runtime).check_health()

        assert result.status is HealthStatus.UNHEALTHY
        assert not result.healthy
        assert result.metadata["reconnect_exhausted"] is True

    @pytest.mark.asyncio
    async def test_healthy_result(self, messaging_runtime):
        result = await MessagingHealthProvider(messaging_runtime).check_health()

        assert result.healthy
        assert result.message == "Subscriber consuming"
        assert result.latency_ms >= 0
