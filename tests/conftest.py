"""Pytest configuration and shared fixtures.

Organization:
    - Environment: keep tests off real infrastructure
    - Broker Fakes: aio-pika connection/channel/message doubles
    - Application Fixtures: FastAPI app and HTTP client
    - Company Fixtures: repository, service and recorded events
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
import os
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import ASGITransport, AsyncClient

from tests.utils import RecordingSink, make_channel, make_connection

# Ensure tests run without external infrastructure
os.environ.setdefault("RABBIT_ENABLED", "false")
os.environ.setdefault("LOG_CONSOLE_ENABLED", "false")
os.environ.setdefault("APP_ENVIRONMENT", "test")


# ============================================================================
# Broker Fakes
# ============================================================================


@pytest.fixture
def channel() -> MagicMock:
    return make_channel()


@pytest.fixture
def amqp_connection(channel: MagicMock) -> MagicMock:
    return make_connection(channel)


@pytest.fixture
def connect_mock(monkeypatch: pytest.MonkeyPatch, amqp_connection: MagicMock) -> AsyncMock:
    """Patch aio_pika.connect to hand out the fake connection."""
    mock = AsyncMock(return_value=amqp_connection)
    monkeypatch.setattr("company_service.infra.messaging.connection.aio_pika.connect", mock)
    return mock


# ============================================================================
# Application Fixtures
# ============================================================================


@pytest.fixture(autouse=True)
def _clear_settings_caches():
    from company_service.core.settings import clear_all_caches

    clear_all_caches()
    yield
    clear_all_caches()


@pytest.fixture
def app_settings():
    from company_service.core.settings import AppSettings

    return AppSettings(environment="test")


@pytest.fixture
def messaging_runtime() -> MagicMock:
    """Runtime double whose readiness is set per test."""
    runtime = MagicMock(name="messaging_runtime")
    runtime.enabled = True
    runtime.is_ready.return_value = True
    runtime.subscriber.state = "consuming"
    runtime.subscriber.supervisor.attempts = 0
    runtime.subscriber.supervisor.exhausted = False
    runtime.publisher.state = "topology_ready"
    return runtime


@pytest.fixture
def app(app_settings, messaging_runtime):
    """FastAPI application with app state prepared (lifespan not run)."""
    from company_service.app.main import create_app

    application = create_app()
    application.state.app_settings = app_settings
    application.state.messaging = messaging_runtime
    return application


@pytest.fixture
async def client(app) -> AsyncGenerator[AsyncClient]:
    """Async HTTP client bound to the app through ASGITransport."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


# ============================================================================
# Company Fixtures
# ============================================================================


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def company_repository():
    from company_service.features.companies import InMemoryCompanyRepository

    return InMemoryCompanyRepository()


@pytest.fixture
def company_service(company_repository, sink):
    from company_service.features.companies import CompanyEventPublisher, CompanyService

    return CompanyService(company_repository, CompanyEventPublisher(sink))


@pytest.fixture
def user_created_data() -> dict[str, Any]:
    return {
        "userId": "u1",
        "email": "Owner@Acme.test",
        "company": {"name": "Acme Ltd", "registrationNumber": "REG-1", "eik": "123456789"},
        "contact": {"phone": "+359 2 123 456", "address": "1 Main St", "city": "Sofia", "country": "BG"},
    }
