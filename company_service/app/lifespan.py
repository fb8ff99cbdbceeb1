"""Application lifespan management.

Startup order:
1. Logging
2. Company repository and service
3. Messaging runtime (publisher, then subscriber)

Shutdown runs in reverse: the subscriber stops consuming before the publisher
closes, so no handler publishes into a closed channel.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
import logging
import time
from typing import TYPE_CHECKING

from company_service.core.settings import (
    get_app_settings,
    get_logging_settings,
    get_rabbit_settings,
)
from company_service.features.companies import (
    CompanyEventPublisher,
    CompanyService,
    InMemoryCompanyRepository,
    build_company_handlers,
)
from company_service.infra.logging import setup_logging
from company_service.infra.messaging import (
    BrokerConnectionError,
    EventHandlerRegistry,
    MessagingRuntime,
)

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from fastapi import FastAPI

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build the service graph once, start messaging, and tear it down on exit.

    Raises:
        TopologyError: If the broker holds conflicting definitions.
        BrokerConnectionError: If RabbitMQ is required but unavailable.
    """
    app_settings = get_app_settings()
    rabbit_settings = get_rabbit_settings()
    setup_logging(get_logging_settings())

    logger.info(
        "Application starting",
        extra={
            "service_name": app_settings.service_name,
            "version": app_settings.version,
            "environment": app_settings.environment,
        },
    )

    # The registry is filled after the service exists; the service publishes through the runtime
    handlers = EventHandlerRegistry()
    runtime = MessagingRuntime.from_settings(rabbit_settings, handlers)
    repository = InMemoryCompanyRepository()
    service = CompanyService(repository, CompanyEventPublisher(runtime))
    build_company_handlers(service, rabbit_settings.inbound_namespace, registry=handlers)

    app.state.app_settings = app_settings
    app.state.started_at = time.monotonic()
    app.state.company_repository = repository
    app.state.company_service = service
    app.state.messaging = runtime

    try:
        await runtime.start()
        if rabbit_settings.startup_require_rabbit and not runtime.is_ready():
            logger.error(
                "RabbitMQ required but unavailable, failing startup",
                extra={"startup_require_rabbit": True},
            )
            raise BrokerConnectionError("RabbitMQ required but unavailable")
        if not runtime.is_ready():
            logger.warning(
                "RabbitMQ unavailable, continuing in degraded mode",
                extra={"startup_require_rabbit": False},
            )
    except BaseException:
        await runtime.close()
        raise

    logger.info("Application startup complete")
    try:
        yield
    finally:
        logger.info("Application shutting down")
        await runtime.close()
        logger.info("Application shutdown complete")
