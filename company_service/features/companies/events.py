"""Company domain events published to the ``company_events`` exchange.

These events are published when a company record changes. Consumers use them
to keep read models and notifications in sync; the payload is intentionally
small (identity, name, email) so consumers fetch details when they need them.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, Protocol

from company_service.infra.messaging.conventions import (
    COMPANY_CREATED,
    COMPANY_DELETED,
    COMPANY_UPDATED,
)
from company_service.infra.messaging.envelope import EventEnvelope

if TYPE_CHECKING:
    from company_service.features.companies.models import Company

SERVICE_NAME = "company-service"


class EventSink(Protocol):
    """Anything that can publish an envelope under a routing key."""

    async def publish(self, routing_key: str, envelope: EventEnvelope) -> None: ...


def _base_data(company: Company) -> dict[str, Any]:
    return {
        "companyId": company.id,
        "name": company.name,
        "email": company.email,
        "timestamp": datetime.now(UTC).isoformat(),
    }


def company_created_event(company: Company, *, service: str = SERVICE_NAME) -> EventEnvelope:
    """Build the ``company.created`` envelope."""
    data = _base_data(company)
    data["registrationNumber"] = company.registration_number
    data["createdBy"] = company.created_by
    return EventEnvelope(event_type=COMPANY_CREATED, data=data, service=service)


def company_updated_event(
    company: Company,
    updated_fields: Sequence[str] = (),
    *,
    service: str = SERVICE_NAME,
) -> EventEnvelope:
    """Build the ``company.updated`` envelope listing the changed fields."""
    data = _base_data(company)
    data["updatedFields"] = list(updated_fields)
    return EventEnvelope(event_type=COMPANY_UPDATED, data=data, service=service)


def company_deleted_event(company: Company, *, service: str = SERVICE_NAME) -> EventEnvelope:
    """Build the ``company.deleted`` envelope."""
    return EventEnvelope(event_type=COMPANY_DELETED, data=_base_data(company), service=service)


class CompanyEventPublisher:
    """Publishes company lifecycle events through an event sink.

    Example:
        events = CompanyEventPublisher(runtime)
        await events.company_created(company)
    """

    def __init__(self, sink: EventSink, *, service: str = SERVICE_NAME) -> None:
        self._sink = sink
        self._service = service

    async def company_created(self, company: Company) -> None:
        await self._sink.publish(COMPANY_CREATED, company_created_event(company, service=self._service))

    async def company_updated(self, company: Company, updated_fields: Sequence[str] = ()) -> None:
        await self._sink.publish(
            COMPANY_UPDATED,
            company_updated_event(company, updated_fields, service=self._service),
        )

    async def company_deleted(self, company: Company) -> None:
        await self._sink.publish(COMPANY_DELETED, company_deleted_event(company, service=self._service))


__all__ = [
    "CompanyEventPublisher",
    "EventSink",
    "company_created_event",
    "company_deleted_event",
    "company_updated_event",
]
