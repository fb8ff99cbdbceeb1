"""Event envelope exchanged over the broker in both directions.

Wire form is a camelCase JSON object encoded as UTF-8::

    {"eventType": "user.created", "data": {...}, "timestamp": "2025-01-01T00:00:00Z"}

Outbound envelopes also carry ``service``. The shape of ``data`` belongs to the
producing service and is not validated here.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from company_service.infra.messaging.exceptions import DecodeError

CONTENT_TYPE = "application/json"
CONTENT_ENCODING = "utf-8"


class EventEnvelope(BaseModel):
    """Structured message body: event type, payload and timestamp.

    Attributes:
        event_type: Event type ("user.created", "company.updated"). Any non-empty
            value decodes; types without a handler are acknowledged and dropped.
        data: JSON-serializable payload defined per event type by its producer.
        timestamp: When the event occurred (UTC).
        service: Producing service name; set on outbound envelopes only.

    Example:
        envelope = EventEnvelope(
            event_type="company.created",
            data={"companyId": "c-1", "name": "Acme"},
            service="company-service",
        )
        body = envelope.encode()
        assert EventEnvelope.decode(body).event_type == "company.created"
    """

    event_type: str = Field(
        min_length=1,
        description="Dot-namespaced event type",
    )
    data: dict[str, Any] = Field(
        default_factory=dict,
        description="Event payload",
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="Event timestamp in UTC",
    )
    service: str | None = Field(
        default=None,
        description="Service that produced the event (outbound only)",
    )

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )

    def encode(self) -> bytes:
        """Serialize to the UTF-8 JSON wire form (camelCase keys, no null fields)."""
        return self.model_dump_json(by_alias=True, exclude_none=True).encode(CONTENT_ENCODING)

    @classmethod
    def decode(cls, body: bytes | str) -> EventEnvelope:
        """Parse a message body into an envelope.

        Args:
            body: Raw message body.

        Returns:
            The decoded envelope.

        Raises:
            DecodeError: If the body is not UTF-8 JSON or does not match the envelope shape.
        """
        try:
            return cls.model_validate_json(body)
        except ValidationError as exc:
            raise DecodeError(
                "Malformed event envelope",
                extra={"errors": exc.error_count(), "error": str(exc)[:500]},
            ) from exc
        except UnicodeDecodeError as exc:
            raise DecodeError("Event envelope is not valid UTF-8", extra={"error": str(exc)}) from exc


__all__ = ["CONTENT_ENCODING", "CONTENT_TYPE", "EventEnvelope"]
