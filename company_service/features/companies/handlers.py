"""Handlers for user lifecycle events from the identity service.

Both handlers are idempotent: a redelivered ``created`` event returns the
existing company, and verifying an already verified company changes nothing.
Any exception propagates to the subscriber, which routes the message through
the retry/dead-letter path.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from company_service.features.companies.models import UserCreatedPayload, UserEmailVerifiedPayload
from company_service.infra.messaging.conventions import get_event_type
from company_service.infra.messaging.handlers import EventHandlerRegistry

if TYPE_CHECKING:
    from company_service.features.companies.service import CompanyService

logger = logging.getLogger(__name__)

USER_CREATED_ACTION = "created"
USER_EMAIL_VERIFIED_ACTION = "email_verified"


def build_company_handlers(
    service: CompanyService,
    namespace: str = "user",
    registry: EventHandlerRegistry | None = None,
) -> EventHandlerRegistry:
    """Register the user lifecycle handlers under ``<namespace>.<action>``.

    The namespace is the same one the main queue binding is derived from.
    """
    if registry is None:
        registry = EventHandlerRegistry()

    @registry.register(get_event_type(namespace, USER_CREATED_ACTION))
    async def handle_user_created(data: dict[str, Any]) -> None:
        payload = UserCreatedPayload.model_validate(data)
        company = await service.create_from_auth_event(payload)
        logger.info(
            "Handled user created event",
            extra={"user_id": payload.user_id, "company_id": company.id},
        )

    @registry.register(get_event_type(namespace, USER_EMAIL_VERIFIED_ACTION))
    async def handle_user_email_verified(data: dict[str, Any]) -> None:
        payload = UserEmailVerifiedPayload.model_validate(data)
        await service.mark_email_verified(payload.user_id)

    return registry


__all__ = ["USER_CREATED_ACTION", "USER_EMAIL_VERIFIED_ACTION", "build_company_handlers"]
