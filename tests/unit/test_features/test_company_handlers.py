"""Unit tests for the user lifecycle event handlers."""

from __future__ import annotations

from pydantic import ValidationError
import pytest

from company_service.features.companies import build_company_handlers
from company_service.infra.messaging import EventHandlerRegistry


@pytest.mark.unit
class TestBuildCompanyHandlers:
    """Test suite for handler registration."""

    def test_registers_namespaced_event_types(self, company_service):
        registry = build_company_handlers(company_service)

        assert registry.event_types == ["user.created", "user.email_verified"]

    def test_namespace_prefixes_event_types(self, company_service):
        registry = build_company_handlers(company_service, namespace="auth.user")

        assert "auth.user.created" in registry
        assert "user.created" not in registry

    def test_fills_given_registry(self, company_service):
        registry = EventHandlerRegistry()

        assert build_company_handlers(company_service, registry=registry) is registry
        assert len(registry) == 2


@pytest.mark.unit
class TestCompanyHandlers:
    """Test suite for handler behavior."""

    @pytest.mark.asyncio
    async def test_user_created_creates_company(self, company_service, company_repository, user_created_data):
        handler = build_company_handlers(company_service).get("user.created")

        await handler(user_created_data)

        assert len(await company_repository.list_all()) == 1

    @pytest.mark.asyncio
    async def test_user_created_with_bad_payload_raises(self, company_service):
        """Test that invalid payloads surface so the delivery is retried."""
        handler = build_company_handlers(company_service).get("user.created")

        with pytest.raises(ValidationError):
            await handler({"userId": "u1"})

    @pytest.mark.asyncio
    async def test_email_verified_without_company_returns_normally(self, company_service, company_repository):
        handler = build_company_handlers(company_service).get("user.email_verified")

        await handler({"userId": "ghost"})

        assert len(await company_repository.list_all()) == 0

    @pytest.mark.asyncio
    async def test_email_verified_marks_company(self, company_service, company_repository, user_created_data):
        handlers = build_company_handlers(company_service)
        await handlers.get("user.created")(user_created_data)

        await handlers.get("user.email_verified")({"userId": "u1"})

        company = await company_repository.get_by_owner("u1")
        assert company.is_verified
