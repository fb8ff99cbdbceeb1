"""Unit tests for CompanyService."""

from __future__ import annotations

from pydantic import ValidationError
import pytest

from company_service.core.exceptions import ConflictException, NotFoundException
from company_service.features.companies import CompanyCreate, CompanyUpdate
from company_service.infra.messaging.conventions import (
    COMPANY_CREATED,
    COMPANY_DELETED,
    COMPANY_UPDATED,
)


@pytest.mark.unit
class TestCreateFromAuthEvent:
    """Test suite for company creation from user.created events."""

    @pytest.mark.asyncio
    async def test_creates_company_from_payload(self, company_service, company_repository, user_created_data):
        company = await company_service.create_from_auth_event(user_created_data)

        assert company.name == "Acme Ltd"
        assert company.email == "owner@acme.test"
        assert company.created_by == "u1"
        assert company.registration_number == "REG-1"
        assert company.eik == "123456789"
        assert company.phone == "+359 2 123 456"
        assert company.address.street == "1 Main St"
        assert company.address.city == "Sofia"
        assert not company.is_verified
        assert len(await company_repository.list_all()) == 1

    @pytest.mark.asyncio
    async def test_publishes_company_created(self, company_service, sink, user_created_data):
        company = await company_service.create_from_auth_event(user_created_data)

        assert sink.routing_keys == [COMPANY_CREATED]
        envelope = sink.published[0][1]
        assert envelope.event_type == COMPANY_CREATED
        assert envelope.service == "company-service"
        assert envelope.data["companyId"] == company.id
        assert envelope.data["createdBy"] == "u1"

    @pytest.mark.asyncio
    async def test_redelivery_is_idempotent(self, company_service, company_repository, sink, user_created_data):
        """Test that processing the same event twice leaves a single company."""
        first = await company_service.create_from_auth_event(user_created_data)
        second = await company_service.create_from_auth_event(user_created_data)

        assert second.id == first.id
        assert len(await company_repository.list_all()) == 1
        assert sink.routing_keys == [COMPANY_CREATED]

    @pytest.mark.asyncio
    async def test_invalid_payload_raises(self, company_service):
        with pytest.raises(ValidationError):
            await company_service.create_from_auth_event({"email": "x@y.z"})


@pytest.mark.unit
class TestMarkEmailVerified:
    """Test suite for user.email_verified processing."""

    @pytest.mark.asyncio
    async def test_marks_company_verified(self, company_service, company_repository, user_created_data):
        created = await company_service.create_from_auth_event(user_created_data)

        verified = await company_service.mark_email_verified("u1")

        assert verified is not None
        assert verified.is_verified
        stored = await company_repository.get(created.id)
        assert stored.is_verified

    @pytest.mark.asyncio
    async def test_unknown_owner_returns_none(self, company_service, company_repository):
        assert await company_service.mark_email_verified("nobody") is None
        assert len(await company_repository.list_all()) == 0

    @pytest.mark.asyncio
    async def test_already_verified_is_unchanged(self, company_service, user_created_data):
        await company_service.create_from_auth_event(user_created_data)
        first = await company_service.mark_email_verified("u1")

        second = await company_service.mark_email_verified("u1")

        assert second.updated_at == first.updated_at


@pytest.mark.unit
class TestCompanyCrud:
    """Test suite for direct create, update and delete."""

    @pytest.mark.asyncio
    async def test_create_company(self, company_service, sink):
        company = await company_service.create_company(
            CompanyCreate(name="Globex", email="Info@Globex.test"), owner_id="u2"
        )

        assert company.email == "info@globex.test"
        assert company.created_by == "u2"
        assert sink.routing_keys == [COMPANY_CREATED]

    @pytest.mark.asyncio
    async def test_create_with_taken_email_conflicts(self, company_service):
        await company_service.create_company(CompanyCreate(name="Globex", email="info@globex.test"), "u2")

        with pytest.raises(ConflictException) as exc_info:
            await company_service.create_company(CompanyCreate(name="Globex 2", email="INFO@globex.test"), "u3")

        assert exc_info.value.status_code == 409

    @pytest.mark.asyncio
    async def test_update_publishes_changed_fields(self, company_service, sink):
        company = await company_service.create_company(CompanyCreate(name="Globex", email="info@globex.test"), "u2")

        updated = await company_service.update_company(
            company.id,
            CompanyUpdate(name="Globex Corp", address={"city": "Plovdiv"}),
            user_id="u2",
        )

        assert updated.name == "Globex Corp"
        assert updated.address.city == "Plovdiv"
        assert sink.routing_keys == [COMPANY_CREATED, COMPANY_UPDATED]
        assert sink.published[-1][1].data["updatedFields"] == ["address", "name"]

    @pytest.mark.asyncio
    async def test_update_to_other_company_email_conflicts(self, company_service):
        await company_service.create_company(CompanyCreate(name="Globex", email="info@globex.test"), "u2")
        other = await company_service.create_company(CompanyCreate(name="Initech", email="info@initech.test"), "u3")

        with pytest.raises(ConflictException):
            await company_service.update_company(other.id, CompanyUpdate(email="info@globex.test"), "u3")

    @pytest.mark.asyncio
    async def test_delete_is_soft_and_publishes(self, company_service, company_repository, sink):
        company = await company_service.create_company(CompanyCreate(name="Globex", email="info@globex.test"), "u2")

        await company_service.delete_company(company.id, user_id="u2")

        assert sink.routing_keys[-1] == COMPANY_DELETED
        assert (await company_repository.get(company.id)).is_active is False
        with pytest.raises(NotFoundException):
            await company_service.get_company(company.id)

    @pytest.mark.asyncio
    async def test_get_missing_company(self, company_service):
        with pytest.raises(NotFoundException):
            await company_service.get_company("missing")

    @pytest.mark.asyncio
    async def test_without_event_publisher(self, company_repository, user_created_data):
        from company_service.features.companies import CompanyService

        service = CompanyService(company_repository)

        company = await service.create_from_auth_event(user_created_data)

        assert company.created_by == "u1"


@pytest.mark.unit
class TestCompanyQueries:
    """Test suite for listing, ownership and statistics."""

    @pytest.fixture
    async def companies(self, company_service):
        names = ["Acme", "Globex", "Initech", "Umbrella", "Hooli"]
        created = []
        for index, name in enumerate(names):
            created.append(
                await company_service.create_company(
                    CompanyCreate(name=name, email=f"info@{name.lower()}.test"), owner_id=f"u{index}"
                )
            )
        return created

    @pytest.mark.asyncio
    async def test_list_paginates_active_companies(self, company_service, companies):
        await company_service.delete_company(companies[0].id, user_id="u0")

        page = await company_service.list_companies(page=2, page_size=3, sort_by="name", sort_order="asc")

        assert page.total == 4
        assert page.total_pages == 2
        assert [c.name for c in page.items] == ["Umbrella"]
        assert page.has_previous
        assert not page.has_next

    @pytest.mark.asyncio
    async def test_list_search_matches_name_and_email(self, company_service, companies):
        page = await company_service.list_companies(search="GLOBEX")

        assert [c.name for c in page.items] == ["Globex"]

    @pytest.mark.asyncio
    async def test_list_filters_verified(self, company_service, companies):
        await company_service.mark_email_verified("u1")

        page = await company_service.list_companies(is_verified=True)

        assert [c.created_by for c in page.items] == ["u1"]

    @pytest.mark.asyncio
    async def test_list_rejects_unknown_sort_field(self, company_service):
        with pytest.raises(ValueError, match="Cannot sort"):
            await company_service.list_companies(sort_by="password")

    @pytest.mark.asyncio
    async def test_companies_by_creator(self, company_service, companies):
        result = await company_service.get_companies_by_creator("u2")

        assert [c.name for c in result] == ["Initech"]

    @pytest.mark.asyncio
    async def test_is_owner(self, company_service, companies):
        company = companies[1]

        assert await company_service.is_owner(company.id, "u1")
        assert not await company_service.is_owner(company.id, "u2")
        await company_service.delete_company(company.id, user_id="u1")
        assert not await company_service.is_owner(company.id, "u1")

    @pytest.mark.asyncio
    async def test_stats(self, company_service, companies):
        await company_service.delete_company(companies[0].id, user_id="u0")

        assert await company_service.get_stats() == {"total": 5, "active": 4, "verified": 0}
