"""Service layer for company business logic."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, Literal

from company_service.core.exceptions import ConflictException, NotFoundException
from company_service.core.schemas import PaginatedResponse
from company_service.core.services.base import BaseService
from company_service.features.companies.models import (
    Address,
    Company,
    CompanyCreate,
    CompanyUpdate,
    UserCreatedPayload,
)

if TYPE_CHECKING:
    from company_service.features.companies.events import CompanyEventPublisher
    from company_service.features.companies.repository import CompanyRepository

SORTABLE_FIELDS = frozenset({"name", "email", "created_at", "updated_at"})


def _matches(company: Company, needle: str) -> bool:
    fields = (company.name, company.email, company.registration_number)
    return any(needle in value.lower() for value in fields if value)


class CompanyService(BaseService):
    """Orchestrates company operations and publishes the resulting events."""

    def __init__(
        self,
        repository: CompanyRepository,
        events: CompanyEventPublisher | None = None,
    ) -> None:
        super().__init__()
        self._repository = repository
        self._events = events

    async def create_from_auth_event(self, payload: UserCreatedPayload | dict[str, Any]) -> Company:
        """Create the company registered together with a new user.

        Idempotent by owner: a redelivered event returns the existing record.

        Raises:
            pydantic.ValidationError: If the payload does not have the expected shape.
        """
        if not isinstance(payload, UserCreatedPayload):
            payload = UserCreatedPayload.model_validate(payload)

        existing = await self._repository.get_by_owner(payload.user_id)
        if existing is not None:
            self.logger.warning(
                "Company already exists for user",
                extra={"user_id": payload.user_id, "company_id": existing.id},
            )
            return existing

        contact = payload.contact
        company = Company(
            name=payload.company.name,
            email=payload.email.lower(),
            registration_number=payload.company.registration_number,
            eik=payload.company.eik,
            vat_number=payload.company.vat_number,
            phone=contact.phone,
            address=Address(
                street=contact.address,
                city=contact.city,
                postal_code=contact.postal_code,
                country=contact.country,
            ),
            created_by=payload.user_id,
        )
        created = await self._repository.add(company)

        self.logger.info(
            "Company created from auth event",
            extra={"company_id": created.id, "user_id": payload.user_id},
        )
        await self._publish_created(created)
        return created

    async def mark_email_verified(self, owner_id: str) -> Company | None:
        """Flag the owner's company as verified; None when no company matches."""
        company = await self._repository.get_by_owner(owner_id)
        if company is None:
            self.logger.warning(
                "Company not found for email verification",
                extra={"user_id": owner_id},
            )
            return None

        if company.is_verified:
            return company

        company.is_verified = True
        company.updated_at = datetime.now(UTC)
        saved = await self._repository.save(company)
        self.logger.info(
            "Company email verified",
            extra={"company_id": saved.id, "user_id": owner_id},
        )
        return saved

    async def create_company(self, data: CompanyCreate, owner_id: str) -> Company:
        """Create a company for a user.

        Raises:
            ConflictException: If an active company already uses the email.
        """
        email = data.email.lower()
        if await self._repository.get_active_by_email(email) is not None:
            raise ConflictException(
                "Company with this email already exists",
                type="company-conflict",
                extra={"field": "email", "value": email},
            )

        fields = data.model_dump(exclude_none=True)
        fields["email"] = email
        company = Company(**fields, created_by=owner_id)
        created = await self._repository.add(company)

        self.logger.info(
            "Company created",
            extra={"company_id": created.id, "created_by": owner_id},
        )
        await self._publish_created(created)
        return created

    async def get_company(self, company_id: str) -> Company:
        """Fetch an active company.

        Raises:
            NotFoundException: If the company is missing or soft deleted.
        """
        company = await self._repository.get(company_id)
        if company is None or not company.is_active:
            raise NotFoundException(
                f"Company with ID {company_id} not found",
                type="company-not-found",
                extra={"company_id": company_id},
            )
        return company

    async def update_company(self, company_id: str, data: CompanyUpdate, user_id: str) -> Company:
        """Apply a partial update and publish ``company.updated``.

        Raises:
            NotFoundException: If the company is missing or soft deleted.
            ConflictException: If the new email is used by another active company.
        """
        company = await self.get_company(company_id)
        changes = data.changes()

        new_email = changes.get("email")
        if new_email is not None:
            new_email = new_email.lower()
            changes["email"] = new_email
            if new_email != company.email:
                other = await self._repository.get_active_by_email(new_email)
                if other is not None and other.id != company.id:
                    raise ConflictException(
                        "Email already in use by another company",
                        type="company-conflict",
                        extra={"field": "email", "value": new_email},
                    )

        updated_fields = sorted(changes)
        # model_copy skips validation; the nested address is re-validated on assignment
        address = changes.pop("address", None)
        updated = company.model_copy(update={**changes, "updated_at": datetime.now(UTC)})
        if address is not None:
            updated.address = Address.model_validate(address)
        saved = await self._repository.save(updated)

        self.logger.info(
            "Company updated",
            extra={"company_id": company_id, "updated_by": user_id, "updated_fields": updated_fields},
        )
        if self._events is not None:
            await self._events.company_updated(saved, updated_fields)
        return saved

    async def delete_company(self, company_id: str, user_id: str) -> Company:
        """Soft delete a company and publish ``company.deleted``.

        Raises:
            NotFoundException: If the company is missing or already deleted.
        """
        company = await self.get_company(company_id)
        company.is_active = False
        company.updated_at = datetime.now(UTC)
        saved = await self._repository.save(company)

        self.logger.info(
            "Company soft deleted",
            extra={"company_id": company_id, "deleted_by": user_id},
        )
        if self._events is not None:
            await self._events.company_deleted(saved)
        return saved

    async def list_companies(
        self,
        *,
        page: int = 1,
        page_size: int = 10,
        search: str | None = None,
        is_verified: bool | None = None,
        sort_by: str = "created_at",
        sort_order: Literal["asc", "desc"] = "desc",
    ) -> PaginatedResponse[Company]:
        """List active companies one page at a time.

        Args:
            page: 1-based page number.
            page_size: Items per page.
            search: Case-insensitive match against name, email and registration number.
            is_verified: Only verified (True) or unverified (False) companies.
            sort_by: Company field to sort on.
            sort_order: "asc" or "desc".

        Raises:
            ValueError: If the sort field or pagination arguments are invalid.
        """
        if sort_by not in SORTABLE_FIELDS:
            raise ValueError(f"Cannot sort companies by '{sort_by}'")

        companies = await self._repository.list_all(active_only=True)
        if is_verified is not None:
            companies = [c for c in companies if c.is_verified is is_verified]
        if search:
            needle = search.lower()
            companies = [c for c in companies if _matches(c, needle)]

        companies.sort(key=lambda c: getattr(c, sort_by), reverse=sort_order == "desc")
        start = (page - 1) * page_size
        result = PaginatedResponse[Company].create(
            items=companies[start : start + page_size],
            total=len(companies),
            page=page,
            page_size=page_size,
        )
        self.logger.debug(
            "Companies retrieved",
            extra={"count": len(result.items), "total": result.total, "page": page, "page_size": page_size},
        )
        return result

    async def get_companies_by_creator(self, user_id: str) -> list[Company]:
        """Active companies registered by a user."""
        companies = [
            c for c in await self._repository.list_all(active_only=True) if c.created_by == user_id
        ]
        self.logger.debug(
            "Companies retrieved by creator",
            extra={"user_id": user_id, "count": len(companies)},
        )
        return companies

    async def is_owner(self, company_id: str, user_id: str) -> bool:
        """True when the user created the company and it is still active."""
        company = await self._repository.get(company_id)
        return company is not None and company.is_active and company.created_by == user_id

    async def get_stats(self) -> dict[str, int]:
        """Counts of all, active and verified company records."""
        companies = await self._repository.list_all()
        return {
            "total": len(companies),
            "active": sum(1 for c in companies if c.is_active),
            "verified": sum(1 for c in companies if c.is_verified),
        }

    async def _publish_created(self, company: Company) -> None:
        if self._events is not None:
            await self._events.company_created(company)


__all__ = ["CompanyService"]
