"""Company storage.

The persistent store is outside this service's integration layer; the
in-memory repository is the reference implementation used by the service and
its tests. Records are copied in and out so callers never share mutable state
with the store.
"""

from __future__ import annotations

import asyncio
from typing import Protocol

from company_service.features.companies.models import Company


class CompanyRepository(Protocol):
    """Storage operations the company service depends on."""

    async def get(self, company_id: str) -> Company | None: ...

    async def get_by_owner(self, owner_id: str) -> Company | None: ...

    async def get_active_by_email(self, email: str) -> Company | None: ...

    async def add(self, company: Company) -> Company: ...

    async def save(self, company: Company) -> Company: ...

    async def list_all(self, *, active_only: bool = False) -> list[Company]: ...


class InMemoryCompanyRepository:
    """Dict-backed repository guarded by an asyncio lock."""

    def __init__(self) -> None:
        self._companies: dict[str, Company] = {}
        self._lock = asyncio.Lock()

    async def get(self, company_id: str) -> Company | None:
        async with self._lock:
            company = self._companies.get(company_id)
            return company.model_copy(deep=True) if company else None

    async def get_by_owner(self, owner_id: str) -> Company | None:
        async with self._lock:
            for company in self._companies.values():
                if company.created_by == owner_id:
                    return company.model_copy(deep=True)
            return None

    async def get_active_by_email(self, email: str) -> Company | None:
        email = email.lower()
        async with self._lock:
            for company in self._companies.values():
                if company.is_active and company.email.lower() == email:
                    return company.model_copy(deep=True)
            return None

    async def add(self, company: Company) -> Company:
        """Insert a new record.

        Raises:
            ValueError: If the id is already taken.
        """
        async with self._lock:
            if company.id in self._companies:
                raise ValueError(f"Company {company.id} already exists")
            self._companies[company.id] = company.model_copy(deep=True)
            return company

    async def save(self, company: Company) -> Company:
        async with self._lock:
            self._companies[company.id] = company.model_copy(deep=True)
            return company

    async def list_all(self, *, active_only: bool = False) -> list[Company]:
        """Return every record in insertion order, optionally only active ones."""
        async with self._lock:
            return [
                c.model_copy(deep=True)
                for c in self._companies.values()
                if c.is_active or not active_only
            ]


__all__ = ["CompanyRepository", "InMemoryCompanyRepository"]
