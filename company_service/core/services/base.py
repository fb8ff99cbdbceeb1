"""Base service class for business logic."""

from __future__ import annotations

import logging


class BaseService:
    """Base class for all service classes.

    Provides a class-named logger for business logic services.

    Example:
            class CompanyService(BaseService):
            def __init__(self, repository: CompanyRepository):
                super().__init__()
                self.repository = repository

            async def get_company(self, company_id: str) -> Company:
                self.logger.info("Fetching company", extra={"company_id": company_id})
                return await self.repository.get(company_id)
    """

    def __init__(self) -> None:
        """Initialize base service with its logger."""
        self.logger = logging.getLogger(self.__class__.__name__)
