"""Companies feature: company records, their events and user event handlers."""

from company_service.features.companies.events import CompanyEventPublisher
from company_service.features.companies.handlers import build_company_handlers
from company_service.features.companies.models import Company, CompanyCreate, CompanyUpdate
from company_service.features.companies.repository import (
    CompanyRepository,
    InMemoryCompanyRepository,
)
from company_service.features.companies.service import CompanyService

__all__ = [
    "Company",
    "CompanyCreate",
    "CompanyEventPublisher",
    "CompanyRepository",
    "CompanyService",
    "CompanyUpdate",
    "InMemoryCompanyRepository",
    "build_company_handlers",
]
