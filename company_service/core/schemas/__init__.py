"""Shared response schemas."""

from company_service.core.schemas.base import PaginatedResponse

__all__ = ["PaginatedResponse"]
