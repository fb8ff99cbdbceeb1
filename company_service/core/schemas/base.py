"""Base schemas shared across features."""

from __future__ import annotations

from typing import Generic, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class PaginatedResponse(BaseModel, Generic[T]):
    """Paginated response wrapper.

    Wraps one page of items with offset pagination metadata.

    Example:
        page = PaginatedResponse.create(items=companies, total=42, page=2, page_size=10)
        assert page.total_pages == 5
    """

    items: list[T] = Field(default_factory=list, description="Paginated items")
    total: int = Field(ge=0, description="Total number of items")
    page: int = Field(ge=1, description="Current page number")
    page_size: int = Field(ge=1, le=1000, description="Items per page")
    total_pages: int = Field(ge=0, description="Total number of pages")

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_previous(self) -> bool:
        return self.page > 1

    @classmethod
    def create(cls, items: list[T], total: int, page: int, page_size: int) -> PaginatedResponse[T]:
        """Create a paginated response with calculated total pages.

        Raises:
            ValueError: If total, page, or page_size are invalid.
        """
        if total < 0:
            raise ValueError("Total must be non-negative")
        if page < 1:
            raise ValueError("Page must be at least 1")
        if page_size < 1 or page_size > 1000:
            raise ValueError("Page size must be between 1 and 1000")

        total_pages = (total + page_size - 1) // page_size if total > 0 else 0
        return cls(
            items=items,
            total=total,
            page=page,
            page_size=page_size,
            total_pages=total_pages,
        )


__all__ = ["PaginatedResponse"]
