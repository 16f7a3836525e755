"""
Pagination Schemas

Reusable pagination parameters and metadata for list endpoints.
"""

from typing import Optional
from pydantic import BaseModel, Field
from math import ceil

from ..config import settings


class PaginationParams(BaseModel):
    """Query parameters for pagination"""
    page: int = Field(default=1, ge=1, description="Page number, starting at 1")
    page_size: int = Field(
        default=settings.default_page_size,
        ge=1,
        le=settings.max_page_size,
        description="Items per page"
    )

    @property
    def offset(self) -> int:
        """Calculate offset for database query"""
        return (self.page - 1) * self.page_size


class PaginationMeta(BaseModel):
    total: int = Field(description="Total matching items")
    page: int = Field(description="Current page")
    page_size: int = Field(description="Page size")
    total_pages: int = Field(description="Total pages")
    has_next: bool
    has_previous: bool

    @classmethod
    def create(cls, total: int, page: int, page_size: int) -> "PaginationMeta":
        total_pages = ceil(total / page_size) if page_size > 0 else 0
        return cls(
            total=total,
            page=page,
            page_size=page_size,
            total_pages=total_pages,
            has_next=page < total_pages,
            has_previous=page > 1
        )


def paginate_query(query, page: int, page_size: int, max_page_size: Optional[int] = None):
    """
    Apply pagination to a SQLAlchemy query.

    Returns:
        Tuple of (paginated_items, total_count)
    """
    page = max(page, 1)
    page_size = max(min(page_size, max_page_size or settings.max_page_size), 1)
    total = query.order_by(None).count()
    offset = (page - 1) * page_size
    items = query.offset(offset).limit(page_size).all()
    return items, total
