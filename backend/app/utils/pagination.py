"""
Pagination Utility Module

Standard page/limit handling for list endpoints, both for SQL queries and
for item arrays held inside a configuration document.
"""
from typing import List, Optional, Any, Sequence
from pydantic import BaseModel

from app.core.config import settings


class PaginationParams(BaseModel):
    """Standard pagination parameters (page is 1-indexed)"""
    page: int = 1
    limit: int = settings.DEFAULT_PAGE_SIZE

    def normalized(self) -> "PaginationParams":
        return PaginationParams(
            page=max(1, self.page),
            limit=max(1, min(settings.MAX_PAGE_SIZE, self.limit)),
        )

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


class ItemListQuery(PaginationParams):
    """Listing options for items held in a configuration document"""
    sort: str = "order"
    order: str = "asc"
    search: Optional[str] = None
    status: Optional[str] = None


def create_paginated_response(
    items: List[Any],
    total: int,
    page: int,
    limit: int
) -> dict:
    """
    Create a paginated response dictionary.

    Args:
        items: List of items for current page
        total: Total count of all items
        page: Current page number
        limit: Items per page
    """
    total_pages = (total + limit - 1) // limit if total > 0 else 1

    return {
        "items": items,
        "total": total,
        "page": page,
        "limit": limit,
        "totalPages": total_pages,
        "hasNext": page < total_pages,
        "hasPrevious": page > 1
    }


def paginate_items(items: Sequence[Any], params: PaginationParams) -> dict:
    """Slice an in-memory list into one page"""
    params = params.normalized()
    page_items = list(items[params.offset:params.offset + params.limit])
    return create_paginated_response(page_items, len(items), params.page, params.limit)
