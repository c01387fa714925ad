"""
Pagination Utility Module

Offset/limit pagination shared by the dataset and user listings.
Pagination metadata is returned in camelCase:

    {"currentPage": 2, "totalPages": 3, "totalItems": 25, "itemsPerPage": 10}
"""
import math
from typing import Any, Dict, List, Optional, Tuple
from pydantic import BaseModel, Field
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Select

from corpus_admin.core.config import settings


class PaginationParams(BaseModel):
    """Validated page/limit pair (both 1-based and positive)"""
    page: int = Field(1, ge=1)
    limit: int = Field(10, ge=1)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    @classmethod
    def from_query(cls, page: int, limit: int) -> "PaginationParams":
        """Build params from query values, capping limit at MAX_PAGE_SIZE"""
        return cls(page=page, limit=min(limit, settings.MAX_PAGE_SIZE))


class PaginationMeta(BaseModel):
    currentPage: int
    totalPages: int
    totalItems: int
    itemsPerPage: int


def total_pages(total: int, limit: int) -> int:
    """ceil(total / limit); an empty collection has zero pages"""
    return math.ceil(total / limit) if total > 0 else 0


def build_pagination(page: int, limit: int, total: int) -> Dict[str, int]:
    """
    Build the pagination metadata block.

    Args:
        page: Current page number (1-indexed)
        limit: Items per page
        total: Count of all stored items

    Returns:
        Dictionary with currentPage, totalPages, totalItems, itemsPerPage
    """
    return {
        "currentPage": page,
        "totalPages": total_pages(total, limit),
        "totalItems": total,
        "itemsPerPage": limit,
    }


async def paginate(
    db: AsyncSession,
    query: Select,
    params: PaginationParams,
    count_query: Optional[Select] = None
) -> Tuple[List[Any], Dict[str, int]]:
    """
    Apply pagination to a SQLAlchemy query.

    The query must already carry a deterministic ORDER BY; pages are
    plain OFFSET/LIMIT slices of it.

    Args:
        db: Database session
        query: Ordered base query
        params: Page and limit
        count_query: Optional custom count query

    Returns:
        (items on this page, pagination metadata)
    """
    if count_query is not None:
        count_result = await db.execute(count_query)
    else:
        count_stmt = select(func.count()).select_from(query.order_by(None).subquery())
        count_result = await db.execute(count_stmt)

    total = count_result.scalar() or 0

    result = await db.execute(query.offset(params.offset).limit(params.limit))
    items = list(result.scalars().all())

    return items, build_pagination(params.page, params.limit, total)
