"""
Pagination dependencies
"""
from fastapi import Query
from typing import Optional

from radio_api.core.config import settings
from radio_api.db.schemas.pagination import PaginationParams
from radio_api.utils.helpers import parse_positive_int


async def get_pagination(
    page: Optional[str] = Query(None, description="Page number (1-indexed)"),
    limit: Optional[str] = Query(None, description="Items per page")
) -> PaginationParams:
    """
    Lenient pagination dependency

    Missing, non-numeric or non-positive values fall back to the
    defaults instead of failing validation; limit is capped at
    AUDIT_MAX_PAGE_SIZE.

    Args:
        page: Raw page number
        limit: Raw page size

    Returns:
        PaginationParams instance
    """
    return PaginationParams(
        page=parse_positive_int(page, 1),
        limit=min(
            parse_positive_int(limit, settings.AUDIT_DEFAULT_PAGE_SIZE),
            settings.AUDIT_MAX_PAGE_SIZE
        ),
    )
