"""
Pagination schemas for list responses
"""
from pydantic import BaseModel, ConfigDict, Field
from math import ceil


class PaginationParams(BaseModel):
    """
    Pagination parameters
    """
    page: int = Field(1, ge=1, description="Page number (1-indexed)")
    limit: int = Field(20, ge=1, description="Items per page")


class PaginationMeta(BaseModel):
    """
    Pagination metadata
    """
    model_config = ConfigDict(populate_by_name=True)

    page: int = Field(..., description="Current page number")
    limit: int = Field(..., description="Items per page")
    total: int = Field(..., description="Total number of items")
    total_pages: int = Field(..., serialization_alias="totalPages", description="Total number of pages")

    @classmethod
    def create(cls, total: int, page: int, limit: int) -> "PaginationMeta":
        """
        Build metadata from a count and the requested window

        Args:
            total: Total number of items
            page: Current page number
            limit: Items per page

        Returns:
            PaginationMeta instance
        """
        total_pages = ceil(total / limit) if limit > 0 else 0
        return cls(page=page, limit=limit, total=total, total_pages=total_pages)
