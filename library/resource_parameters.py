"""
Query parameters for author listings: paging, filtering, searching,
sorting and data shaping.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

MAX_PAGE_SIZE = 20


class AuthorsResourceParameters(BaseModel):
    """
    Query parameters bound from the request query string.

    Page sizes above MAX_PAGE_SIZE are silently clamped. No lower bound is
    applied here; PagedList rejects non-positive page sizes.
    """
    model_config = ConfigDict(frozen=True)

    page_number: int = Field(1, description="Page number (starts from 1)")
    page_size: int = Field(10, description="Items per page, capped at 20")
    genre: Optional[str] = Field(None, description="Filter by genre")
    search_query: Optional[str] = Field(None, description="Free-text search")
    order_by: str = Field("Name", description="Comma-separated sort clauses")
    fields: Optional[str] = Field(None, description="Comma-separated fields to return")

    @field_validator('page_size')
    @classmethod
    def clamp_page_size(cls, v):
        """Cap the page size at MAX_PAGE_SIZE."""
        return MAX_PAGE_SIZE if v > MAX_PAGE_SIZE else v
