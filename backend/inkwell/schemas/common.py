"""
Inkwell Backend: Shared Response Schemas
=========================================

What:  The envelope every endpoint answers with, plus the pagination wrapper.
Who:   `inkwell.responses` builds them; routes declare them for OpenAPI docs.
"""

from typing import Any, Generic, List, Optional, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class Envelope(BaseModel):
    """
    What:  Uniform success/failure wrapper.

    `code == 200` is the only success value; every other code comes from
    `inkwell.exceptions.ErrorCode`. `data` is omitted from the JSON body when
    there is nothing to return.
    """

    code: int = Field(description="200 on success, otherwise a taxonomy error code")
    message: str = Field(description="Human-readable outcome")
    data: Optional[Any] = Field(default=None, description="Payload on success")


class PageResponse(BaseModel, Generic[T]):
    total: int = Field(description="Number of records matching the query")
    page: int = Field(description="Current page (1-based)")
    page_size: int = Field(description="Records per page")
    list: List[T] = Field(description="Records on this page")


DEFAULT_PAGE = 1
DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100

# Both stores hold signed 64-bit integers
INT64_MAX = 2**63 - 1
# Highest page whose offset (page - 1) * page_size still fits in int64
MAX_PAGE = INT64_MAX // MAX_PAGE_SIZE


def normalize_page(page: int, page_size: int) -> tuple[int, int]:
    """
    Clamp pagination input instead of rejecting it:
    page < 1 becomes 1, page_size outside 1..100 becomes 10.
    The routes reject page > MAX_PAGE before this runs.
    """
    if page < 1:
        page = DEFAULT_PAGE
    if page_size < 1 or page_size > MAX_PAGE_SIZE:
        page_size = DEFAULT_PAGE_SIZE
    return page, page_size
