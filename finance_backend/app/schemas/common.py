"""
Response envelope shared by every endpoint.

Success bodies look like {"success": true, "data": ..., "message": ...};
errors are produced by the handlers in core/exceptions.py.
"""

from typing import Generic, List, Optional, TypeVar
from pydantic import BaseModel, Field

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """Standard success envelope."""
    success: bool = True
    data: Optional[T] = None
    message: Optional[str] = None


class Pagination(BaseModel):
    """Paging block attached to list responses."""
    page: int
    limit: int
    total: int
    total_pages: int

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "Pagination":
        return cls(page=page, limit=limit, total=total, total_pages=(total + limit - 1) // limit if limit else 0)


class Page(BaseModel, Generic[T]):
    """A page of results plus its pagination block."""
    items: List[T] = Field(default_factory=list)
    pagination: Pagination
