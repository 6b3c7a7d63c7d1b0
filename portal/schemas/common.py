"""
Common schema types used across the API.
"""

from typing import Any, Generic, List, Literal, Optional, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class ErrorResponse(BaseModel):
    """Body of every PortalError response."""

    detail: str
    code: str
    field: Optional[str] = None
    request_id: Optional[str] = None


class SuccessResponse(BaseModel):
    message: str
    data: Optional[Any] = None


class PaginatedResponse(BaseModel, Generic[T]):
    """One page of a listing plus the total across all pages."""

    items: List[T]
    total: int
    page: int = 1
    page_size: int = 10
    pages: int = 0
    has_more: bool = False

    @classmethod
    def create(cls, items: List[T], total: int, page: int = 1, page_size: int = 10) -> "PaginatedResponse[T]":
        pages = -(-total // page_size) if page_size > 0 else 0
        return cls(
            items=items,
            total=total,
            page=page,
            page_size=page_size,
            pages=pages,
            has_more=page < pages,
        )


class HealthResponse(BaseModel):
    status: Literal["ok", "degraded"] = "ok"
    version: str
    database: Literal["connected", "unavailable"] = "connected"
