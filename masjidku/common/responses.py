"""Response envelope shared by every endpoint."""

from typing import Generic, List, Optional, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class PaginationMeta(BaseModel):
    page: int = Field(..., ge=1)
    per_page: int = Field(..., ge=1)
    total: int = Field(..., ge=0, description="Rows matching the filters across all pages")
    total_pages: int = Field(..., ge=1)
    has_next: bool
    has_prev: bool
    count: int = Field(..., ge=0, description="Rows on this page")


class ApiResponse(BaseModel, Generic[T]):
    success: bool = True
    message: str
    data: Optional[T] = None


class PaginatedResponse(BaseModel, Generic[T]):
    success: bool = True
    message: str
    data: List[T]
    pagination: PaginationMeta
