"""
Response envelope shared by every endpoint.
"""
from typing import Generic, Optional, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    success: bool = True
    data: Optional[T] = None
    message: Optional[str] = None


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    totalPages: int


class PaginatedResponse(ApiResponse[T], Generic[T]):
    pagination: Optional[Pagination] = None


class ErrorResponse(BaseModel):
    success: bool = False
    error: str
    code: str
    request_id: Optional[str] = None
