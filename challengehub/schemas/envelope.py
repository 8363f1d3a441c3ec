"""
ChallengeHub Backend — Response Envelopes
===========================================

What:  The success, paginated and error wrappers shared by every endpoint.
How:   Generic Pydantic models parameterized by the payload type so that
       OpenAPI docs show the concrete shape per route.

Shapes:
    single:    {"success": true, "message": "...", "data": {...}}
    paginated: {"success": true, "message": "...",
                "data": {"data": [...], "total", "page", "limit",
                         "totalPages", "hasNextPage", "hasPrevPage"}}
    error:     {"success": false, "error": "...", "message": "...",
                "details": {...}, "request_id": "..."}
"""

import math
from typing import Generic, List, Optional, Sequence, TypeVar

from pydantic import BaseModel, Field

from challengehub.schemas.solution import CamelModel

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    success: bool = True
    message: str
    data: T


class PaginatedData(CamelModel, Generic[T]):
    """
    One page of results plus navigation metadata.

    Pagination arithmetic:
        total_pages   = ceil(total / limit)
        has_next_page = page * limit < total
        has_prev_page = page > 1
    """

    data: List[T]
    total: int
    page: int
    limit: int
    total_pages: int
    has_next_page: bool
    has_prev_page: bool

    @classmethod
    def build(cls, items: Sequence[T], total: int, page: int, limit: int) -> "PaginatedData[T]":
        return cls(
            data=list(items),
            total=total,
            page=page,
            limit=limit,
            total_pages=math.ceil(total / limit) if limit else 0,
            has_next_page=page * limit < total,
            has_prev_page=page > 1,
        )


class ErrorResponse(BaseModel):
    """
    Standardized error response format for all API errors.

    Fields:
        error: Machine-readable error code (e.g., "invalid_state", "conflict")
        message: Human-readable description for display to users
        details: Optional extra context (e.g., which field failed validation)
        request_id: Correlation ID for tracing this error in server logs
    """

    success: bool = False
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    """Health check response showing service and database status."""

    status: str = Field(description="Overall service status: healthy, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    uptime_seconds: float = Field(description="Seconds since service started")
