"""
Common schemas used across the application.
"""
from typing import Any, Optional
from pydantic import BaseModel


class ErrorDetail(BaseModel):
    message: str
    details: Optional[list[Any]] = None


class ErrorResponse(BaseModel):
    """Error envelope returned by every failing endpoint."""
    error: ErrorDetail


class MessageResponse(BaseModel):
    """Simple message response."""
    message: str


class HealthResponse(BaseModel):
    """Health check response."""
    code: int = 200
    message: str = "API is healthy."


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int
