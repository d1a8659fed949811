"""
Error response schemas for API endpoints.

Service errors are rendered as `{"detail": ..., "error": ...}` by the handlers
in api/main.py; routers reference this model in their `responses` docs.
"""
from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Body returned for rejected requests."""

    detail: str = Field(description="Human-readable message")
    error: str = Field(description="Machine-readable error code, e.g. 'already_liked'")
