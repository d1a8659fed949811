"""Pydantic schemas for comment endpoints."""
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class CommentCreate(BaseModel):
    """Schema for submitting a comment."""

    text: str = Field(..., min_length=3)


class CommentAuthor(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    name: str | None
    image: str | None


class CommentResponse(BaseModel):
    """Schema for comment responses."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    text: str
    created_at: datetime
    user: CommentAuthor
