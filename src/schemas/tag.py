"""Pydantic schemas for tag endpoints."""
from pydantic import BaseModel, ConfigDict, Field, field_validator


class TagCreate(BaseModel):
    """Schema for creating a tag."""

    name: str = Field(..., min_length=3, max_length=100)
    description: str = Field(..., min_length=10)

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v: str) -> str:
        """Trim surrounding whitespace before length validation."""
        if not isinstance(v, str):
            raise ValueError("Tag name must be a string")
        return v.strip()


class TagResponse(BaseModel):
    """Schema for tag responses."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    slug: str
    description: str | None
