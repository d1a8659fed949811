"""Pydantic schemas for Unsplash image search results."""
from pydantic import BaseModel, ConfigDict


class UnsplashPhoto(BaseModel):
    """Subset of an Unsplash photo object; unknown fields are ignored."""

    model_config = ConfigDict(extra="ignore")

    id: str
    description: str | None = None
    alt_description: str | None = None
    urls: dict[str, str]


class ImageSearchResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    total: int
    total_pages: int
    results: list[UnsplashPhoto]
