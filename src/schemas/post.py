"""Pydantic schemas for post endpoints."""
from datetime import datetime
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, HttpUrl

from models.base import MAX_ID


class AuthorSummary(BaseModel):
    """Author projection embedded in post responses."""

    model_config = ConfigDict(from_attributes=True)

    name: str | None
    image: str | None
    username: str


class TagSummary(BaseModel):
    """Tag projection embedded in post responses."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    slug: str


class PostCreate(BaseModel):
    """Schema for creating a new post."""

    title: str = Field(..., min_length=20, max_length=300)
    description: str = Field(..., min_length=60)
    text: str | None = Field(default=None, min_length=100)
    html: str = Field(..., min_length=100)
    tag_ids: list[Annotated[int, Field(ge=1, le=MAX_ID)]] = []


class PostSummary(BaseModel):
    """
    Schema for posts in the feed and on profile pages.

    `bookmarked` is only set when the request has a viewer; routes serialize
    with exclude_unset so anonymous responses omit the key entirely.
    """

    id: int
    slug: str
    title: str
    description: str
    created_at: datetime
    featured_image: str | None
    author: AuthorSummary
    tags: list[TagSummary]
    bookmarked: bool | None = None


class PostDetail(BaseModel):
    """Schema for a single post page. `liked` is only set for a viewer."""

    id: int
    slug: str
    title: str
    description: str
    text: str | None
    html: str
    created_at: datetime
    featured_image: str | None
    author: AuthorSummary
    tags: list[TagSummary]
    liked: bool | None = None


class FeedPage(BaseModel):
    """One page of the feed. `next_cursor` is absent on the last page."""

    posts: list[PostSummary]
    next_cursor: str | None = None


class UserPostsResponse(BaseModel):
    """All posts of one author (not paginated)."""

    posts: list[PostSummary]


class FeaturedImageUpdate(BaseModel):
    """Schema for replacing a post's featured image."""

    image_url: HttpUrl


class ReadingListPost(BaseModel):
    """Post projection shown in the reading list."""

    model_config = ConfigDict(from_attributes=True)

    title: str
    description: str
    slug: str
    created_at: datetime
    author: AuthorSummary


class ReadingListItem(BaseModel):
    """A bookmark in the reading list, newest first."""

    model_config = ConfigDict(from_attributes=True)

    post_id: int
    created_at: datetime
    post: ReadingListPost
