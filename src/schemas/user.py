"""Pydantic schemas for user endpoints."""
from pydantic import BaseModel, ConfigDict, Field

from models.base import MAX_ID


class UserSummary(BaseModel):
    """Public projection of a user used in lists (suggestions, followers)."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str | None
    image: str | None
    username: str


class FollowUserSummary(UserSummary):
    """User summary annotated with whether the viewer follows that user."""

    is_followed_by_viewer: bool


class UserProfile(BaseModel):
    """
    Schema for a user's public profile page.

    `is_followed_by_viewer` is only present for authenticated viewers.
    """

    id: int
    name: str | None
    image: str | None
    username: str
    post_count: int
    followers_count: int
    following_count: int
    is_followed_by_viewer: bool | None = None


class CurrentUserResponse(BaseModel):
    """Response model for the authenticated user's own record."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    auth0_id: str
    email: str | None
    name: str | None
    username: str
    image: str | None


class FollowRequest(BaseModel):
    """Schema for follow/unfollow requests."""

    following_user_id: int = Field(..., ge=1, le=MAX_ID)


class AvatarUploadRequest(BaseModel):
    """Avatar upload as a base64 data URI (e.g. `data:image/png;base64,...`)."""

    image_as_data_url: str = Field(..., min_length=1)


class AvatarResponse(BaseModel):
    """Public URL of the uploaded avatar."""

    image: str
