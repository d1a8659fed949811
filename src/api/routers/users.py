"""User endpoints: profiles, follows, suggestions and avatars."""
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Path, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import (
    enforce_rate_limit,
    get_async_session,
    get_blob_store,
    get_current_user,
    get_optional_user,
    get_settings,
)
from core.config import Settings
from models.base import MAX_ID
from models.user import User
from schemas.errors import ErrorResponse
from schemas.post import UserPostsResponse
from schemas.user import (
    AvatarResponse,
    AvatarUploadRequest,
    CurrentUserResponse,
    FollowRequest,
    FollowUserSummary,
    UserProfile,
    UserSummary,
)
from services import follow_service, suggestion_service, user_service
from services.blob_store import BlobStore

router = APIRouter(
    prefix="/users",
    tags=["users"],
    dependencies=[Depends(enforce_rate_limit)],
)

UserId = Annotated[int, Path(ge=1, le=MAX_ID)]


@router.get("/me", response_model=CurrentUserResponse)
async def get_current_user_info(
    current_user: User = Depends(get_current_user),
) -> CurrentUserResponse:
    """Get the currently authenticated user's information."""
    return CurrentUserResponse.model_validate(current_user)


@router.post(
    "/me/avatar",
    response_model=AvatarResponse,
    responses={400: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
)
async def upload_avatar(
    data: AvatarUploadRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
    blob_store: BlobStore = Depends(get_blob_store),
    settings: Settings = Depends(get_settings),
) -> AvatarResponse:
    """Upload a new avatar from a base64 data URI and set it as the profile image."""
    url = await user_service.upload_avatar(
        db,
        current_user,
        data.image_as_data_url,
        blob_store,
        settings.max_avatar_bytes,
    )
    return AvatarResponse(image=url)


@router.get("/suggestions", response_model=list[UserSummary])
async def get_suggestions(
    ranked: bool = False,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> list[UserSummary]:
    """
    Suggest up to four users who engaged with posts sharing the current user's
    interest tags. `ranked=true` orders them by the number of shared tags.
    """
    return await suggestion_service.get_suggestions(db, current_user.id, ranked=ranked)


@router.post(
    "/follow",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
)
async def follow_user(
    data: FollowRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> None:
    """Follow a user."""
    await follow_service.follow_user(db, current_user.id, data.following_user_id)


@router.delete("/follow", status_code=status.HTTP_204_NO_CONTENT)
async def unfollow_user(
    data: FollowRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> None:
    """Unfollow a user. Succeeds even if the user wasn't followed."""
    await follow_service.unfollow_user(db, current_user.id, data.following_user_id)


@router.get("/{user_id}/followers", response_model=list[FollowUserSummary])
async def list_followers(
    user_id: UserId,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> list[FollowUserSummary]:
    """List a user's followers, each marked with whether the current user follows them."""
    return await follow_service.get_followers(db, user_id, current_user.id)


@router.get("/{user_id}/following", response_model=list[FollowUserSummary])
async def list_following(
    user_id: UserId,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> list[FollowUserSummary]:
    """List the users a user follows, each marked with whether the current user follows them."""
    return await follow_service.get_following(db, user_id, current_user.id)


@router.get("/{username}", response_model=UserProfile, response_model_exclude_unset=True)
async def get_user_profile(
    username: str,
    viewer: User | None = Depends(get_optional_user),
    db: AsyncSession = Depends(get_async_session),
) -> UserProfile:
    """Get a user's public profile with post and follow counts."""
    profile = await user_service.get_user_profile(
        db, username, viewer_id=viewer.id if viewer else None,
    )
    if profile is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return profile


@router.get(
    "/{username}/posts",
    response_model=UserPostsResponse,
    response_model_exclude_unset=True,
)
async def get_user_posts(
    username: str,
    viewer: User | None = Depends(get_optional_user),
    db: AsyncSession = Depends(get_async_session),
) -> UserPostsResponse:
    """Get every post by a user, newest first."""
    posts = await user_service.get_user_posts(
        db, username, viewer_id=viewer.id if viewer else None,
    )
    return UserPostsResponse(posts=posts)
