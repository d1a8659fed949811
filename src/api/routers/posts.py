"""Post endpoints: feed, post pages, likes, bookmarks and comments."""
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import (
    enforce_rate_limit,
    get_async_session,
    get_current_user,
    get_optional_user,
)
from models.base import MAX_ID
from models.user import User
from schemas.comment import CommentCreate, CommentResponse
from schemas.errors import ErrorResponse
from schemas.post import (
    FeaturedImageUpdate,
    FeedPage,
    PostCreate,
    PostDetail,
    ReadingListItem,
)
from services import engagement_service, feed_service, post_service

router = APIRouter(
    prefix="/posts",
    tags=["posts"],
    dependencies=[Depends(enforce_rate_limit)],
)

PostId = Annotated[int, Path(ge=1, le=MAX_ID)]


@router.get("/", response_model=FeedPage, response_model_exclude_unset=True)
async def list_posts(
    cursor: str | None = Query(default=None, description="next_cursor of the previous page"),
    viewer: User | None = Depends(get_optional_user),
    db: AsyncSession = Depends(get_async_session),
) -> FeedPage:
    """
    Get a page of the feed, newest first.

    `bookmarked` is included on each post only for authenticated viewers.
    `next_cursor` is absent on the last page. An unknown cursor returns an
    empty page.
    """
    return await feed_service.get_posts(
        db, cursor=cursor, viewer_id=viewer.id if viewer else None,
    )


@router.post(
    "/",
    response_model=PostDetail,
    response_model_exclude_unset=True,
    status_code=status.HTTP_201_CREATED,
    responses={409: {"model": ErrorResponse}},
)
async def create_post(
    data: PostCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> PostDetail:
    """
    Create a post authored by the current user.

    The slug is derived from the title; 409 if another post already has it.
    """
    return await post_service.create_post(db, current_user.id, data)


@router.get("/reading-list", response_model=list[ReadingListItem])
async def get_reading_list(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> list[ReadingListItem]:
    """Get the current user's most recent bookmarks."""
    return await engagement_service.get_reading_list(db, current_user.id)


@router.get("/{slug}", response_model=PostDetail, response_model_exclude_unset=True)
async def get_post(
    slug: str,
    viewer: User | None = Depends(get_optional_user),
    db: AsyncSession = Depends(get_async_session),
) -> PostDetail:
    """Get a post by slug. `liked` is included only for authenticated viewers."""
    post = await post_service.get_post(db, slug, viewer_id=viewer.id if viewer else None)
    if post is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found")
    return post


@router.post(
    "/{post_id}/like",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def like_post(
    post_id: PostId,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> None:
    """Like a post."""
    await engagement_service.like_post(db, current_user.id, post_id)


@router.delete("/{post_id}/like", status_code=status.HTTP_204_NO_CONTENT)
async def unlike_post(
    post_id: PostId,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> None:
    """Remove a like. Succeeds even if the post wasn't liked."""
    await engagement_service.unlike_post(db, current_user.id, post_id)


@router.post(
    "/{post_id}/bookmark",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def bookmark_post(
    post_id: PostId,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> None:
    """Bookmark a post."""
    await engagement_service.bookmark_post(db, current_user.id, post_id)


@router.delete("/{post_id}/bookmark", status_code=status.HTTP_204_NO_CONTENT)
async def remove_bookmark(
    post_id: PostId,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> None:
    """Remove a bookmark. Succeeds even if the post wasn't bookmarked."""
    await engagement_service.remove_bookmark(db, current_user.id, post_id)


@router.post(
    "/{post_id}/comments",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
    responses={404: {"model": ErrorResponse}},
)
async def submit_comment(
    post_id: PostId,
    data: CommentCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> CommentResponse:
    """Comment on a post."""
    return await engagement_service.add_comment(db, current_user.id, post_id, data.text)


@router.get("/{post_id}/comments", response_model=list[CommentResponse])
async def list_comments(
    post_id: PostId,
    db: AsyncSession = Depends(get_async_session),
) -> list[CommentResponse]:
    """Get a post's comments, newest first."""
    return await engagement_service.get_comments(db, post_id)


@router.patch(
    "/{post_id}/featured-image",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def update_featured_image(
    post_id: PostId,
    data: FeaturedImageUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> None:
    """Replace the featured image of a post the current user authored."""
    await post_service.update_post_featured_image(
        db, current_user.id, post_id, str(data.image_url),
    )
