"""Service layer for likes, bookmarks, comments and the reading list."""
import logging

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from models.bookmark import Bookmark
from models.comment import Comment
from models.like import Like
from models.post import Post
from schemas.comment import CommentResponse
from schemas.post import ReadingListItem
from services.exceptions import ConflictError
from services.post_service import ensure_post_exists
from services.utils import is_unique_violation

logger = logging.getLogger(__name__)

READING_LIST_LIMIT = 4


class AlreadyLikedError(ConflictError):
    """Raised when the user already likes the post."""

    code = "already_liked"

    def __init__(self, post_id: int) -> None:
        self.post_id = post_id
        super().__init__(f"Post {post_id} is already liked")


class AlreadyBookmarkedError(ConflictError):
    """Raised when the user already bookmarked the post."""

    code = "already_bookmarked"

    def __init__(self, post_id: int) -> None:
        self.post_id = post_id
        super().__init__(f"Post {post_id} is already bookmarked")


async def like_post(db: AsyncSession, user_id: int, post_id: int) -> None:
    """
    Like a post.

    The (user_id, post_id) primary key is the only duplicate guard, so a
    concurrent second like surfaces as AlreadyLikedError rather than a second row.

    Raises:
        PostNotFoundError: If the post doesn't exist.
        AlreadyLikedError: If the like already exists.
    """
    await ensure_post_exists(db, post_id)
    try:
        async with db.begin_nested():
            db.add(Like(user_id=user_id, post_id=post_id))
            await db.flush()
    except IntegrityError as e:
        if is_unique_violation(e, "pk_likes"):
            raise AlreadyLikedError(post_id) from e
        raise


async def unlike_post(db: AsyncSession, user_id: int, post_id: int) -> None:
    """Remove a like. Removing a missing like is a no-op."""
    await db.execute(
        delete(Like).where(Like.user_id == user_id, Like.post_id == post_id),
    )


async def bookmark_post(db: AsyncSession, user_id: int, post_id: int) -> None:
    """
    Bookmark a post.

    Raises:
        PostNotFoundError: If the post doesn't exist.
        AlreadyBookmarkedError: If the bookmark already exists.
    """
    await ensure_post_exists(db, post_id)
    try:
        async with db.begin_nested():
            db.add(Bookmark(user_id=user_id, post_id=post_id))
            await db.flush()
    except IntegrityError as e:
        if is_unique_violation(e, "pk_bookmarks"):
            raise AlreadyBookmarkedError(post_id) from e
        raise


async def remove_bookmark(db: AsyncSession, user_id: int, post_id: int) -> None:
    """Remove a bookmark. Removing a missing bookmark is a no-op."""
    await db.execute(
        delete(Bookmark).where(Bookmark.user_id == user_id, Bookmark.post_id == post_id),
    )


async def get_reading_list(
    db: AsyncSession,
    user_id: int,
    limit: int = READING_LIST_LIMIT,
) -> list[ReadingListItem]:
    """Get the user's most recent bookmarks with their posts, newest first."""
    result = await db.execute(
        select(Bookmark)
        .options(selectinload(Bookmark.post).selectinload(Post.author))
        .where(Bookmark.user_id == user_id)
        .order_by(Bookmark.created_at.desc())
        .limit(limit),
    )
    return [ReadingListItem.model_validate(bookmark) for bookmark in result.scalars()]


async def add_comment(
    db: AsyncSession,
    user_id: int,
    post_id: int,
    text: str,
) -> CommentResponse:
    """
    Add a comment to a post.

    Note: Does not commit. Caller (session generator) handles commit at request end.

    Raises:
        PostNotFoundError: If the post doesn't exist.
    """
    await ensure_post_exists(db, post_id)
    comment = Comment(user_id=user_id, post_id=post_id, text=text)
    db.add(comment)
    await db.flush()
    await db.refresh(comment, attribute_names=["created_at", "user"])
    return CommentResponse.model_validate(comment)


async def get_comments(db: AsyncSession, post_id: int) -> list[CommentResponse]:
    """Get a post's comments, newest first. Unknown posts yield an empty list."""
    result = await db.execute(
        select(Comment)
        .options(selectinload(Comment.user))
        .where(Comment.post_id == post_id)
        .order_by(Comment.created_at.desc(), Comment.id.desc()),
    )
    return [CommentResponse.model_validate(comment) for comment in result.scalars()]
