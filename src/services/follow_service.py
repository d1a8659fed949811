"""Service layer for the directed follow graph."""
import logging

from sqlalchemy import delete, exists, func, insert, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from models.user import User, follows
from schemas.user import FollowUserSummary
from services.exceptions import ConflictError, UserNotFoundError, ValidationError
from services.utils import is_unique_violation

logger = logging.getLogger(__name__)


class SelfFollowError(ValidationError):
    """Raised when a user tries to follow themselves."""

    code = "self_follow"

    def __init__(self) -> None:
        super().__init__("You cannot follow yourself")


class AlreadyFollowingError(ConflictError):
    """Raised when the follow edge already exists."""

    code = "already_following"

    def __init__(self, following_user_id: int) -> None:
        self.following_user_id = following_user_id
        super().__init__(f"Already following user {following_user_id}")


async def follow_user(
    db: AsyncSession,
    viewer_id: int,
    following_user_id: int,
) -> None:
    """
    Create the directed edge viewer -> following_user_id.

    Duplicate edges are rejected by the follows primary key, so two concurrent
    requests for the same pair produce exactly one edge and one conflict.

    Raises:
        SelfFollowError: If the target is the viewer.
        UserNotFoundError: If the target user doesn't exist.
        AlreadyFollowingError: If the edge already exists.
    """
    if viewer_id == following_user_id:
        raise SelfFollowError()

    target = await db.scalar(select(User.id).where(User.id == following_user_id))
    if target is None:
        raise UserNotFoundError(following_user_id)

    try:
        async with db.begin_nested():
            await db.execute(
                insert(follows).values(
                    follower_id=viewer_id,
                    following_id=following_user_id,
                ),
            )
    except IntegrityError as e:
        if is_unique_violation(e, "pk_follows"):
            raise AlreadyFollowingError(following_user_id) from e
        raise

    logger.info("User %s followed user %s", viewer_id, following_user_id)


async def unfollow_user(
    db: AsyncSession,
    viewer_id: int,
    following_user_id: int,
) -> None:
    """Remove the edge viewer -> following_user_id. A missing edge is not an error."""
    await db.execute(
        delete(follows).where(
            follows.c.follower_id == viewer_id,
            follows.c.following_id == following_user_id,
        ),
    )


async def is_following(db: AsyncSession, follower_id: int, following_id: int) -> bool:
    """Check whether follower_id follows following_id."""
    result = await db.scalar(
        select(
            exists().where(
                follows.c.follower_id == follower_id,
                follows.c.following_id == following_id,
            ),
        ),
    )
    return bool(result)


async def count_followers(db: AsyncSession, user_id: int) -> int:
    """Count incoming follow edges."""
    return await db.scalar(
        select(func.count()).select_from(follows).where(follows.c.following_id == user_id),
    ) or 0


async def count_following(db: AsyncSession, user_id: int) -> int:
    """Count outgoing follow edges."""
    return await db.scalar(
        select(func.count()).select_from(follows).where(follows.c.follower_id == user_id),
    ) or 0


async def get_followers(
    db: AsyncSession,
    user_id: int,
    viewer_id: int,
) -> list[FollowUserSummary]:
    """
    List users following user_id, most recent first.

    Each entry records whether the viewer follows that user. An unknown
    user_id yields an empty list.
    """
    return await _list_edges(
        db,
        edge_column=follows.c.following_id,
        other_column=follows.c.follower_id,
        user_id=user_id,
        viewer_id=viewer_id,
    )


async def get_following(
    db: AsyncSession,
    user_id: int,
    viewer_id: int,
) -> list[FollowUserSummary]:
    """List users that user_id follows, most recent first, annotated like get_followers()."""
    return await _list_edges(
        db,
        edge_column=follows.c.follower_id,
        other_column=follows.c.following_id,
        user_id=user_id,
        viewer_id=viewer_id,
    )


async def _list_edges(
    db: AsyncSession,
    edge_column,  # noqa: ANN001
    other_column,  # noqa: ANN001
    user_id: int,
    viewer_id: int,
) -> list[FollowUserSummary]:
    # Aliased so the EXISTS doesn't correlate against the listing join
    viewer_edge = follows.alias("viewer_edge")
    followed_by_viewer = exists(
        select(viewer_edge.c.following_id).where(
            viewer_edge.c.follower_id == viewer_id,
            viewer_edge.c.following_id == User.id,
        ),
    ).label("is_followed_by_viewer")

    result = await db.execute(
        select(User, followed_by_viewer)
        .join(follows, other_column == User.id)
        .where(edge_column == user_id)
        .order_by(follows.c.created_at.desc(), User.id.asc()),
    )
    return [
        FollowUserSummary(
            id=user.id,
            name=user.name,
            image=user.image,
            username=user.username,
            is_followed_by_viewer=bool(is_followed),
        )
        for user, is_followed in result.all()
    ]
