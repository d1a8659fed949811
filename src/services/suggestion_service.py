"""
"People you might follow" suggestions based on two-hop tag affinity.

viewer -> recent likes/bookmarks -> their posts' tags (the interest set)
-> other users who liked or bookmarked any post carrying one of those tags.
"""
import logging

from sqlalchemy import distinct, exists, func, or_, select, union, union_all
from sqlalchemy.ext.asyncio import AsyncSession

from models.bookmark import Bookmark
from models.like import Like
from models.tag import Tag, post_tags
from models.user import User
from schemas.user import UserSummary

logger = logging.getLogger(__name__)

SUGGESTION_LIMIT = 4
# Most recent likes (and, separately, bookmarks) used to build the interest set
SIGNAL_LIMIT = 10


async def get_interest_tags(db: AsyncSession, viewer_id: int) -> set[str]:
    """
    Collect tag names from the viewer's recent engagement.

    Uses the SIGNAL_LIMIT most recent likes and the SIGNAL_LIMIT most recent
    bookmarks, each resolved to every tag on the engaged post.
    """
    recent_likes = (
        select(Like.post_id)
        .where(Like.user_id == viewer_id)
        .order_by(Like.created_at.desc())
        .limit(SIGNAL_LIMIT)
        .subquery()
    )
    recent_bookmarks = (
        select(Bookmark.post_id)
        .where(Bookmark.user_id == viewer_id)
        .order_by(Bookmark.created_at.desc())
        .limit(SIGNAL_LIMIT)
        .subquery()
    )

    liked_tags = (
        select(Tag.name)
        .join(post_tags, post_tags.c.tag_id == Tag.id)
        .join(recent_likes, recent_likes.c.post_id == post_tags.c.post_id)
    )
    bookmarked_tags = (
        select(Tag.name)
        .join(post_tags, post_tags.c.tag_id == Tag.id)
        .join(recent_bookmarks, recent_bookmarks.c.post_id == post_tags.c.post_id)
    )

    result = await db.execute(union(liked_tags, bookmarked_tags))
    return set(result.scalars().all())


def _engaged_with_any(model: type[Like] | type[Bookmark], tag_names: list[str]):  # noqa: ANN202
    """EXISTS clause: the outer User has a `model` row on a post tagged with any name."""
    return exists(
        select(model.post_id)
        .join(post_tags, post_tags.c.post_id == model.post_id)
        .join(Tag, Tag.id == post_tags.c.tag_id)
        .where(
            model.user_id == User.id,
            Tag.name.in_(tag_names),
        ),
    )


async def get_suggestions(
    db: AsyncSession,
    viewer_id: int,
    ranked: bool = False,
) -> list[UserSummary]:
    """
    Suggest up to SUGGESTION_LIMIT users for the viewer to follow.

    Any user (other than the viewer) who liked OR bookmarked a post carrying
    one of the viewer's interest tags qualifies equally. By default the result
    follows the database's natural order.

    Args:
        db: Database session.
        viewer_id: The authenticated viewer.
        ranked: Order matches by the number of distinct interest tags they
            engaged with (desc), then by user id. Filtering is unchanged.

    Returns:
        List of UserSummary; empty when the viewer has no likes or bookmarks.
    """
    interest = await get_interest_tags(db, viewer_id)
    if not interest:
        # An empty IN filter must mean "no match", never "match everything"
        return []

    tag_names = sorted(interest)
    if ranked:
        users = await _ranked_matches(db, viewer_id, tag_names)
    else:
        result = await db.execute(
            select(User)
            .where(
                User.id != viewer_id,
                or_(
                    _engaged_with_any(Like, tag_names),
                    _engaged_with_any(Bookmark, tag_names),
                ),
            )
            .limit(SUGGESTION_LIMIT),
        )
        users = list(result.scalars().all())

    logger.debug(
        "Suggestions for user %s: %d interest tags, %d matches",
        viewer_id,
        len(tag_names),
        len(users),
    )
    return [UserSummary.model_validate(user) for user in users]


async def _ranked_matches(
    db: AsyncSession,
    viewer_id: int,
    tag_names: list[str],
) -> list[User]:
    """Matches ordered by distinct interest-tag overlap, tie-broken by user id."""
    engagements = union_all(
        select(Like.user_id.label("user_id"), Tag.name.label("tag_name"))
        .join(post_tags, post_tags.c.post_id == Like.post_id)
        .join(Tag, Tag.id == post_tags.c.tag_id)
        .where(Tag.name.in_(tag_names)),
        select(Bookmark.user_id.label("user_id"), Tag.name.label("tag_name"))
        .join(post_tags, post_tags.c.post_id == Bookmark.post_id)
        .join(Tag, Tag.id == post_tags.c.tag_id)
        .where(Tag.name.in_(tag_names)),
    ).subquery()

    result = await db.execute(
        select(User)
        .join(engagements, engagements.c.user_id == User.id)
        .where(User.id != viewer_id)
        .group_by(User.id)
        .order_by(func.count(distinct(engagements.c.tag_name)).desc(), User.id.asc())
        .limit(SUGGESTION_LIMIT),
    )
    return list(result.scalars().all())
