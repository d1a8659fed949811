"""
Cursor-paginated post feed.

Pages are ordered by (created_at DESC, id DESC). A page fetches one row more
than it returns; that extra row is popped and its id becomes the next cursor,
so the following page starts at it (inclusive) and no post is skipped or
repeated. Cursors are plain post ids rendered as strings.
"""
import logging

from sqlalchemy import Select, exists, select, tuple_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from models.base import MAX_ID
from models.bookmark import Bookmark
from models.post import Post
from schemas.post import AuthorSummary, FeedPage, PostSummary, TagSummary

logger = logging.getLogger(__name__)

FEED_PAGE_SIZE = 10


def post_summary_query(viewer_id: int | None) -> Select:
    """
    Build the base select for PostSummary rows.

    Yields (Post,) rows for anonymous viewers and (Post, bookmarked) rows when
    a viewer is given. The bookmark flag is an EXISTS test, not a count.
    """
    query = select(Post).options(
        selectinload(Post.author),
        selectinload(Post.tags),
    )
    if viewer_id is not None:
        bookmarked = exists(
            select(Bookmark.post_id).where(
                Bookmark.post_id == Post.id,
                Bookmark.user_id == viewer_id,
            ),
        ).label("bookmarked")
        query = query.add_columns(bookmarked)
    return query


def to_post_summary(post: Post, bookmarked: bool | None = None) -> PostSummary:
    """Project a loaded Post into a PostSummary, setting `bookmarked` only if known."""
    fields = {
        "id": post.id,
        "slug": post.slug,
        "title": post.title,
        "description": post.description,
        "created_at": post.created_at,
        "featured_image": post.featured_image,
        "author": AuthorSummary.model_validate(post.author),
        "tags": [TagSummary.model_validate(tag) for tag in post.tags],
    }
    if bookmarked is not None:
        fields["bookmarked"] = bookmarked
    return PostSummary(**fields)


def rows_to_summaries(rows: list, viewer_id: int | None) -> list[PostSummary]:
    """Convert rows from post_summary_query() into PostSummary objects."""
    if viewer_id is None:
        return [to_post_summary(row[0]) for row in rows]
    return [to_post_summary(row[0], bool(row[1])) for row in rows]


def _parse_cursor(cursor: str) -> int | None:
    """Parse a cursor string into a post id, or None if it cannot name a post."""
    try:
        post_id = int(cursor)
    except ValueError:
        return None
    if post_id < 1 or post_id > MAX_ID:
        return None
    return post_id


async def get_posts(
    db: AsyncSession,
    cursor: str | None = None,
    viewer_id: int | None = None,
    limit: int = FEED_PAGE_SIZE,
) -> FeedPage:
    """
    Get one page of the feed, newest first.

    Args:
        db: Database session.
        cursor: Id of the first post of the requested page (from a previous
            page's next_cursor). None starts at the most recent post.
        viewer_id: Authenticated viewer. When None, `bookmarked` is omitted.
        limit: Page size.

    Returns:
        FeedPage with at most `limit` posts. next_cursor is unset on the last
        page. A cursor that doesn't reference an existing post yields an empty
        page rather than an error.
    """
    query = (
        post_summary_query(viewer_id)
        .order_by(Post.created_at.desc(), Post.id.desc())
        .limit(limit + 1)
    )

    if cursor is not None:
        cursor_id = _parse_cursor(cursor)
        anchor = None
        if cursor_id is not None:
            result = await db.execute(
                select(Post.id, Post.created_at).where(Post.id == cursor_id),
            )
            anchor = result.one_or_none()
        if anchor is None:
            logger.debug("Feed cursor %r does not match a post", cursor)
            return FeedPage(posts=[])
        query = query.where(
            tuple_(Post.created_at, Post.id) <= tuple_(anchor.created_at, anchor.id),
        )

    result = await db.execute(query)
    rows = list(result.all())

    next_cursor = None
    if len(rows) > limit:
        next_cursor = str(rows.pop()[0].id)

    posts = rows_to_summaries(rows, viewer_id)
    if next_cursor is None:
        return FeedPage(posts=posts)
    return FeedPage(posts=posts, next_cursor=next_cursor)
