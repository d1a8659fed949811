"""Service layer for post authoring and single-post reads."""
import logging

from sqlalchemy import exists, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from models.like import Like
from models.post import Post
from schemas.post import AuthorSummary, PostCreate, PostDetail, TagSummary
from services.exceptions import (
    ConflictError,
    ForbiddenError,
    PostNotFoundError,
    ValidationError,
)
from services.tag_service import get_tags_by_ids
from services.utils import is_unique_violation, slugify

logger = logging.getLogger(__name__)


class SlugAlreadyExistsError(ConflictError):
    """
    Raised when a new post's title slugifies to an existing slug.

    Slugs are never suffixed or salted; the author has to pick another title.
    """

    code = "slug_exists"

    def __init__(self, slug: str) -> None:
        self.slug = slug
        super().__init__(f"A post with slug '{slug}' already exists")


class InvalidTitleError(ValidationError):
    """Raised when a title has no characters a slug can be built from."""

    code = "invalid_title"

    def __init__(self, title: str) -> None:
        self.title = title
        super().__init__("Title must contain letters or digits usable in a URL")


class PostNotOwnedError(ForbiddenError):
    """Raised when a user mutates a post they did not author."""

    code = "post_not_owned"

    def __init__(self, post_id: int) -> None:
        self.post_id = post_id
        super().__init__(f"You are not the author of post {post_id}")


async def ensure_post_exists(db: AsyncSession, post_id: int) -> None:
    """
    Raise PostNotFoundError unless the post exists.

    Raises:
        PostNotFoundError: If no post has this ID.
    """
    found = await db.scalar(select(Post.id).where(Post.id == post_id))
    if found is None:
        raise PostNotFoundError(post_id)


async def create_post(db: AsyncSession, author_id: int, data: PostCreate) -> PostDetail:
    """
    Create a post. The slug is derived from the title once, here.

    Note: Does not commit. Caller (session generator) handles commit at request end.

    Raises:
        TagNotFoundError: If any of data.tag_ids doesn't exist.
        InvalidTitleError: If the title slugifies to nothing (e.g. a non-Latin script).
        SlugAlreadyExistsError: If the derived slug is taken.
    """
    slug = slugify(data.title)
    if not slug:
        raise InvalidTitleError(data.title)
    tags = await get_tags_by_ids(db, data.tag_ids)

    post = Post(
        author_id=author_id,
        slug=slug,
        title=data.title,
        description=data.description,
        text=data.text,
        html=data.html,
        tags=tags,
    )
    try:
        async with db.begin_nested():
            db.add(post)
            await db.flush()
    except IntegrityError as e:
        if is_unique_violation(e, "uq_posts_slug"):
            logger.warning("Slug collision creating post for user %s: %s", author_id, slug)
            raise SlugAlreadyExistsError(slug) from e
        raise

    detail = await get_post(db, slug)
    if detail is None:
        raise PostNotFoundError(post.id)
    return detail


async def get_post(
    db: AsyncSession,
    slug: str,
    viewer_id: int | None = None,
) -> PostDetail | None:
    """
    Get a post by slug. `liked` is set only when a viewer is given.

    Returns:
        The PostDetail, or None if no post has this slug.
    """
    query = (
        select(Post)
        .options(selectinload(Post.author), selectinload(Post.tags))
        .where(Post.slug == slug)
    )
    if viewer_id is not None:
        liked = exists(
            select(Like.post_id).where(
                Like.post_id == Post.id,
                Like.user_id == viewer_id,
            ),
        ).label("liked")
        query = query.add_columns(liked)

    result = await db.execute(query)
    row = result.one_or_none()
    if row is None:
        return None

    post = row[0]
    fields = {
        "id": post.id,
        "slug": post.slug,
        "title": post.title,
        "description": post.description,
        "text": post.text,
        "html": post.html,
        "created_at": post.created_at,
        "featured_image": post.featured_image,
        "author": AuthorSummary.model_validate(post.author),
        "tags": [TagSummary.model_validate(tag) for tag in post.tags],
    }
    if viewer_id is not None:
        fields["liked"] = bool(row[1])
    return PostDetail(**fields)


async def update_post_featured_image(
    db: AsyncSession,
    user_id: int,
    post_id: int,
    image_url: str,
) -> None:
    """
    Replace a post's featured image if the user is its author.

    Ownership check and write are a single conditional UPDATE, so authorship
    cannot change between check and mutation. When nothing is updated, a
    follow-up read decides between not-found and forbidden.

    Raises:
        PostNotFoundError: If the post doesn't exist.
        PostNotOwnedError: If the post belongs to someone else.
    """
    result = await db.execute(
        update(Post)
        .where(Post.id == post_id, Post.author_id == user_id)
        .values(featured_image=image_url, updated_at=func.clock_timestamp()),
    )
    if result.rowcount == 1:
        return

    await ensure_post_exists(db, post_id)
    logger.warning("User %s attempted to change image of post %s", user_id, post_id)
    raise PostNotOwnedError(post_id)
