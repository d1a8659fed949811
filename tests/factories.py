"""Helpers that insert test rows directly through the ORM."""
from collections.abc import Sequence
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from models.bookmark import Bookmark
from models.like import Like
from models.post import Post
from models.tag import Tag
from models.user import User
from services.utils import slugify

LONG_HTML = "<p>" + "Lorem ipsum dolor sit amet, consectetur adipiscing elit. " * 3 + "</p>"
LONG_DESCRIPTION = "A description that is comfortably longer than sixty characters in total."


async def create_user(
    db: AsyncSession,
    username: str,
    name: str | None = None,
) -> User:
    """Create a user whose auth0_id is derived from the username."""
    user = User(
        auth0_id=f"auth0|{username}",
        email=f"{username}@example.com",
        name=name or username.title(),
        username=username,
    )
    db.add(user)
    await db.flush()
    return user


async def create_tag(db: AsyncSession, name: str) -> Tag:
    tag = Tag(name=name, slug=slugify(name), description=f"Posts about {name}")
    db.add(tag)
    await db.flush()
    return tag


async def create_post(
    db: AsyncSession,
    author: User,
    title: str,
    tags: Sequence[Tag] = (),
    created_at: datetime | None = None,
) -> Post:
    """Create a post; created_at defaults to the database clock."""
    post = Post(
        author_id=author.id,
        slug=slugify(title),
        title=title,
        description=LONG_DESCRIPTION,
        html=LONG_HTML,
        tags=list(tags),
    )
    if created_at is not None:
        post.created_at = created_at
    db.add(post)
    await db.flush()
    return post


async def like(db: AsyncSession, user: User, post: Post) -> None:
    db.add(Like(user_id=user.id, post_id=post.id))
    await db.flush()


async def bookmark(db: AsyncSession, user: User, post: Post) -> None:
    db.add(Bookmark(user_id=user.id, post_id=post.id))
    await db.flush()
