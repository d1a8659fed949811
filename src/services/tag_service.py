"""Service layer for tag operations."""
import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from models.tag import Tag
from schemas.tag import TagCreate
from services.exceptions import ConflictError, NotFoundError, ValidationError
from services.utils import is_unique_violation, slugify

logger = logging.getLogger(__name__)


class TagAlreadyExistsError(ConflictError):
    """Raised when trying to create a tag whose name is taken."""

    code = "tag_exists"

    def __init__(self, tag_name: str) -> None:
        self.tag_name = tag_name
        super().__init__(f"Tag '{tag_name}' already exists")


class InvalidTagNameError(ValidationError):
    """Raised when a tag name has no characters a slug can be built from."""

    code = "invalid_tag_name"

    def __init__(self, tag_name: str) -> None:
        self.tag_name = tag_name
        super().__init__("Tag name must contain letters or digits usable in a URL")


class TagNotFoundError(NotFoundError):
    """Raised when a referenced tag ID doesn't exist."""

    code = "tag_not_found"

    def __init__(self, tag_ids: list[int]) -> None:
        self.tag_ids = tag_ids
        super().__init__(f"Tags not found: {', '.join(str(t) for t in tag_ids)}")


async def get_tag_by_name(db: AsyncSession, name: str) -> Tag | None:
    """Get a tag by its exact name."""
    result = await db.execute(select(Tag).where(Tag.name == name))
    return result.scalar_one_or_none()


async def create_tag(db: AsyncSession, data: TagCreate) -> Tag:
    """
    Create a tag with a slug derived from its name.

    Raises:
        InvalidTagNameError: If the name slugifies to nothing.
        TagAlreadyExistsError: If a tag with this name already exists.
    """
    slug = slugify(data.name)
    if not slug:
        raise InvalidTagNameError(data.name)

    # Early check for a clear error; the unique constraint still guards races
    if await get_tag_by_name(db, data.name) is not None:
        raise TagAlreadyExistsError(data.name)

    tag = Tag(name=data.name, slug=slug, description=data.description)
    try:
        async with db.begin_nested():
            db.add(tag)
            await db.flush()
    except IntegrityError as e:
        if is_unique_violation(e, "uq_tags_name"):
            raise TagAlreadyExistsError(data.name) from e
        raise

    await db.refresh(tag)
    logger.info("Created tag %r", tag.name)
    return tag


async def get_tags(db: AsyncSession) -> list[Tag]:
    """Get all tags sorted by name."""
    result = await db.execute(select(Tag).order_by(Tag.name.asc()))
    return list(result.scalars().all())


async def get_tags_by_ids(db: AsyncSession, tag_ids: list[int]) -> list[Tag]:
    """
    Load tags by ID, preserving the requested order and dropping duplicates.

    Raises:
        TagNotFoundError: If any ID doesn't exist.
    """
    unique_ids = list(dict.fromkeys(tag_ids))
    if not unique_ids:
        return []

    result = await db.execute(select(Tag).where(Tag.id.in_(unique_ids)))
    found = {tag.id: tag for tag in result.scalars()}
    missing = [tag_id for tag_id in unique_ids if tag_id not in found]
    if missing:
        raise TagNotFoundError(missing)
    return [found[tag_id] for tag_id in unique_ids]
