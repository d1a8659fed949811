"""Service layer for user profiles, profile posts and avatars."""
import base64
import binascii
import logging
import re
from uuid import uuid4

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from models.post import Post
from models.user import User
from schemas.post import PostSummary
from schemas.user import UserProfile
from services import follow_service
from services.blob_store import BlobStore
from services.exceptions import ValidationError
from services.feed_service import post_summary_query, rows_to_summaries
from services.utils import slugify

logger = logging.getLogger(__name__)

# data:[<mediatype>][;base64],<data>
_DATA_URL_PATTERN = re.compile(
    r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(?P<params>(?:;[^;,]+)*),(?P<data>.*)$",
    re.DOTALL,
)

# Raster formats only; SVG is rejected
AVATAR_EXTENSIONS = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/webp": ".webp",
    "image/gif": ".gif",
}


class InvalidDataUrlError(ValidationError):
    """Raised when an uploaded avatar is not a base64 image data URI."""

    code = "invalid_data_url"


class AvatarTooLargeError(ValidationError):
    """Raised when a decoded avatar exceeds the configured size limit."""

    code = "avatar_too_large"

    def __init__(self, max_bytes: int) -> None:
        self.max_bytes = max_bytes
        super().__init__(f"Avatar must be at most {max_bytes} bytes")


def generate_username(name: str | None) -> str:
    """
    Build a unique-enough username: slugified name plus a random suffix.

    The suffix makes collisions practically impossible; the unique constraint
    on users.username still has the final say.
    """
    base = slugify(name or "").lower()[:60] or "user"
    return f"{base}-{uuid4().hex[:12]}"


def parse_data_url(data_url: str) -> tuple[str, bytes]:
    """
    Decode a base64 image data URI.

    Returns:
        Tuple of (content_type, raw bytes).

    Raises:
        InvalidDataUrlError: If the value isn't a base64 data URI of a supported image type.
    """
    match = _DATA_URL_PATTERN.match(data_url.strip())
    if match is None:
        raise InvalidDataUrlError("Value is not a data URI")

    mime = (match.group("mime") or "").lower()
    if mime not in AVATAR_EXTENSIONS:
        raise InvalidDataUrlError("Avatar must be a PNG, JPEG, WebP or GIF image")
    if ";base64" not in match.group("params").lower():
        raise InvalidDataUrlError("Data URI must be base64 encoded")

    try:
        data = base64.b64decode(match.group("data"), validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidDataUrlError("Data URI payload is not valid base64") from e
    if not data:
        raise InvalidDataUrlError("Data URI payload is empty")
    return mime, data


async def get_user_by_username(db: AsyncSession, username: str) -> User | None:
    """Get a user by username."""
    result = await db.execute(select(User).where(User.username == username))
    return result.scalar_one_or_none()


async def get_user_profile(
    db: AsyncSession,
    username: str,
    viewer_id: int | None = None,
) -> UserProfile | None:
    """
    Get a public profile with post and follow counts.

    `is_followed_by_viewer` is only set for an authenticated viewer.
    Returns None if the username doesn't exist.
    """
    user = await get_user_by_username(db, username)
    if user is None:
        return None

    post_count = await db.scalar(
        select(func.count()).select_from(Post).where(Post.author_id == user.id),
    )
    fields = {
        "id": user.id,
        "name": user.name,
        "image": user.image,
        "username": user.username,
        "post_count": post_count or 0,
        "followers_count": await follow_service.count_followers(db, user.id),
        "following_count": await follow_service.count_following(db, user.id),
    }
    if viewer_id is not None:
        fields["is_followed_by_viewer"] = await follow_service.is_following(
            db, viewer_id, user.id,
        )
    return UserProfile(**fields)


async def get_user_posts(
    db: AsyncSession,
    username: str,
    viewer_id: int | None = None,
) -> list[PostSummary]:
    """
    Get every post by a user, newest first, without pagination.

    An unknown username yields an empty list.
    """
    result = await db.execute(
        post_summary_query(viewer_id)
        .join(User, User.id == Post.author_id)
        .where(User.username == username)
        .order_by(Post.created_at.desc(), Post.id.desc()),
    )
    return rows_to_summaries(list(result.all()), viewer_id)


async def upload_avatar(
    db: AsyncSession,
    user: User,
    data_url: str,
    blob_store: BlobStore,
    max_bytes: int,
) -> str:
    """
    Store a new avatar for the user and point their profile image at it.

    The object path is derived from the username, so re-uploading overwrites
    the previous avatar.

    Returns:
        Public URL of the uploaded image.

    Raises:
        InvalidDataUrlError: If data_url isn't a base64 image data URI.
        AvatarTooLargeError: If the image exceeds max_bytes.
        UploadFailedError: If the object store upload fails.
    """
    content_type, data = parse_data_url(data_url)
    if len(data) > max_bytes:
        raise AvatarTooLargeError(max_bytes)

    path = f"avatars/{user.username}{AVATAR_EXTENSIONS[content_type]}"
    url = await run_in_threadpool(blob_store.put, path, data, content_type)

    user.image = url
    await db.flush()
    logger.info("Updated avatar for user %s", user.id)
    return url
