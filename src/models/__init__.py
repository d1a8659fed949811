"""SQLAlchemy models."""
from models.base import Base, TimestampMixin
from models.user import User, follows
from models.tag import Tag, post_tags  # Must be before post due to import
from models.post import Post
from models.bookmark import Bookmark
from models.comment import Comment
from models.like import Like

__all__ = [
    "Base",
    "Bookmark",
    "Comment",
    "Like",
    "Post",
    "Tag",
    "TimestampMixin",
    "User",
    "follows",
    "post_tags",
]
