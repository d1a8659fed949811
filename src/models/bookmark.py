"""Bookmark model for a user's saved posts."""
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Index, PrimaryKeyConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from models.base import Base

if TYPE_CHECKING:
    from models.post import Post
    from models.user import User


class Bookmark(Base):
    """Bookmark model - one row per (user, post); the reading list sorts by created_at."""

    __tablename__ = "bookmarks"
    __table_args__ = (
        PrimaryKeyConstraint("user_id", "post_id", name="pk_bookmarks"),
        Index("ix_bookmarks_post_id", "post_id"),
        Index("ix_bookmarks_user_id_created_at", "user_id", "created_at"),
    )

    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"))
    post_id: Mapped[int] = mapped_column(ForeignKey("posts.id", ondelete="CASCADE"))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.clock_timestamp(),
        nullable=False,
    )

    user: Mapped["User"] = relationship(back_populates="bookmarks")
    post: Mapped["Post"] = relationship(back_populates="bookmarks")
