"""User model and the follow graph."""
from typing import TYPE_CHECKING

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Index,
    PrimaryKeyConstraint,
    String,
    Table,
    Text,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from models.bookmark import Bookmark
    from models.comment import Comment
    from models.like import Like
    from models.post import Post


# Directed follow edges: follower_id follows following_id.
follows = Table(
    "follows",
    Base.metadata,
    Column(
        "follower_id",
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column(
        "following_id",
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column(
        "created_at",
        DateTime(timezone=True),
        server_default=func.clock_timestamp(),
        nullable=False,
    ),
    PrimaryKeyConstraint("follower_id", "following_id", name="pk_follows"),
    # Composite PK indexes follower_id first; followers-of lookups need this one
    Index("ix_follows_following_id", "following_id"),
)


class User(Base, TimestampMixin):
    """User model - stores identity provider info plus the public profile."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    auth0_id: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        index=True,
        comment="Auth0 'sub' claim - unique identifier from Auth0",
    )
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    username: Mapped[str] = mapped_column(String(100), unique=True, index=True)
    image: Mapped[str | None] = mapped_column(Text, nullable=True)

    posts: Mapped[list["Post"]] = relationship(
        back_populates="author",
        passive_deletes=True,
    )
    likes: Mapped[list["Like"]] = relationship(
        back_populates="user",
        passive_deletes=True,
    )
    bookmarks: Mapped[list["Bookmark"]] = relationship(
        back_populates="user",
        passive_deletes=True,
    )
    comments: Mapped[list["Comment"]] = relationship(
        back_populates="user",
        passive_deletes=True,
    )

    # Outgoing edges (users this user follows)
    followings: Mapped[list["User"]] = relationship(
        secondary=follows,
        primaryjoin=lambda: User.id == follows.c.follower_id,
        secondaryjoin=lambda: User.id == follows.c.following_id,
        back_populates="followed_by",
        passive_deletes=True,
    )
    # Incoming edges (users following this user)
    followed_by: Mapped[list["User"]] = relationship(
        secondary=follows,
        primaryjoin=lambda: User.id == follows.c.following_id,
        secondaryjoin=lambda: User.id == follows.c.follower_id,
        back_populates="followings",
        passive_deletes=True,
    )
