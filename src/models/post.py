"""Post model."""
from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from models.base import Base, TimestampMixin
from models.tag import post_tags

if TYPE_CHECKING:
    from models.bookmark import Bookmark
    from models.comment import Comment
    from models.like import Like
    from models.tag import Tag
    from models.user import User


class Post(Base, TimestampMixin):
    """
    Post model - an authored article.

    The slug is derived from the title once at creation and never re-derived on
    edit. Feed order is (created_at DESC, id DESC); the composite index backs it.
    """

    __tablename__ = "posts"
    __table_args__ = (
        UniqueConstraint("slug", name="uq_posts_slug"),
        Index("ix_posts_created_at_id", "created_at", "id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    author_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    slug: Mapped[str] = mapped_column(String(320), nullable=False)
    title: Mapped[str] = mapped_column(String(300), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    text: Mapped[str | None] = mapped_column(Text, nullable=True)
    html: Mapped[str] = mapped_column(Text, nullable=False)
    featured_image: Mapped[str | None] = mapped_column(Text, nullable=True)

    author: Mapped["User"] = relationship(back_populates="posts")
    tags: Mapped[list["Tag"]] = relationship(
        secondary=post_tags,
        back_populates="posts",
        order_by="Tag.name",
    )
    likes: Mapped[list["Like"]] = relationship(
        back_populates="post",
        passive_deletes=True,
    )
    bookmarks: Mapped[list["Bookmark"]] = relationship(
        back_populates="post",
        passive_deletes=True,
    )
    comments: Mapped[list["Comment"]] = relationship(
        back_populates="post",
        passive_deletes=True,
    )
