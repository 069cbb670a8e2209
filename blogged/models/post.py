"""
Blogged Backend — Post, Tag and PostTag Models
===============================================

What:  ORM models for blog posts and their tag associations.
Who:   PostService for every read/write; Alembic for the schema.

Table Design Rationale:
    - posts.view_count only ever grows; it is bumped with an atomic
      `UPDATE ... SET view_count = view_count + 1`
    - tags.name is stored lower-cased, which makes the unique index
      effectively case-insensitive
    - post_tags has a composite primary key, so a post can link a tag once;
      the whole set is deleted and re-created when a post is edited
    - every child foreign key cascades on delete

Index on (published, created_at):
    The public listing always filters on published and sorts by created_at.
"""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from blogged.database import Base, utcnow

if TYPE_CHECKING:
    from blogged.models.comment import Comment
    from blogged.models.like import Like
    from blogged.models.user import User


class Post(Base):
    """
    A blog post owned by a single author.

    Only the author may update or delete it. Drafts (published=False) are
    excluded from every listing but remain reachable by id.
    """

    __tablename__ = "posts"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    excerpt: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    image: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    published: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    view_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )
    author_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )

    author: Mapped["User"] = relationship(back_populates="posts")
    tag_links: Mapped[List["PostTag"]] = relationship(
        back_populates="post", cascade="all, delete-orphan", passive_deletes=True
    )
    comments: Mapped[List["Comment"]] = relationship(
        back_populates="post",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Comment.created_at.desc()",
    )
    likes: Mapped[List["Like"]] = relationship(
        back_populates="post", cascade="all, delete-orphan", passive_deletes=True
    )

    __table_args__ = (
        Index("idx_posts_published_created_at", "published", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Post(id={self.id}, title='{self.title[:30]}', published={self.published})>"


class Tag(Base):
    """A lower-cased label shared by any number of posts. Never deleted."""

    __tablename__ = "tags"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    # "#rrggbb"
    color: Mapped[str] = mapped_column(String(7), nullable=False)

    post_links: Mapped[List["PostTag"]] = relationship(
        back_populates="tag", cascade="all, delete-orphan", passive_deletes=True
    )

    def __repr__(self) -> str:
        return f"<Tag(name='{self.name}', color='{self.color}')>"


class PostTag(Base):
    """Join row linking a post to a tag."""

    __tablename__ = "post_tags"

    post_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("posts.id", ondelete="CASCADE"), primary_key=True
    )
    tag_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True
    )

    post: Mapped["Post"] = relationship(back_populates="tag_links")
    tag: Mapped["Tag"] = relationship(back_populates="post_links")
