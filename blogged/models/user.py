"""
Blogged Backend — User SQLAlchemy Model
========================================

What:  ORM model for the `users` table.
Who:   AuthService (registration, login, profile), PostService and
       CommentService (author summaries, ownership checks).

Table Design Rationale:
    - UUID primary key: non-sequential ids cannot be enumerated
    - email / username: each globally unique, enforced by the database
    - password_hash: PBKDF2 record produced by blogged.security; never
      serialized, the response schemas simply do not declare it
"""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import DateTime, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from blogged.database import Base, utcnow

if TYPE_CHECKING:
    from blogged.models.comment import Comment
    from blogged.models.like import Like
    from blogged.models.post import Post


class User(Base):
    """
    A registered author/reader.

    Lifecycle:
        Created at registration, mutated through the profile and password
        endpoints, never deleted by the API.
    """

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    username: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    bio: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    avatar: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    posts: Mapped[List["Post"]] = relationship(
        back_populates="author", cascade="all, delete-orphan", passive_deletes=True
    )
    comments: Mapped[List["Comment"]] = relationship(
        back_populates="author", cascade="all, delete-orphan", passive_deletes=True
    )
    likes: Mapped[List["Like"]] = relationship(
        back_populates="user", cascade="all, delete-orphan", passive_deletes=True
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, username='{self.username}')>"
