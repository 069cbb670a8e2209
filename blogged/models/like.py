"""
Blogged Backend — Like Model
=============================

What:  Join row recording that a user liked a post.
How:   The composite primary key (post_id, user_id) lets the database reject
       a second like from the same user; PostService toggles presence.
       created_at feeds the monthly analytics breakdown.
"""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from blogged.database import Base, utcnow

if TYPE_CHECKING:
    from blogged.models.post import Post
    from blogged.models.user import User


class Like(Base):
    __tablename__ = "likes"

    post_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("posts.id", ondelete="CASCADE"), primary_key=True
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    post: Mapped["Post"] = relationship(back_populates="likes")
    user: Mapped["User"] = relationship(back_populates="likes")

    def __repr__(self) -> str:
        return f"<Like(post_id={self.post_id}, user_id={self.user_id})>"
