"""
ORM models. Importing this package registers every mapper on `Base`, which
string-based relationships, `create_all` and Alembic autogenerate rely on.
"""

from blogged.models.comment import Comment
from blogged.models.like import Like
from blogged.models.post import Post, PostTag, Tag
from blogged.models.user import User

__all__ = ["Comment", "Like", "Post", "PostTag", "Tag", "User"]
