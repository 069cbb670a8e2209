"""
Blogged Backend — Post, Tag, Like and Analytics Schemas
========================================================

What:  API contracts for the posts resource.
Who:   Returned by routes/posts.py; built by PostService.

Embedded projections:
    Every post carries its author summary, its tags (sorted by name) and
    `counts` of comments and likes. The single-post view adds the comment
    thread (newest first) and whether the caller has liked it.
"""

import uuid
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from blogged.schemas.comment import CommentResponse
from blogged.schemas.common import AuthorSummary, PaginationMeta

# newest: created_at desc (default), oldest: created_at asc,
# popular: like count desc
PostSort = Literal["newest", "oldest", "popular"]


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class PostWriteRequest(BaseModel):
    """Shared body of create and update."""
    title: str = Field(min_length=1, max_length=255)
    content: str = Field(min_length=1)
    excerpt: Optional[str] = None
    image: Optional[str] = Field(default=None, max_length=500)
    tags: List[str] = Field(default_factory=list, max_length=20)

    @field_validator("title", "content")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be blank")
        return v

    @field_validator("tags")
    @classmethod
    def tag_length(cls, v: List[str]) -> List[str]:
        for name in v:
            if len(name.strip()) > 50:
                raise ValueError("tag names are limited to 50 characters")
        return v


class PostCreateRequest(PostWriteRequest):
    published: bool = False


class PostUpdateRequest(PostWriteRequest):
    """
    `excerpt`, `image` and `published` are left unchanged when omitted.
    `tags` always replaces the whole set; omitting it unlinks every tag.
    """
    published: Optional[bool] = None


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class TagResponse(BaseModel):
    id: uuid.UUID
    name: str
    color: str

    model_config = {"from_attributes": True}


class TagWithCount(TagResponse):
    post_count: int


class PostCounts(BaseModel):
    comments: int = 0
    likes: int = 0


class PostSummary(BaseModel):
    """A post as it appears in listings."""
    id: uuid.UUID
    title: str
    content: str
    excerpt: Optional[str] = None
    image: Optional[str] = None
    published: bool
    view_count: int
    created_at: datetime
    updated_at: datetime
    author: AuthorSummary
    tags: List[TagResponse]
    counts: PostCounts


class PostDetail(PostSummary):
    """GET /api/posts/{id}."""
    comments: List[CommentResponse]
    is_liked: bool = False


class PostListResponse(BaseModel):
    posts: List[PostSummary]
    pagination: PaginationMeta


class LikeToggleResponse(BaseModel):
    liked: bool
    likes: int = Field(description="Like count after the toggle")


class TopPost(BaseModel):
    id: uuid.UUID
    title: str
    views: int
    likes: int
    comments: int


class MonthlyStat(BaseModel):
    month: str = Field(description="Calendar month, YYYY-MM")
    posts: int
    views: int
    likes: int
    comments: int


class AnalyticsResponse(BaseModel):
    """
    Aggregates over the caller's own posts.

    average_engagement is (likes + comments) / post count. It is an average
    per post, not a percentage.
    """
    total_posts: int
    total_views: int
    total_likes: int
    total_comments: int
    average_engagement: float
    top_post: Optional[TopPost] = None
    monthly_stats: List[MonthlyStat]
