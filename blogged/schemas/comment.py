"""
Blogged Backend — Comment Schemas
==================================
"""

import uuid
from datetime import datetime
from typing import List

from pydantic import AliasChoices, BaseModel, Field, field_validator

from blogged.schemas.common import AuthorSummary, PaginationMeta


class CommentCreateRequest(BaseModel):
    post_id: uuid.UUID = Field(validation_alias=AliasChoices("post_id", "postId"))
    content: str = Field(min_length=1, max_length=5000)

    @field_validator("content")
    @classmethod
    def content_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be blank")
        return v


class CommentUpdateRequest(BaseModel):
    content: str = Field(min_length=1, max_length=5000)

    @field_validator("content")
    @classmethod
    def content_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be blank")
        return v


class CommentResponse(BaseModel):
    id: uuid.UUID
    content: str
    created_at: datetime
    post_id: uuid.UUID
    author: AuthorSummary

    model_config = {"from_attributes": True}


class CommentListResponse(BaseModel):
    comments: List[CommentResponse]
    pagination: PaginationMeta
