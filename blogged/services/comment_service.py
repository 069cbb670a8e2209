"""
Blogged Backend — Comment Service
==================================

What:  Paginated comment threads and author-only comment edits.
Who:   Called by routes/comments.py.
"""

import logging
import uuid

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from blogged.exceptions import BloggedError, DatabaseError, ForbiddenError, NotFoundError
from blogged.models import Comment, Post
from blogged.schemas.auth import TokenIdentity
from blogged.schemas.comment import (
    CommentCreateRequest,
    CommentListResponse,
    CommentResponse,
    CommentUpdateRequest,
)
from blogged.schemas.common import PaginationMeta

logger = logging.getLogger(__name__)


class CommentService:

    async def list_by_post(
        self,
        db: AsyncSession,
        post_id: uuid.UUID,
        page: int = 1,
        limit: int = 20,
    ) -> CommentListResponse:
        """
        One page of a post's comments, newest first.

        An unknown post is not an error here; it simply has no comments.
        """
        try:
            total = await db.scalar(
                select(func.count(Comment.id)).where(Comment.post_id == post_id)
            ) or 0
            result = await db.execute(
                select(Comment)
                .options(selectinload(Comment.author))
                .where(Comment.post_id == post_id)
                .order_by(Comment.created_at.desc(), Comment.id.desc())
                .offset((page - 1) * limit)
                .limit(limit)
            )
            comments = [CommentResponse.model_validate(c) for c in result.scalars()]
        except SQLAlchemyError as e:
            logger.error("Database error listing comments for %s: %s", post_id, str(e), exc_info=True)
            raise DatabaseError(message="Could not load comments. Please try again.")

        return CommentListResponse(
            comments=comments,
            pagination=PaginationMeta.build(page, limit, total),
        )

    async def create_comment(
        self, db: AsyncSession, identity: TokenIdentity, payload: CommentCreateRequest
    ) -> CommentResponse:
        """
        Raises:
            NotFoundError: the target post does not exist
        """
        try:
            post_exists = await db.scalar(select(Post.id).where(Post.id == payload.post_id))
            if post_exists is None:
                raise NotFoundError(resource="post", resource_id=str(payload.post_id))

            comment = Comment(
                post_id=payload.post_id,
                author_id=identity.user_id,
                content=payload.content,
            )
            db.add(comment)
            await db.flush()
            logger.info("User %s commented on post %s", identity.user_id, payload.post_id)
            return await self._load(db, comment.id)
        except BloggedError:
            raise
        except SQLAlchemyError as e:
            logger.error("Database error creating comment: %s", str(e), exc_info=True)
            raise DatabaseError(message="Could not save the comment. Please try again.")

    async def update_comment(
        self,
        db: AsyncSession,
        identity: TokenIdentity,
        comment_id: uuid.UUID,
        payload: CommentUpdateRequest,
    ) -> CommentResponse:
        try:
            comment = await self._get_owned(db, comment_id, identity)
            comment.content = payload.content
            await db.flush()
            logger.info("User %s edited comment %s", identity.user_id, comment_id)
            return await self._load(db, comment.id)
        except BloggedError:
            raise
        except SQLAlchemyError as e:
            logger.error("Database error updating comment %s: %s", comment_id, str(e), exc_info=True)
            raise DatabaseError(message="Could not update the comment. Please try again.")

    async def delete_comment(
        self, db: AsyncSession, identity: TokenIdentity, comment_id: uuid.UUID
    ) -> None:
        try:
            comment = await self._get_owned(db, comment_id, identity)
            await db.delete(comment)
            await db.flush()
            logger.info("User %s deleted comment %s", identity.user_id, comment_id)
        except BloggedError:
            raise
        except SQLAlchemyError as e:
            logger.error("Database error deleting comment %s: %s", comment_id, str(e), exc_info=True)
            raise DatabaseError(message="Could not delete the comment. Please try again.")

    async def _get_owned(
        self, db: AsyncSession, comment_id: uuid.UUID, identity: TokenIdentity
    ) -> Comment:
        comment = await db.get(Comment, comment_id)
        if comment is None:
            raise NotFoundError(resource="comment", resource_id=str(comment_id))
        if comment.author_id != identity.user_id:
            raise ForbiddenError("You can only modify your own comments")
        return comment

    async def _load(self, db: AsyncSession, comment_id: uuid.UUID) -> CommentResponse:
        result = await db.execute(
            select(Comment)
            .options(selectinload(Comment.author))
            .where(Comment.id == comment_id)
            .execution_options(populate_existing=True)
        )
        return CommentResponse.model_validate(result.scalar_one())


comment_service = CommentService()
