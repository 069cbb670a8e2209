"""
Blogged Backend — Comment Route Handlers
=========================================
"""

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from blogged.database import get_db_session
from blogged.exceptions import NotFoundError
from blogged.middleware.auth import get_current_identity
from blogged.schemas.auth import TokenIdentity
from blogged.schemas.comment import (
    CommentCreateRequest,
    CommentListResponse,
    CommentResponse,
    CommentUpdateRequest,
)
from blogged.schemas.common import ErrorResponse, MessageResponse, PaginationMeta, parse_resource_id
from blogged.services.comment_service import comment_service

router = APIRouter(prefix="/api/comments", tags=["Comments"])

_OWNER_ERRORS = {
    401: {"description": "Missing or invalid token", "model": ErrorResponse},
    403: {"description": "Caller is not the comment author", "model": ErrorResponse},
    404: {"description": "Comment not found", "model": ErrorResponse},
}


@router.get(
    "/post/{post_id}",
    response_model=CommentListResponse,
    summary="Comments on a post, newest first",
)
async def list_comments(
    post_id: str,
    response: Response,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    db: AsyncSession = Depends(get_db_session),
) -> CommentListResponse:
    try:
        post_uuid = parse_resource_id(post_id, "post")
    except NotFoundError:
        # An id that cannot exist has no comments, same as an unknown post
        post_uuid = None

    if post_uuid is None:
        result = CommentListResponse(comments=[], pagination=PaginationMeta.build(page, limit, 0))
    else:
        result = await comment_service.list_by_post(db, post_uuid, page=page, limit=limit)
    response.headers["X-Total-Count"] = str(result.pagination.total)
    return result


@router.post(
    "",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        401: {"description": "Missing or invalid token", "model": ErrorResponse},
        404: {"description": "Post not found", "model": ErrorResponse},
    },
    summary="Comment on a post",
)
async def create_comment(
    payload: CommentCreateRequest,
    identity: TokenIdentity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db_session),
) -> CommentResponse:
    return await comment_service.create_comment(db, identity, payload)


@router.put(
    "/{comment_id}",
    response_model=CommentResponse,
    responses=_OWNER_ERRORS,
    summary="Edit your comment",
)
async def update_comment(
    comment_id: str,
    payload: CommentUpdateRequest,
    identity: TokenIdentity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db_session),
) -> CommentResponse:
    return await comment_service.update_comment(
        db, identity, parse_resource_id(comment_id, "comment"), payload
    )


@router.delete(
    "/{comment_id}",
    response_model=MessageResponse,
    responses=_OWNER_ERRORS,
    summary="Delete your comment",
)
async def delete_comment(
    comment_id: str,
    identity: TokenIdentity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await comment_service.delete_comment(db, identity, parse_resource_id(comment_id, "comment"))
    return MessageResponse(message="Comment deleted successfully")
