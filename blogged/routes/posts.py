"""
Blogged Backend — Post Route Handlers
======================================

What:  /api/posts endpoints: listing, single read, author feed, tags,
       analytics, CRUD and like toggling.
How:   Thin handlers over PostService.

Route order:
    The fixed paths (/analytics, /tags/all, /user/{username}) are declared
    before /{post_id}, otherwise the path parameter would capture them.

Caching:
    GET /api/posts/{id} changes state (view count), so it is sent with
    Cache-Control: no-store.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from blogged.database import get_db_session
from blogged.middleware.auth import get_current_identity, get_optional_identity
from blogged.schemas.auth import TokenIdentity
from blogged.schemas.common import ErrorResponse, MessageResponse, parse_resource_id
from blogged.schemas.post import (
    AnalyticsResponse,
    LikeToggleResponse,
    PostCreateRequest,
    PostDetail,
    PostListResponse,
    PostSort,
    PostSummary,
    PostUpdateRequest,
    TagWithCount,
)
from blogged.services.post_service import post_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/posts", tags=["Posts"])

_OWNER_ERRORS = {
    401: {"description": "Missing or invalid token", "model": ErrorResponse},
    403: {"description": "Caller is not the author", "model": ErrorResponse},
    404: {"description": "Post not found", "model": ErrorResponse},
}


@router.get(
    "",
    response_model=PostListResponse,
    summary="List published posts",
    description=(
        "Paginated published posts. `search` matches title, content or excerpt "
        "case-insensitively; `tag` restricts to one tag; `sort` is newest, "
        "oldest or popular (most liked)."
    ),
)
async def list_posts(
    response: Response,
    page: int = Query(default=1, ge=1, description="Page number (1-indexed)"),
    limit: int = Query(default=10, ge=1, le=100, description="Posts per page"),
    search: Optional[str] = Query(default=None, max_length=200),
    tag: Optional[str] = Query(default=None, max_length=50),
    sort: PostSort = Query(default="newest"),
    db: AsyncSession = Depends(get_db_session),
) -> PostListResponse:
    result = await post_service.list_posts(
        db, page=page, limit=limit, search=search, tag=tag, sort=sort
    )
    response.headers["X-Total-Count"] = str(result.pagination.total)
    return result


@router.get(
    "/user/{username}",
    response_model=List[PostSummary],
    summary="An author's published posts",
)
async def list_posts_by_author(
    username: str,
    response: Response,
    db: AsyncSession = Depends(get_db_session),
) -> List[PostSummary]:
    posts = await post_service.list_by_author(db, username)
    response.headers["X-Total-Count"] = str(len(posts))
    return posts


@router.get(
    "/analytics",
    response_model=AnalyticsResponse,
    responses={401: {"description": "Missing or invalid token", "model": ErrorResponse}},
    summary="Statistics over the caller's own posts",
)
async def analytics(
    identity: TokenIdentity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db_session),
) -> AnalyticsResponse:
    return await post_service.analytics(db, identity)


@router.get(
    "/tags/all",
    response_model=List[TagWithCount],
    summary="All tags with post counts",
)
async def list_tags(db: AsyncSession = Depends(get_db_session)) -> List[TagWithCount]:
    return await post_service.list_tags(db)


@router.get(
    "/{post_id}",
    response_model=PostDetail,
    responses={404: {"description": "Post not found", "model": ErrorResponse}},
    summary="Read a post",
    description="Returns the post with its comments and counts one view.",
)
async def get_post(
    post_id: str,
    response: Response,
    identity: Optional[TokenIdentity] = Depends(get_optional_identity),
    db: AsyncSession = Depends(get_db_session),
) -> PostDetail:
    result = await post_service.get_post(db, parse_resource_id(post_id, "post"), identity)
    response.headers["Cache-Control"] = "no-store"
    return result


@router.post(
    "",
    response_model=PostSummary,
    status_code=status.HTTP_201_CREATED,
    responses={401: {"description": "Missing or invalid token", "model": ErrorResponse}},
    summary="Create a post",
)
async def create_post(
    payload: PostCreateRequest,
    identity: TokenIdentity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db_session),
) -> PostSummary:
    return await post_service.create_post(db, identity, payload)


@router.put(
    "/{post_id}",
    response_model=PostSummary,
    responses=_OWNER_ERRORS,
    summary="Update a post",
    description="Author only. The tag list replaces the existing tags.",
)
async def update_post(
    post_id: str,
    payload: PostUpdateRequest,
    identity: TokenIdentity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db_session),
) -> PostSummary:
    return await post_service.update_post(db, identity, parse_resource_id(post_id, "post"), payload)


@router.delete(
    "/{post_id}",
    response_model=MessageResponse,
    responses=_OWNER_ERRORS,
    summary="Delete a post",
)
async def delete_post(
    post_id: str,
    identity: TokenIdentity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await post_service.delete_post(db, identity, parse_resource_id(post_id, "post"))
    return MessageResponse(message="Post deleted successfully")


@router.post(
    "/{post_id}/like",
    response_model=LikeToggleResponse,
    responses={
        401: {"description": "Missing or invalid token", "model": ErrorResponse},
        404: {"description": "Post not found", "model": ErrorResponse},
    },
    summary="Like or unlike a post",
)
async def toggle_like(
    post_id: str,
    identity: TokenIdentity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db_session),
) -> LikeToggleResponse:
    return await post_service.toggle_like(db, identity, parse_resource_id(post_id, "post"))
