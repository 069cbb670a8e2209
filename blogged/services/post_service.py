"""
Blogged Backend — Post Service (Posts, Tags, Likes, Analytics)
===============================================================

What:  Everything a route can do to a post: list, read, write, like and
       report on it.
How:   Stateless methods over the request's AsyncSession. Every projection
       is loaded with one statement plus two correlated count subqueries:

           SELECT posts.*,
                  (SELECT count(*) FROM comments WHERE post_id = posts.id),
                  (SELECT count(*) FROM likes    WHERE post_id = posts.id)

       Author and tags come in through selectinload, so a page of N posts
       costs three round trips regardless of N.
Who:   Called by routes/posts.py.

Ownership:
    update_post / delete_post compare the post's author_id with the caller's
    token identity and raise ForbiddenError on mismatch, before any write.

View counting:
    get_post bumps view_count with a single UPDATE ... SET view_count =
    view_count + 1, so concurrent readers never lose increments. The UPDATE
    pins updated_at to its own value, since a view is not an edit.
"""

import logging
import random
import uuid
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from blogged.config import settings
from blogged.database import utcnow
from blogged.exceptions import BloggedError, DatabaseError, ForbiddenError, NotFoundError
from blogged.models import Comment, Like, Post, PostTag, Tag, User
from blogged.schemas.auth import TokenIdentity
from blogged.schemas.comment import CommentResponse
from blogged.schemas.common import AuthorSummary, PaginationMeta
from blogged.schemas.post import (
    AnalyticsResponse,
    LikeToggleResponse,
    MonthlyStat,
    PostCounts,
    PostCreateRequest,
    PostDetail,
    PostListResponse,
    PostSort,
    PostSummary,
    PostUpdateRequest,
    TagResponse,
    TagWithCount,
    TopPost,
)

logger = logging.getLogger(__name__)


def random_tag_color() -> str:
    """A random `#rrggbb` colour, always six hex digits."""
    return f"#{random.randint(0, 0xFFFFFF):06x}"


def normalize_tag_names(names: Iterable[str]) -> List[str]:
    """Strip, lower-case and de-duplicate tag names, keeping first-seen order."""
    seen: Dict[str, None] = {}
    for name in names:
        cleaned = name.strip().lower()
        if cleaned:
            seen.setdefault(cleaned, None)
    return list(seen)


def _comment_count():
    return (
        select(func.count(Comment.id))
        .where(Comment.post_id == Post.id)
        .correlate(Post)
        .scalar_subquery()
    )


def _like_count():
    return (
        select(func.count())
        .select_from(Like)
        .where(Like.post_id == Post.id)
        .correlate(Post)
        .scalar_subquery()
    )


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; they were written as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _month_key(value: datetime) -> str:
    value = _as_utc(value)
    return f"{value.year:04d}-{value.month:02d}"


def _recent_months(count: int, now: Optional[datetime] = None) -> Tuple[List[str], datetime]:
    """
    The last `count` calendar months ending with the current one, oldest
    first, plus the UTC instant the oldest month starts.
    """
    now = _as_utc(now or utcnow())
    year, month = now.year, now.month
    keys = []
    for _ in range(count):
        keys.append(f"{year:04d}-{month:02d}")
        month -= 1
        if month == 0:
            year, month = year - 1, 12
    keys.reverse()
    first_year, first_month = (int(part) for part in keys[0].split("-"))
    return keys, datetime(first_year, first_month, 1, tzinfo=timezone.utc)


class PostService:
    """
    Business logic for posts and everything hanging off them.

    Responsibilities:
        - list_posts() / list_by_author(): published listings
        - get_post(): single read that counts a view
        - create_post() / update_post() / delete_post(): author-only writes
        - toggle_like(): like/unlike
        - list_tags() / analytics(): aggregates
    """

    # ── Loading helpers ───────────────────────────────────────────────────

    def _summary_query(self, detail: bool = False):
        stmt = select(Post, _comment_count(), _like_count()).options(
            selectinload(Post.author),
            selectinload(Post.tag_links).selectinload(PostTag.tag),
        )
        if detail:
            stmt = stmt.options(selectinload(Post.comments).selectinload(Comment.author))
        return stmt

    def _to_summary(self, post: Post, comments: int, likes: int) -> PostSummary:
        tags = sorted((link.tag for link in post.tag_links), key=lambda tag: tag.name)
        return PostSummary(
            id=post.id,
            title=post.title,
            content=post.content,
            excerpt=post.excerpt,
            image=post.image,
            published=post.published,
            view_count=post.view_count,
            created_at=post.created_at,
            updated_at=post.updated_at,
            author=AuthorSummary.model_validate(post.author),
            tags=[TagResponse.model_validate(tag) for tag in tags],
            counts=PostCounts(comments=comments or 0, likes=likes or 0),
        )

    async def _load_summary(self, db: AsyncSession, post_id: uuid.UUID) -> PostSummary:
        result = await db.execute(
            self._summary_query()
            .where(Post.id == post_id)
            .execution_options(populate_existing=True)
        )
        row = result.first()
        if row is None:
            raise NotFoundError(resource="post", resource_id=str(post_id))
        return self._to_summary(*row)

    async def _get_owned_post(
        self, db: AsyncSession, post_id: uuid.UUID, identity: TokenIdentity
    ) -> Post:
        post = await db.get(Post, post_id)
        if post is None:
            raise NotFoundError(resource="post", resource_id=str(post_id))
        if post.author_id != identity.user_id:
            logger.info("User %s denied write on post %s", identity.user_id, post_id)
            raise ForbiddenError("You can only modify your own posts")
        return post

    async def _resolve_tags(self, db: AsyncSession, names: Iterable[str]) -> List[Tag]:
        """Find or create a Tag for every normalized name."""
        wanted = normalize_tag_names(names)
        if not wanted:
            return []

        result = await db.execute(select(Tag).where(Tag.name.in_(wanted)))
        existing = {tag.name: tag for tag in result.scalars()}

        tags = []
        for name in wanted:
            tag = existing.get(name)
            if tag is None:
                tag = Tag(name=name, color=random_tag_color())
                db.add(tag)
                logger.debug("Creating tag '%s' (%s)", name, tag.color)
            tags.append(tag)
        await db.flush()
        return tags

    async def _link_tags(self, db: AsyncSession, post: Post, names: Iterable[str]) -> None:
        for tag in await self._resolve_tags(db, names):
            db.add(PostTag(post_id=post.id, tag_id=tag.id))
        await db.flush()

    # ── Reads ─────────────────────────────────────────────────────────────

    async def list_posts(
        self,
        db: AsyncSession,
        page: int = 1,
        limit: int = 10,
        search: Optional[str] = None,
        tag: Optional[str] = None,
        sort: PostSort = "newest",
    ) -> PostListResponse:
        """
        Paginated listing of published posts.

        Filters:
            search: case-insensitive substring of title, content or excerpt
            tag:    posts linked to that tag name (matched lower-cased)

        Ordering always ends with created_at and id, so consecutive pages
        never overlap or skip a row even when the primary key ties.
        """
        filters = [Post.published.is_(True)]
        if search:
            filters.append(
                Post.title.icontains(search, autoescape=True)
                | Post.content.icontains(search, autoescape=True)
                | Post.excerpt.icontains(search, autoescape=True)
            )
        if tag and tag.strip():
            filters.append(
                Post.tag_links.any(PostTag.tag.has(Tag.name == tag.strip().lower()))
            )

        if sort == "oldest":
            ordering = [Post.created_at.asc(), Post.id.asc()]
        elif sort == "popular":
            ordering = [_like_count().desc(), Post.created_at.desc(), Post.id.desc()]
        else:
            ordering = [Post.created_at.desc(), Post.id.desc()]

        try:
            total = await db.scalar(select(func.count(Post.id)).where(*filters)) or 0
            result = await db.execute(
                self._summary_query()
                .where(*filters)
                .order_by(*ordering)
                .offset((page - 1) * limit)
                .limit(limit)
            )
            posts = [self._to_summary(*row) for row in result.all()]
        except SQLAlchemyError as e:
            logger.error("Database error listing posts: %s", str(e), exc_info=True)
            raise DatabaseError(message="Could not load posts. Please try again.")

        logger.debug(
            "Listed %d/%d posts (page=%d limit=%d sort=%s search=%r tag=%r)",
            len(posts), total, page, limit, sort, search, tag,
        )
        return PostListResponse(posts=posts, pagination=PaginationMeta.build(page, limit, total))

    async def get_post(
        self,
        db: AsyncSession,
        post_id: uuid.UUID,
        identity: Optional[TokenIdentity] = None,
    ) -> PostDetail:
        """
        Read one post and count the view.

        Every successful call adds exactly one view, including the author's
        own. Drafts are returned too; only listings hide them.

        Raises:
            NotFoundError: no post with that id (no view is recorded)
        """
        try:
            bumped = await db.execute(
                update(Post)
                .where(Post.id == post_id)
                .values(view_count=Post.view_count + 1, updated_at=Post.updated_at)
                .execution_options(synchronize_session=False)
            )
            if bumped.rowcount == 0:
                raise NotFoundError(resource="post", resource_id=str(post_id))

            result = await db.execute(
                self._summary_query(detail=True)
                .where(Post.id == post_id)
                .execution_options(populate_existing=True)
            )
            post, comments, likes = result.one()

            is_liked = False
            if identity is not None:
                liked = await db.scalar(
                    select(Like.post_id).where(
                        Like.post_id == post_id, Like.user_id == identity.user_id
                    )
                )
                is_liked = liked is not None
        except BloggedError:
            raise
        except SQLAlchemyError as e:
            logger.error("Database error fetching post %s: %s", post_id, str(e), exc_info=True)
            raise DatabaseError(
                message="Could not retrieve the post. Please try again.",
                context={"post_id": str(post_id)},
            )

        summary = self._to_summary(post, comments, likes)
        return PostDetail(
            **summary.model_dump(),
            comments=[CommentResponse.model_validate(comment) for comment in post.comments],
            is_liked=is_liked,
        )

    async def list_by_author(self, db: AsyncSession, username: str) -> List[PostSummary]:
        """An author's published posts, newest first. Unknown authors yield []."""
        try:
            result = await db.execute(
                self._summary_query()
                .join(User, Post.author_id == User.id)
                .where(User.username == username, Post.published.is_(True))
                .order_by(Post.created_at.desc(), Post.id.desc())
            )
            return [self._to_summary(*row) for row in result.all()]
        except SQLAlchemyError as e:
            logger.error("Database error listing posts by %s: %s", username, str(e), exc_info=True)
            raise DatabaseError(message="Could not load posts. Please try again.")

    async def list_tags(self, db: AsyncSession) -> List[TagWithCount]:
        """All tags with the number of posts using them, most used first."""
        post_count = func.count(PostTag.post_id).label("post_count")
        try:
            result = await db.execute(
                select(Tag, post_count)
                .outerjoin(PostTag, PostTag.tag_id == Tag.id)
                .group_by(Tag.id, Tag.name, Tag.color)
                .order_by(post_count.desc(), Tag.name.asc())
            )
            rows = result.all()
        except SQLAlchemyError as e:
            logger.error("Database error listing tags: %s", str(e), exc_info=True)
            raise DatabaseError(message="Could not load tags. Please try again.")

        return [
            TagWithCount(id=tag.id, name=tag.name, color=tag.color, post_count=count)
            for tag, count in rows
        ]

    # ── Writes ────────────────────────────────────────────────────────────

    async def create_post(
        self, db: AsyncSession, identity: TokenIdentity, payload: PostCreateRequest
    ) -> PostSummary:
        try:
            post = Post(
                author_id=identity.user_id,
                title=payload.title,
                content=payload.content,
                excerpt=payload.excerpt,
                image=payload.image,
                published=payload.published,
            )
            db.add(post)
            await db.flush()
            await self._link_tags(db, post, payload.tags)
            logger.info(
                "User %s created post %s (published=%s, %d tags)",
                identity.user_id, post.id, post.published, len(payload.tags),
            )
            return await self._load_summary(db, post.id)
        except BloggedError:
            raise
        except SQLAlchemyError as e:
            logger.error("Database error creating post: %s", str(e), exc_info=True)
            raise DatabaseError(message="Could not create the post. Please try again.")

    async def update_post(
        self,
        db: AsyncSession,
        identity: TokenIdentity,
        post_id: uuid.UUID,
        payload: PostUpdateRequest,
    ) -> PostSummary:
        """
        Edit an owned post.

        title and content are always replaced. excerpt and image are replaced
        only when present in the body, published only when not null. The tag
        set is rebuilt from `tags`.

        Raises:
            NotFoundError, ForbiddenError
        """
        try:
            post = await self._get_owned_post(db, post_id, identity)

            post.title = payload.title
            post.content = payload.content
            if "excerpt" in payload.model_fields_set:
                post.excerpt = payload.excerpt
            if "image" in payload.model_fields_set:
                post.image = payload.image
            if payload.published is not None:
                post.published = payload.published

            await db.execute(
                delete(PostTag)
                .where(PostTag.post_id == post.id)
                .execution_options(synchronize_session=False)
            )
            await db.flush()
            await self._link_tags(db, post, payload.tags)
            logger.info("User %s updated post %s", identity.user_id, post.id)
            return await self._load_summary(db, post.id)
        except BloggedError:
            raise
        except SQLAlchemyError as e:
            logger.error("Database error updating post %s: %s", post_id, str(e), exc_info=True)
            raise DatabaseError(message="Could not update the post. Please try again.")

    async def delete_post(
        self, db: AsyncSession, identity: TokenIdentity, post_id: uuid.UUID
    ) -> None:
        """Delete an owned post; its tag links, comments and likes go with it."""
        try:
            post = await self._get_owned_post(db, post_id, identity)
            await db.delete(post)
            await db.flush()
            logger.info("User %s deleted post %s", identity.user_id, post_id)
        except BloggedError:
            raise
        except SQLAlchemyError as e:
            logger.error("Database error deleting post %s: %s", post_id, str(e), exc_info=True)
            raise DatabaseError(message="Could not delete the post. Please try again.")

    async def toggle_like(
        self, db: AsyncSession, identity: TokenIdentity, post_id: uuid.UUID
    ) -> LikeToggleResponse:
        """
        Like the post if the caller has not, unlike it if they have.

        Raises:
            NotFoundError: the post does not exist
        """
        try:
            exists = await db.scalar(select(Post.id).where(Post.id == post_id))
            if exists is None:
                raise NotFoundError(resource="post", resource_id=str(post_id))

            like = await db.get(Like, (post_id, identity.user_id))
            if like is not None:
                await db.delete(like)
                liked = False
            else:
                db.add(Like(post_id=post_id, user_id=identity.user_id))
                liked = True
            await db.flush()

            likes = await db.scalar(
                select(func.count()).select_from(Like).where(Like.post_id == post_id)
            )
        except BloggedError:
            raise
        except SQLAlchemyError as e:
            logger.error("Database error toggling like on %s: %s", post_id, str(e), exc_info=True)
            raise DatabaseError(message="Could not update the like. Please try again.")

        logger.info("User %s %s post %s", identity.user_id, "liked" if liked else "unliked", post_id)
        return LikeToggleResponse(liked=liked, likes=likes or 0)

    # ── Analytics ─────────────────────────────────────────────────────────

    async def analytics(
        self,
        db: AsyncSession,
        identity: TokenIdentity,
        now: Optional[datetime] = None,
    ) -> AnalyticsResponse:
        """
        Aggregates over every post the caller wrote, drafts included.

        monthly_stats covers the last ANALYTICS_MONTHS calendar months (UTC),
        oldest first. A month's views are the current view counts of posts
        created in it; likes and comments are bucketed by when they arrived.
        """
        months, window_start = _recent_months(settings.analytics_months, now)
        try:
            result = await db.execute(
                select(
                    Post.id,
                    Post.title,
                    Post.view_count,
                    Post.created_at,
                    _comment_count().label("comment_count"),
                    _like_count().label("like_count"),
                )
                .where(Post.author_id == identity.user_id)
                .order_by(Post.created_at.desc(), Post.id.desc())
            )
            posts = result.all()

            like_times = await db.scalars(
                select(Like.created_at)
                .join(Post, Like.post_id == Post.id)
                .where(Post.author_id == identity.user_id, Like.created_at >= window_start)
            )
            comment_times = await db.scalars(
                select(Comment.created_at)
                .join(Post, Comment.post_id == Post.id)
                .where(Post.author_id == identity.user_id, Comment.created_at >= window_start)
            )
            like_times, comment_times = list(like_times), list(comment_times)
        except SQLAlchemyError as e:
            logger.error("Database error computing analytics: %s", str(e), exc_info=True)
            raise DatabaseError(message="Could not compute analytics. Please try again.")

        total_views = sum(row.view_count for row in posts)
        total_comments = sum(row.comment_count or 0 for row in posts)
        total_likes = sum(row.like_count or 0 for row in posts)

        # Newest-first input: the first maximum is the newest one
        top = None
        best = -1
        for row in posts:
            engagement = (row.comment_count or 0) + (row.like_count or 0)
            if engagement > best:
                top, best = row, engagement

        buckets = {key: {"posts": 0, "views": 0, "likes": 0, "comments": 0} for key in months}
        for row in posts:
            bucket = buckets.get(_month_key(row.created_at))
            if bucket is not None:
                bucket["posts"] += 1
                bucket["views"] += row.view_count
        for created_at in like_times:
            bucket = buckets.get(_month_key(created_at))
            if bucket is not None:
                bucket["likes"] += 1
        for created_at in comment_times:
            bucket = buckets.get(_month_key(created_at))
            if bucket is not None:
                bucket["comments"] += 1

        return AnalyticsResponse(
            total_posts=len(posts),
            total_views=total_views,
            total_likes=total_likes,
            total_comments=total_comments,
            average_engagement=(
                round((total_likes + total_comments) / len(posts), 2) if posts else 0.0
            ),
            top_post=(
                TopPost(
                    id=top.id,
                    title=top.title,
                    views=top.view_count,
                    likes=top.like_count or 0,
                    comments=top.comment_count or 0,
                )
                if top is not None
                else None
            ),
            monthly_stats=[MonthlyStat(month=key, **buckets[key]) for key in months],
        )


post_service = PostService()
