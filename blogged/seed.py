"""
Blogged Backend — Demo Data Seeder
===================================

What:  Creates a demo author with a few posts, tags, a comment and a like.
How:   Goes through the services (not raw inserts), so the seeded rows obey
       the same rules as API writes. Re-running is a no-op once the demo
       user exists.

Usage:
    python -m blogged.seed
"""

import asyncio
import logging

from sqlalchemy import select

from blogged.config import settings
from blogged.database import async_session_factory, create_all_tables, dispose_engine
from blogged.models import User
from blogged.schemas.auth import RegisterRequest, TokenIdentity
from blogged.schemas.comment import CommentCreateRequest
from blogged.schemas.post import PostCreateRequest
from blogged.services.auth_service import auth_service
from blogged.services.comment_service import comment_service
from blogged.services.post_service import post_service

logger = logging.getLogger("blogged.seed")

DEMO_PASSWORD = "password123"

DEMO_POSTS = [
    {
        "title": "Getting Started with FastAPI",
        "excerpt": "A quick tour of routing, dependencies and validation.",
        "content": "FastAPI builds request validation on top of pydantic models...",
        "tags": ["python", "fastapi", "web"],
        "published": True,
    },
    {
        "title": "Async SQLAlchemy in Practice",
        "excerpt": "Sessions, eager loading and why lazy loads bite.",
        "content": "With an AsyncSession every relationship you touch must be loaded up front...",
        "tags": ["python", "databases"],
        "published": True,
    },
    {
        "title": "Notes for a future post",
        "content": "Draft: things to say about pagination.",
        "tags": ["drafts"],
        "published": False,
    },
]


async def seed() -> None:
    if settings.db_create_all:
        await create_all_tables()

    async with async_session_factory() as db:
        existing = await db.scalar(select(User.id).where(User.username == "demo"))
        if existing is not None:
            logger.info("Demo data already present, nothing to do")
            return

        author = await auth_service.register(
            db,
            RegisterRequest(
                name="Demo Author",
                email="demo@example.com",
                username="demo",
                password=DEMO_PASSWORD,
                bio="Writes about Python and the web.",
            ),
        )
        reader = await auth_service.register(
            db,
            RegisterRequest(
                name="Demo Reader",
                email="reader@example.com",
                username="reader",
                password=DEMO_PASSWORD,
            ),
        )
        author_identity = TokenIdentity(user_id=author.user.id, email=author.user.email)
        reader_identity = TokenIdentity(user_id=reader.user.id, email=reader.user.email)

        created = [
            await post_service.create_post(db, author_identity, PostCreateRequest(**data))
            for data in DEMO_POSTS
        ]
        first = created[0]
        await comment_service.create_comment(
            db,
            reader_identity,
            CommentCreateRequest(post_id=first.id, content="Great introduction, thanks!"),
        )
        await post_service.toggle_like(db, reader_identity, first.id)

        await db.commit()
        logger.info(
            "Seeded users 'demo' and 'reader' (password %r) and %d posts",
            DEMO_PASSWORD, len(created),
        )


def main() -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    async def _run() -> None:
        try:
            await seed()
        finally:
            await dispose_engine()

    asyncio.run(_run())


if __name__ == "__main__":
    main()
