"""
Blogged Backend — Auth Service
===============================

What:  Registration, login, profile reads/updates and password changes.
How:   Stateless methods that receive the request's AsyncSession; password
       hashing runs in the thread pool so PBKDF2 never stalls the event loop.
Who:   Called by routes/auth.py.

Error Handling Strategy:
    Domain failures raise ValidationError / ConflictError / AuthError /
    NotFoundError. Unexpected SQLAlchemy failures are logged and wrapped in
    DatabaseError so no SQL text reaches the client.
"""

import logging
from typing import Optional, Tuple

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from blogged.exceptions import (
    AuthError,
    BloggedError,
    ConflictError,
    DatabaseError,
    NotFoundError,
)
from blogged.models import Comment, Like, Post, User
from blogged.schemas.auth import (
    AuthResponse,
    ChangePasswordRequest,
    CurrentUserResponse,
    LoginRequest,
    PublicProfileResponse,
    RegisterRequest,
    TokenIdentity,
    UpdateProfileRequest,
    UserCounts,
    UserPublic,
)
from blogged.schemas.common import MessageResponse
from blogged.security import create_access_token, hash_password, verify_password

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid credentials"


class AuthService:
    """
    Business logic for accounts and sessions.

    Responsibilities:
        - register() / login(): credential handling and token issuance
        - current_user() / public_profile(): projections with activity counts
        - update_profile() / change_password(): account mutation
    """

    async def register(self, db: AsyncSession, payload: RegisterRequest) -> AuthResponse:
        """
        Create an account and sign the new user in.

        Raises:
            ConflictError: email or username already taken (no row is written)
        """
        try:
            existing = await db.execute(
                select(User.id).where(
                    or_(User.email == payload.email, User.username == payload.username)
                )
            )
            if existing.first() is not None:
                raise ConflictError(
                    "User with this email or username already exists",
                    context={"email": payload.email, "username": payload.username},
                )

            password_hash = await run_in_threadpool(hash_password, payload.password)
            user = User(
                name=payload.name,
                email=payload.email,
                username=payload.username,
                bio=payload.bio,
                password_hash=password_hash,
            )
            db.add(user)
            await db.flush()
            logger.info("Registered user %s (%s)", user.id, user.username)

            return AuthResponse(
                user=UserPublic.model_validate(user),
                token=create_access_token(user.id, user.email),
            )

        except IntegrityError as e:
            # Lost a race against a concurrent registration
            raise ConflictError("User with this email or username already exists") from e
        except BloggedError:
            raise
        except SQLAlchemyError as e:
            logger.error("Database error registering user: %s", str(e), exc_info=True)
            raise DatabaseError(message="Failed to register user", context={"error_type": type(e).__name__})

    async def login(self, db: AsyncSession, payload: LoginRequest) -> AuthResponse:
        """
        Authenticate by email or username.

        Unknown accounts and wrong passwords raise the same AuthError.
        """
        try:
            result = await db.execute(
                select(User).where(
                    or_(User.email == payload.identifier, User.username == payload.identifier)
                )
            )
            user = result.scalars().first()
        except SQLAlchemyError as e:
            logger.error("Database error during login: %s", str(e), exc_info=True)
            raise DatabaseError(message="Failed to log in", context={"error_type": type(e).__name__})

        if user is None:
            raise AuthError(INVALID_CREDENTIALS)
        if not await run_in_threadpool(verify_password, payload.password, user.password_hash):
            logger.info("Failed login for user %s", user.id)
            raise AuthError(INVALID_CREDENTIALS)

        return AuthResponse(
            user=UserPublic.model_validate(user),
            token=create_access_token(user.id, user.email),
        )

    async def current_user(self, db: AsyncSession, identity: TokenIdentity) -> CurrentUserResponse:
        """
        Raises:
            NotFoundError: the token is valid but the account no longer exists
        """
        user, counts = await self._user_with_counts(db, User.id == identity.user_id)
        if user is None:
            raise NotFoundError(resource="user", resource_id=str(identity.user_id))
        return CurrentUserResponse(**UserPublic.model_validate(user).model_dump(), counts=counts)

    async def public_profile(self, db: AsyncSession, username: str) -> PublicProfileResponse:
        user, counts = await self._user_with_counts(db, User.username == username)
        if user is None:
            raise NotFoundError(resource="user", resource_id=username)
        return PublicProfileResponse(
            id=user.id,
            name=user.name,
            username=user.username,
            bio=user.bio,
            avatar=user.avatar,
            created_at=user.created_at,
            counts=counts,
        )

    async def update_profile(
        self, db: AsyncSession, identity: TokenIdentity, payload: UpdateProfileRequest
    ) -> UserPublic:
        """
        Update only the fields present in the request body.

        Raises:
            ConflictError: the requested username belongs to someone else
        """
        changes = payload.model_dump(exclude_unset=True)
        try:
            user = await db.get(User, identity.user_id)
            if user is None:
                raise NotFoundError(resource="user", resource_id=str(identity.user_id))

            username = changes.get("username")
            if username:
                taken = await db.execute(
                    select(User.id).where(User.username == username, User.id != user.id)
                )
                if taken.first() is not None:
                    raise ConflictError("Username already taken", field="username")

            for field, value in changes.items():
                # name and username are NOT NULL; an explicit null means "leave as is"
                if value is None and field in ("name", "username"):
                    continue
                setattr(user, field, value)
            await db.flush()
            logger.info("Updated profile for user %s: %s", user.id, sorted(changes))
            return UserPublic.model_validate(user)

        except IntegrityError as e:
            raise ConflictError("Username already taken", field="username") from e
        except BloggedError:
            raise
        except SQLAlchemyError as e:
            logger.error("Database error updating profile: %s", str(e), exc_info=True)
            raise DatabaseError(message="Failed to update profile", context={"error_type": type(e).__name__})

    async def change_password(
        self, db: AsyncSession, identity: TokenIdentity, payload: ChangePasswordRequest
    ) -> MessageResponse:
        """
        Raises:
            AuthError: current_password does not match the stored hash
        """
        try:
            user = await db.get(User, identity.user_id)
        except SQLAlchemyError as e:
            logger.error("Database error loading user for password change: %s", str(e), exc_info=True)
            raise DatabaseError(message="Failed to change password", context={"error_type": type(e).__name__})
        if user is None:
            raise NotFoundError(resource="user", resource_id=str(identity.user_id))

        if not await run_in_threadpool(verify_password, payload.current_password, user.password_hash):
            raise AuthError("Current password is incorrect")

        user.password_hash = await run_in_threadpool(hash_password, payload.new_password)
        try:
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error saving new password: %s", str(e), exc_info=True)
            raise DatabaseError(message="Failed to change password", context={"error_type": type(e).__name__})
        logger.info("Password changed for user %s", user.id)
        return MessageResponse(message="Password updated successfully")

    async def _user_with_counts(
        self, db: AsyncSession, criterion
    ) -> Tuple[Optional[User], UserCounts]:
        """Loads one user plus post/comment/like counts in a single query."""
        post_count = (
            select(func.count(Post.id)).where(Post.author_id == User.id).correlate(User).scalar_subquery()
        )
        comment_count = (
            select(func.count(Comment.id)).where(Comment.author_id == User.id).correlate(User).scalar_subquery()
        )
        like_count = (
            select(func.count()).select_from(Like).where(Like.user_id == User.id).correlate(User).scalar_subquery()
        )
        try:
            result = await db.execute(
                select(User, post_count, comment_count, like_count).where(criterion)
            )
            row = result.first()
        except SQLAlchemyError as e:
            logger.error("Database error loading user: %s", str(e), exc_info=True)
            raise DatabaseError(message="Failed to get user", context={"error_type": type(e).__name__})

        if row is None:
            return None, UserCounts()
        user, posts, comments, likes = row
        return user, UserCounts(posts=posts or 0, comments=comments or 0, likes=likes or 0)


auth_service = AuthService()
