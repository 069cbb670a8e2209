"""
Blogged Backend — Auth Route Handlers
======================================

What:  /api/auth endpoints: register, login, current user, profile update,
       password change and public profiles.
How:   Thin handlers; AuthService does the work and raises domain errors
       that main.py turns into JSON error bodies.
"""

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from blogged.database import get_db_session
from blogged.middleware.auth import get_current_identity
from blogged.schemas.auth import (
    AuthResponse,
    ChangePasswordRequest,
    CurrentUserResponse,
    LoginRequest,
    PublicProfileResponse,
    RegisterRequest,
    TokenIdentity,
    UpdateProfileRequest,
    UserPublic,
)
from blogged.schemas.common import ErrorResponse, MessageResponse
from blogged.services.auth_service import auth_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth"])

_UNAUTHORIZED = {401: {"description": "Missing or invalid token", "model": ErrorResponse}}


@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"description": "Invalid input or duplicate account", "model": ErrorResponse}},
    summary="Create an account",
    description="Registers a user and returns the public profile with a session token.",
)
async def register(
    payload: RegisterRequest,
    db: AsyncSession = Depends(get_db_session),
) -> AuthResponse:
    return await auth_service.register(db, payload)


@router.post(
    "/login",
    response_model=AuthResponse,
    responses=_UNAUTHORIZED,
    summary="Log in with email or username",
)
async def login(
    payload: LoginRequest,
    db: AsyncSession = Depends(get_db_session),
) -> AuthResponse:
    return await auth_service.login(db, payload)


@router.get(
    "/me",
    response_model=CurrentUserResponse,
    responses=_UNAUTHORIZED,
    summary="Current user with activity counts",
)
async def me(
    identity: TokenIdentity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db_session),
) -> CurrentUserResponse:
    return await auth_service.current_user(db, identity)


@router.put(
    "/profile",
    response_model=UserPublic,
    responses=_UNAUTHORIZED,
    summary="Update name, username, bio or avatar",
    description="Only the fields present in the body are changed.",
)
async def update_profile(
    payload: UpdateProfileRequest,
    identity: TokenIdentity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db_session),
) -> UserPublic:
    return await auth_service.update_profile(db, identity, payload)


@router.put(
    "/password",
    response_model=MessageResponse,
    responses=_UNAUTHORIZED,
    summary="Change password",
)
async def change_password(
    payload: ChangePasswordRequest,
    identity: TokenIdentity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    return await auth_service.change_password(db, identity, payload)


@router.get(
    "/user/{username}",
    response_model=PublicProfileResponse,
    responses={404: {"description": "Unknown username", "model": ErrorResponse}},
    summary="Public profile",
)
async def public_profile(
    username: str,
    db: AsyncSession = Depends(get_db_session),
) -> PublicProfileResponse:
    return await auth_service.public_profile(db, username)
