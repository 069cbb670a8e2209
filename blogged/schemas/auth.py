"""
Blogged Backend — Auth Request/Response Schemas
================================================

What:  API contracts for registration, login, profile and password changes.
Why:   One explicit schema per operation; FastAPI rejects malformed bodies
       before they reach AuthService (mapped to 400 in main.py).

Security:
    No response model declares a password field, so the stored hash can never
    be serialized even if an ORM object is passed straight through.
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import AliasChoices, BaseModel, Field, field_validator


class TokenIdentity(BaseModel):
    """Identity carried inside a verified session token."""
    user_id: uuid.UUID
    email: str


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class RegisterRequest(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    email: str = Field(min_length=3, max_length=255)
    username: str = Field(min_length=1, max_length=50)
    password: str = Field(min_length=1, max_length=256)
    bio: Optional[str] = Field(default=None, max_length=2000)

    @field_validator("name", "email", "username")
    @classmethod
    def strip_required(cls, v: str) -> str:
        """Rejects whitespace-only values for required fields."""
        stripped = v.strip()
        if not stripped:
            raise ValueError("must not be blank")
        return stripped

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        if "@" not in v or v.startswith("@") or v.endswith("@"):
            raise ValueError("must be a valid email address")
        return v


class LoginRequest(BaseModel):
    """
    `identifier` may be an email or a username. Older clients send it as
    `email`, which is accepted as an alias.
    """
    identifier: str = Field(
        min_length=1,
        validation_alias=AliasChoices("identifier", "email"),
    )
    password: str = Field(min_length=1)


class UpdateProfileRequest(BaseModel):
    """Only the fields present in the body are updated."""
    name: Optional[str] = Field(default=None, min_length=1, max_length=120)
    username: Optional[str] = Field(default=None, min_length=1, max_length=50)
    bio: Optional[str] = Field(default=None, max_length=2000)
    avatar: Optional[str] = Field(default=None, max_length=500)


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(
        min_length=1, validation_alias=AliasChoices("current_password", "currentPassword")
    )
    new_password: str = Field(
        min_length=1, max_length=256, validation_alias=AliasChoices("new_password", "newPassword")
    )


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class UserCounts(BaseModel):
    posts: int = 0
    comments: int = 0
    likes: int = 0


class UserPublic(BaseModel):
    """Public projection of a user (the account owner's own view)."""
    id: uuid.UUID
    name: str
    email: str
    username: str
    bio: Optional[str] = None
    avatar: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class CurrentUserResponse(UserPublic):
    """GET /api/auth/me: own profile plus activity counts."""
    counts: UserCounts


class PublicProfileResponse(BaseModel):
    """GET /api/auth/user/{username}: another user's profile, no email."""
    id: uuid.UUID
    name: str
    username: str
    bio: Optional[str] = None
    avatar: Optional[str] = None
    created_at: datetime
    counts: UserCounts

    model_config = {"from_attributes": True}


class AuthResponse(BaseModel):
    user: UserPublic
    token: str
