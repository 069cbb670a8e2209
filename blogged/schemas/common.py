"""
Blogged Backend — Shared Pydantic Schemas
==========================================

What:  Response pieces reused by several resources: error body, pagination
       block, author summary, plain message and health report.
"""

import math
import uuid
from typing import Optional

from pydantic import BaseModel, Field

from blogged.exceptions import NotFoundError


class ErrorResponse(BaseModel):
    """
    Standardized error body for every API error.

    Example:
        {
            "error": "Post not found",
            "code": "not_found",
            "request_id": "1a2b3c4d"
        }
    """
    error: str = Field(description="Human-readable error description")
    code: str = Field(description="Machine-readable error code")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class MessageResponse(BaseModel):
    message: str


class PaginationMeta(BaseModel):
    """
    1-indexed offset pagination block.

    `pages` is ceil(total / limit); an empty result reports zero pages.
    """
    page: int = Field(description="Current page (1-indexed)")
    limit: int = Field(description="Page size")
    total: int = Field(description="Total number of matching items")
    pages: int = Field(description="Total number of pages")

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "PaginationMeta":
        return cls(page=page, limit=limit, total=total, pages=math.ceil(total / limit))


def parse_resource_id(raw: str, resource: str) -> uuid.UUID:
    """
    Path ids arrive as plain strings. Anything that is not a UUID cannot name
    an existing row, so it is reported as missing rather than malformed.
    """
    try:
        return uuid.UUID(raw)
    except ValueError:
        raise NotFoundError(resource=resource, resource_id=raw)


class AuthorSummary(BaseModel):
    """Public author fields embedded in posts and comments."""
    id: uuid.UUID
    name: str
    username: str
    avatar: Optional[str] = None

    model_config = {"from_attributes": True}


class HealthResponse(BaseModel):
    """Returned by GET /health for monitoring and load balancer checks."""
    status: str = Field(description="Overall service status: healthy, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    uptime_seconds: float = Field(description="Seconds since service started")
