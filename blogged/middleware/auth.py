"""
Blogged Backend — Bearer Token Identity Middleware
===================================================

What:  Verifies `Authorization: Bearer <token>` and attaches the caller's
       identity to the request.
How:   The middleware never rejects a request. It stores either
       `request.state.identity` (a TokenIdentity) or the verification failure
       in `request.state.auth_error`. Routes choose their policy through the
       two dependencies below:

           get_current_identity   → AuthError (401) if no valid identity
           get_optional_identity  → None for anonymous or bad tokens

Why not reject in middleware:
    Some endpoints (GET /api/posts/{id}) treat an expired token as anonymous,
    so the decision belongs to the route, not to the transport layer.
"""

import logging
from typing import Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from blogged.exceptions import AuthError
from blogged.schemas.auth import TokenIdentity
from blogged.security import decode_access_token

logger = logging.getLogger(__name__)


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Returns the token part of a `Bearer <token>` header, or None."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


class TokenAuthMiddleware(BaseHTTPMiddleware):
    """Resolves the bearer token once per request."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request.state.identity = None
        request.state.auth_error = None

        token = extract_bearer_token(request.headers.get("Authorization"))
        if token:
            try:
                request.state.identity = decode_access_token(token)
            except AuthError as e:
                request.state.auth_error = e.message
                logger.debug("Rejected bearer token on %s: %s", request.url.path, e.message)

        return await call_next(request)


def get_optional_identity(request: Request) -> Optional[TokenIdentity]:
    """Dependency: the verified identity, or None for anonymous callers."""
    return getattr(request.state, "identity", None)


def get_current_identity(request: Request) -> TokenIdentity:
    """Dependency: the verified identity; raises AuthError when there is none."""
    identity = getattr(request.state, "identity", None)
    if identity is None:
        raise AuthError(getattr(request.state, "auth_error", None) or "Access token required")
    return identity
