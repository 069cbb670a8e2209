"""
Blogged Backend — Request ID Middleware
========================================

What:  Tags every request with a short correlation id.
How:   Reuses a sane client-supplied `X-Request-ID`, otherwise generates one;
       stores it in a ContextVar (for loggers and exception handlers) and in
       request.state (for routes), and echoes it in the response header.
Who:   Read by RequestLoggingMiddleware and every exception handler, so a
       user-reported error body can be matched to its log lines.
"""

import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# Coroutine-local: concurrent requests on one event loop each see their own id
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

MAX_CLIENT_ID_LENGTH = 64


def _new_request_id() -> str:
    return uuid.uuid4().hex[:8]


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Behavior:
        1. Accept X-Request-ID from the client when it is short and printable
        2. Otherwise generate an 8-character id
        3. Publish it through request_id_var and request.state.request_id
        4. Return it in the X-Request-ID response header
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = request.headers.get("X-Request-ID", "").strip()
        if not rid or len(rid) > MAX_CLIENT_ID_LENGTH or not rid.isprintable():
            rid = _new_request_id()

        request_id_var.set(rid)
        request.state.request_id = rid

        response = await call_next(request)
        response.headers["X-Request-ID"] = rid
        return response
