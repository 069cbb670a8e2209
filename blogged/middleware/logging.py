"""
Blogged Backend — Request Logging Middleware
=============================================

What:  One access-log line per HTTP request.
How:   Times the request, then logs method, path, status, duration, request
       id, client address and (when authenticated) the caller's user id on
       the `blogged.access` logger.

Log level by status:
    5xx → ERROR, 4xx → WARNING, everything else → INFO

What we DON'T log:
    Request bodies (passwords, drafts) and the Authorization header.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from blogged.middleware.request_id import request_id_var

logger = logging.getLogger("blogged.access")

QUIET_PATHS = {"/health"}


class RequestLoggingMiddleware(BaseHTTPMiddleware):

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path in QUIET_PATHS:
            return await call_next(request)

        start_time = time.perf_counter()
        client_ip = request.client.host if request.client else "unknown"
        rid = request_id_var.get("")

        response = await call_next(request)

        duration_ms = (time.perf_counter() - start_time) * 1000
        status = response.status_code
        if status >= 500:
            log_level = logging.ERROR
        elif status >= 400:
            log_level = logging.WARNING
        else:
            log_level = logging.INFO

        # Set by TokenAuthMiddleware further down the chain
        identity = getattr(request.state, "identity", None)
        user_id = str(identity.user_id) if identity else "-"

        logger.log(
            log_level,
            "%s %s %d %.1fms [%s] user=%s from %s",
            request.method,
            path,
            status,
            duration_ms,
            rid,
            user_id,
            client_ip,
            extra={
                "request_id": rid,
                "method": request.method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "user_id": user_id,
                "client_ip": client_ip,
            },
        )
        return response
