"""
Blogged Backend — FastAPI Application Factory
==============================================

What:  Creates and configures the FastAPI application instance.
How:   Factory pattern: create_app() returns a configured FastAPI instance.
Who:   uvicorn (`uvicorn blogged.main:app`) and the test suite.

Application Architecture:
    Middleware Chain:
        RateLimit → RequestID → Logging → TokenAuth → GZip → CORS
    Routes:
        /api/auth  /api/posts  /api/comments  /api/upload
        /health  /  /uploads (static)
    Exception Handlers:
        Validation/Conflict→400  Auth→401  Forbidden→403
        NotFound→404  Internal→500

Lifecycle:
    Startup:
    1. Initialize logging
    2. Validate configuration (warn on the default secret key)
    3. Create tables when DB_CREATE_ALL is set
    Shutdown:
    1. Dispose the database engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from blogged import __version__
from blogged.config import settings
from blogged.database import create_all_tables, dispose_engine
from blogged.exceptions import (
    AuthError,
    BloggedError,
    ConflictError,
    ForbiddenError,
    InternalError,
    NotFoundError,
    ValidationError,
)
from blogged.middleware.auth import TokenAuthMiddleware
from blogged.middleware.logging import RequestLoggingMiddleware
from blogged.middleware.rate_limit import RateLimitMiddleware
from blogged.middleware.request_id import RequestIDMiddleware, request_id_var
from blogged.routes import auth, comments, health, posts, upload

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure the root logger once for the whole process.

    Format: 2026-10-17T09:30:00 [INFO] blogged.services.post_service: ...
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # The access middleware already logs every request
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("multipart").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    setup_logging()
    logger.info("=" * 60)
    logger.info("Blogged API %s starting up...", __version__)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        # Development keeps working with the default key; production must not
        logger.warning("%s", str(e))

    if settings.db_create_all:
        await create_all_tables()
        logger.info("Database tables ensured (DB_CREATE_ALL)")

    logger.info("Uploads served from %s at %s", Path(settings.storage_root).resolve(), settings.uploads_url_path)
    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    logger.info("Blogged API shutting down...")
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

_HTTP_ERROR_CODES = {
    400: "validation_error",
    401: "unauthorized",
    403: "forbidden",
    404: "not_found",
    405: "method_not_allowed",
}


def _error_response(
    status_code: int,
    message: str,
    code: str,
    details: Optional[dict] = None,
    headers: Optional[dict] = None,
) -> JSONResponse:
    content = {"error": message, "code": code, "request_id": request_id_var.get("")}
    if details:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content, headers=headers)


def _describe_validation_errors(exc: RequestValidationError) -> dict:
    fields = []
    for err in exc.errors():
        location = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        fields.append({"field": ".".join(location) or None, "message": err.get("msg", "")})
    return {"fields": fields}


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map the exception hierarchy onto HTTP responses.

        ValidationError / request validation → 400 validation_error
        ConflictError                        → 400 conflict
        AuthError                            → 401 unauthorized
        ForbiddenError                       → 403 forbidden
        NotFoundError                        → 404 not_found
        framework HTTPException (404, 405)   → its status, code from the status
        InternalError (and subclasses)       → 500 server_error
        anything else                        → 500 internal_server_error

    Server-side failures log their context and return a generic message.
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.info("[%s] Validation error: %s", request_id_var.get(""), exc.message)
        return _error_response(400, exc.message, "validation_error", details=exc.context)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(request: Request, exc: RequestValidationError):
        details = _describe_validation_errors(exc)
        first = details["fields"][0] if details["fields"] else None
        if first and first["field"]:
            message = f"{first['field']}: {first['message']}"
        else:
            message = "Invalid request"
        logger.info("[%s] Request validation failed: %s", request_id_var.get(""), message)
        return _error_response(400, message, "validation_error", details=details)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        code = _HTTP_ERROR_CODES.get(exc.status_code, "http_error")
        message = exc.detail if isinstance(exc.detail, str) else "Request failed"
        return _error_response(exc.status_code, message, code, headers=getattr(exc, "headers", None))

    @app.exception_handler(ConflictError)
    async def handle_conflict(request: Request, exc: ConflictError):
        logger.info("[%s] Conflict: %s", request_id_var.get(""), exc.message)
        return _error_response(400, exc.message, "conflict")

    @app.exception_handler(AuthError)
    async def handle_auth_error(request: Request, exc: AuthError):
        return _error_response(
            401, exc.message, "unauthorized", headers={"WWW-Authenticate": "Bearer"}
        )

    @app.exception_handler(ForbiddenError)
    async def handle_forbidden(request: Request, exc: ForbiddenError):
        return _error_response(403, exc.message, "forbidden")

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return _error_response(404, exc.message, "not_found")

    @app.exception_handler(InternalError)
    async def handle_internal_error(request: Request, exc: InternalError):
        logger.error(
            "[%s] %s: %s | Context: %s",
            request_id_var.get(""), type(exc).__name__, exc.message, exc.context,
        )
        return _error_response(500, exc.message, "server_error")

    @app.exception_handler(BloggedError)
    async def handle_blogged_error(request: Request, exc: BloggedError):
        logger.error("[%s] Unhandled application error: %s", request_id_var.get(""), exc.message)
        return _error_response(500, "An internal error occurred. Please try again later.", "server_error")

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error("[%s] Unexpected error: %s", request_id_var.get(""), str(exc), exc_info=True)
        return _error_response(
            500,
            "An unexpected error occurred. Please try again or contact support.",
            "internal_server_error",
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    """Assemble middleware, exception handlers, routers and the uploads mount."""
    app = FastAPI(
        title="Blogged API",
        description="Multi-user blogging API: accounts, posts, tags, comments, likes and analytics.",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Register Middleware ───────────────────────────────────────────────
    # Last added runs first: RateLimit → RequestID → Logging → TokenAuth → GZip → CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "X-Total-Count", "Retry-After"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(TokenAuthMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(RateLimitMiddleware)

    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(health.router)
    app.include_router(auth.router)
    app.include_router(posts.router)
    app.include_router(comments.router)
    app.include_router(upload.router)

    # StaticFiles checks the directory when mounted
    storage = Path(settings.storage_root)
    storage.mkdir(parents=True, exist_ok=True)
    app.mount(settings.uploads_url_path, StaticFiles(directory=storage), name="uploads")

    return app


app = create_app()
