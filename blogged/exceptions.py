"""
Blogged Backend — Custom Exception Hierarchy
=============================================

What:  Application-specific exceptions for each failure class of the API.
Why:   Services raise these; global handlers (registered in main.py) turn
       them into the JSON error body with the matching status code.
How:   Each exception carries a user-facing message and an optional context
       dict. The context is logged server-side; only validation details are
       ever echoed back to the client.

Exception Hierarchy:
    BloggedError (base)
    ├── ValidationError      → 400 Bad Request
    ├── ConflictError        → 400 Bad Request (duplicate email/username)
    ├── AuthError            → 401 Unauthorized
    ├── ForbiddenError       → 403 Forbidden
    ├── NotFoundError        → 404 Not Found
    └── InternalError        → 500 Internal Server Error
        ├── DatabaseError
        └── FileStorageError
"""

from typing import Any, Dict, Optional


class BloggedError(Exception):
    """
    Base exception for all Blogged application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged, not returned for server errors)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(BloggedError):
    """
    Raised when client input fails a business rule.

    Schema-level problems (missing fields, wrong types) are caught earlier by
    FastAPI and mapped to the same 400 response in main.py.
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class ConflictError(BloggedError):
    """Raised when a write would break a uniqueness rule (email, username)."""

    def __init__(
        self,
        message: str = "Resource already exists",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class AuthError(BloggedError):
    """
    Raised for missing, invalid or expired credentials.

    Login failures always use the same message so that callers cannot tell
    an unknown account from a wrong password.
    """

    def __init__(
        self,
        message: str = "Authentication required",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class ForbiddenError(BloggedError):
    """Raised when an authenticated user touches something they do not own."""

    def __init__(
        self,
        message: str = "You are not allowed to perform this action",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(BloggedError):
    """
    Raised when a requested resource does not exist.

    SQLAlchemy returns None for missing rows; services convert that None into
    this exception so routes stay free of status-code logic.
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"{resource.capitalize()} not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)
        self.resource = resource


class InternalError(BloggedError):
    """
    Unclassified server-side failure.

    The message returned to the client is always generic; the context is
    logged for operators.
    """

    def __init__(
        self,
        message: str = "An internal error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(InternalError):
    """Raised when a query, insert or update fails unexpectedly."""

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class FileStorageError(InternalError):
    """Raised when the upload directory cannot be written."""

    def __init__(
        self,
        message: str = "File storage operation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
