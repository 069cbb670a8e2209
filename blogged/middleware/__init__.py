# Middleware package init
"""
Blogged Backend — Middleware Package
=====================================

What:  Cross-cutting concerns applied to every request.

Middleware Chain (order matters!):
    Request → [Rate Limit] → [Request ID] → [Logging] → [Token Auth] → [GZip] → [CORS] → Route

    1. Rate Limit FIRST: reject abusive clients before any processing
    2. Request ID: correlation id for logs and error bodies
    3. Logging: one access line per request, tagged with the request id
    4. Token Auth: verifies the bearer token and attaches the identity
    5. GZip: compresses larger responses
    6. CORS: FastAPI's CORSMiddleware (handles preflight)
"""
