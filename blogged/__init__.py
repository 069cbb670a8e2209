"""
Blogged Backend — Application Package Initializer
=================================================

What: Marks the `blogged` directory as a Python package.
Who:  Imported by uvicorn (`blogged.main:app`), Alembic, the seed script and pytest.

Architecture Note:
    The backend follows a layered layout:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │  Middleware (request id, identity)  │  ← cross-cutting concerns
    ├─────────────────────────────────────┤
    │         Services (Business Logic)   │  ← auth, posts, comments, files
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘

    Routes never touch the ORM directly; services never see HTTP objects.
"""

__version__ = "1.0.0"
