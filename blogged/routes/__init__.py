# Routes package init
"""
Blogged Backend — API Routes Package
=====================================

Route Inventory:
    - auth.py:      /api/auth/...      register, login, me, profile, password, public profile
    - posts.py:     /api/posts/...     listing, read, CRUD, likes, tags, analytics
    - comments.py:  /api/comments/...  comment threads and edits
    - upload.py:    POST /api/upload   image upload
    - health.py:    GET /, GET /health

Routes stay thin: read the request, call a service, set headers. Business
rules and status-code decisions live in the services and exception handlers.
"""
