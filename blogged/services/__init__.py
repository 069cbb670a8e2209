# Services package init
"""
Blogged Backend — Services Layer
=================================

What:  Business logic between the routes (HTTP) and the ORM models.
How:   Stateless classes with one module-level instance each. Every method
       receives the request's AsyncSession, so services share no mutable
       state and can be unit-tested with a mocked session.

Service Inventory:
    - AuthService:    registration, login, profiles, password changes
    - PostService:    posts, tags, likes, view counting, analytics
    - CommentService: comment threads and author-only comment edits
    - FileService:    image upload validation and storage
"""
