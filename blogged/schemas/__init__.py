# Schemas package init
"""
Pydantic request/response contracts, kept separate from the ORM models so the
API can evolve independently of the table layout.
"""
