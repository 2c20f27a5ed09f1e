"""
Natours Backend: Application Package
======================================

Layered layout:

    ┌─────────────────────────────────────┐
    │     Guard pipeline (middleware)     │  ← rate limit, body cap, sanitizers
    ├─────────────────────────────────────┤
    │     Routes (pages + /api/v1)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │     Services                        │  ← queries, not-found handling
    ├─────────────────────────────────────┤
    │     Models & Schemas                │  ← SQLAlchemy ORM + Pydantic
    └─────────────────────────────────────┘

    Errors from any layer end in natours.errors, which decides what the
    client sees.
"""

__version__ = "1.0.0"
