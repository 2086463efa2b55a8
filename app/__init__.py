"""
TravelPlaces Backend — Application Package Initializer
========================================================

What: Marks the `app` directory as a Python package.
Who:  Used by uvicorn (app.main:app), Alembic and pytest.

Architecture Note:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │         Services (Business Logic)   │  ← Queries, image inlining, auth
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy tables + Pydantic
    ├─────────────────────────────────────┤
    │  Object store / dataset files / DB  │  ← S3, per-request SQLite, users
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
