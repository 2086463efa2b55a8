"""
TravelPlaces Backend — Credential Store Session Management
============================================================

What:  Async SQLAlchemy engine, session factory, and FastAPI dependency for
       the user credential store (register/login).
How:   Creates an async engine from settings.database_url, provides a session
       dependency that commits on success and rolls back on error.
Who:   Used by the auth routes via FastAPI's dependency injection system,
       by the health check, and by Alembic.
When:  Engine is created at module import; sessions are created per-request.

Country datasets do NOT go through this engine. Each of those is a separate
SQLite file opened per request by services/dataset_service.py.
"""

from typing import Any, AsyncGenerator, Dict

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from app.config import settings


def _engine_options() -> Dict[str, Any]:
    """Pool sizing only applies to server databases, not SQLite files."""
    options: Dict[str, Any] = {
        "pool_pre_ping": settings.db_pool_pre_ping,
        "echo": settings.log_level == "DEBUG",
    }
    if make_url(settings.database_url).get_backend_name() != "sqlite":
        options.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_recycle=3600,
        )
    return options


# ── Engine Configuration ──────────────────────────────────────────────────
engine = create_async_engine(settings.database_url, **_engine_options())

# ── Session Factory ───────────────────────────────────────────────────────
# expire_on_commit=False: attributes stay readable after commit
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


# ── Base Model ────────────────────────────────────────────────────────────
class Base(DeclarativeBase):
    """
    Base class for credential store ORM models.

    Registers models with a shared metadata object, which Alembic and the
    startup create_all() use.
    """
    pass


# ── Session Dependency ────────────────────────────────────────────────────
async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a credential store session per request.

    How it works:
        1. Creates a new session from the factory
        2. Yields it to the route handler
        3. On success: commits the transaction
        4. On error: rolls back and re-raises
        5. Always: closes the session

    Example usage in a route:
        @router.post("/register")
        async def register(body: Credentials, db: AsyncSession = Depends(get_db_session)):
            return await user_service.register(db, body.username, body.password)
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


# ── Lifecycle Helpers ─────────────────────────────────────────────────────
async def create_tables() -> None:
    """Create missing credential store tables (startup, when auth is enabled)."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose_engine() -> None:
    """Close all pooled credential store connections (shutdown)."""
    await engine.dispose()
