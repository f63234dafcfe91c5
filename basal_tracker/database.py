"""Async database access for basal profiles.

The engine is built on first use so it binds to the running event loop.
Profiles and their change points are the only tables; ``init_models``
creates them when missing.
"""

from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from basal_tracker.config import settings
from basal_tracker.logging_config import get_logger

logger = get_logger(__name__)

_engine: AsyncEngine | None = None
_sessions: async_sessionmaker[AsyncSession] | None = None


def _engine_options() -> dict[str, Any]:
    # NullPool under tests and SQLite: no connection outlives its event loop
    if settings.testing or settings.database_url.startswith("sqlite"):
        return {"poolclass": NullPool}
    return {"pool_size": 5, "max_overflow": 10, "pool_pre_ping": True}


def get_engine() -> AsyncEngine:
    global _engine
    if _engine is None:
        _engine = create_async_engine(
            settings.database_url,
            echo=settings.log_format == "text",
            **_engine_options(),
        )
    return _engine


def get_session_maker() -> async_sessionmaker[AsyncSession]:
    global _sessions
    if _sessions is None:
        _sessions = async_sessionmaker(get_engine(), expire_on_commit=False)
    return _sessions


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Request-scoped session for FastAPI ``Depends``."""
    async with get_session_maker()() as session:
        yield session


async def init_models() -> None:
    """Create any missing profile tables."""
    from basal_tracker.models import Base

    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database schema ready")


async def check_database_connection() -> bool:
    """True when the profile store answers a trivial query."""
    try:
        async with get_engine().connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        logger.warning("Database connectivity check failed", error=str(e))
        return False
    return True


async def close_database() -> None:
    """Dispose of the engine; the next call to get_engine rebuilds it."""
    global _engine, _sessions
    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _sessions = None
