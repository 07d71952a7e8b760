"""
Async engine, session factory and the request-scoped session dependency.

SQLite (the default) runs on a single shared connection so that an
in-memory database is visible to every session, including the ones the
sentiment scheduler opens outside of requests.
"""

from typing import Any, AsyncGenerator, Dict

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from insightflow.core.config import settings
from insightflow.models.base import Base


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:  # noqa: ANN001
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_engine_for(database_url: str) -> AsyncEngine:
    """
    Build the async engine for ``database_url``.

    SQLite URLs get ``StaticPool``, ``check_same_thread=False`` and foreign
    keys switched on for each connection. Other backends use the default
    pool.
    """
    options: Dict[str, Any] = {"echo": False, "future": True}

    if not database_url.startswith("sqlite"):
        return create_async_engine(database_url, **options)

    sqlite_engine = create_async_engine(
        database_url,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
        **options,
    )
    event.listen(sqlite_engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
    return sqlite_engine


engine = create_engine_for(settings.database_url)

async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def init_db() -> None:
    """Create missing tables unless ``db_create_all`` is off."""
    # Registers every table on Base.metadata
    from insightflow import models  # noqa: F401

    if not settings.db_create_all:
        return

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    await engine.dispose()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency yielding one session per request.

    The session commits after the handler returns and rolls back if it
    raises.

    Example:
        @router.get("/analyses")
        async def list_analyses(db: AsyncSession = Depends(get_db)):
            ...
    """
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
