from __future__ import annotations

from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from app.core.config import settings

# Seconds a SQLite writer waits on a locked database before giving up.
SQLITE_BUSY_TIMEOUT = 15


def build_engine(url: str, **overrides: Any) -> AsyncEngine:
    """
    Async engine for the store.

    Server databases get pre-ping and periodic recycling; SQLite files get a
    busy timeout so concurrent order commits queue on the write lock.
    """
    options: dict[str, Any] = {"echo": False, "future": True}
    if url.startswith("sqlite"):
        options["connect_args"] = {"timeout": SQLITE_BUSY_TIMEOUT}
    else:
        options.update(pool_pre_ping=True, pool_recycle=300)
    options.update(overrides)
    return create_async_engine(url, **options)


def build_sessionmaker(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # expire_on_commit off: services read ids and totals after commit.
    return async_sessionmaker(bind=bind, class_=AsyncSession, expire_on_commit=False, autoflush=False)


# Use CLEAN URL to avoid asyncpg errors with sslmode/channel_binding query params.
engine: AsyncEngine = build_engine(settings.DATABASE_URL_ASYNC_CLEAN)
AsyncSessionLocal = build_sessionmaker(engine)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    One AsyncSession per request. A handler that fails leaves nothing
    uncommitted behind: the session is rolled back before it closes.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
