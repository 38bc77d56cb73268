"""Async database engine and session lifecycle."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy import event, text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from pulsecheck.db.models import Base

POOL_SIZE = 15
POOL_RECYCLE_S = 30 * 60
PING_TIMEOUT_S = 5.0


def _enable_sqlite_foreign_keys(dbapi_connection: Any, _record: Any) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    """Database wrapper exposing engine and managed sessions."""

    def __init__(self, database_url: str) -> None:
        """Create an async SQLAlchemy engine and session factory.

        Server databases get a fixed-size pool with connection recycling;
        SQLite keeps SQLAlchemy's defaults and enforces foreign keys.
        """
        url = make_url(database_url)
        self.is_sqlite = url.get_backend_name() == "sqlite"

        options: dict[str, Any] = {"echo": False, "pool_pre_ping": True}
        if not self.is_sqlite:
            options.update(pool_size=POOL_SIZE, max_overflow=0, pool_recycle=POOL_RECYCLE_S)

        self.engine = create_async_engine(url, **options)
        if self.is_sqlite:
            event.listen(self.engine.sync_engine, "connect", _enable_sqlite_foreign_keys)

        self.async_session = async_sessionmaker(
            self.engine, expire_on_commit=False, class_=AsyncSession
        )

    async def ping(self, timeout_s: float = PING_TIMEOUT_S) -> None:
        """Fail fast when the database cannot be reached."""
        async with asyncio.timeout(timeout_s):
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))

    async def init(self) -> None:
        """Check connectivity and create all configured tables."""
        await self.ping()
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def close(self) -> None:
        """Dispose the underlying SQLAlchemy engine."""
        await self.engine.dispose()

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Yield a transactional async session with commit/rollback handling."""
        async with self.async_session() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise
