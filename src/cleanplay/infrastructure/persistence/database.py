"""Database engine and session management."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from cleanplay.config import DatabaseSettings

logger = logging.getLogger(__name__)


class Database:
    """Async engine plus a session factory."""

    def __init__(self, settings: DatabaseSettings) -> None:
        self.settings = settings

        engine_kwargs: dict[str, Any] = {"echo": settings.echo}
        is_sqlite = settings.url.startswith("sqlite")
        if is_sqlite:
            # Scheduler and consumer write concurrently; wait for the lock instead of failing.
            engine_kwargs["connect_args"] = {"check_same_thread": False, "timeout": 30}
        else:
            engine_kwargs["pool_pre_ping"] = True

        self._engine = create_async_engine(settings.url, **engine_kwargs)
        if is_sqlite:
            self._enable_sqlite_foreign_keys()

        self._session_factory = async_sessionmaker(
            self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    def _enable_sqlite_foreign_keys(self) -> None:
        @event.listens_for(self._engine.sync_engine, "connect")
        def set_sqlite_pragma(dbapi_conn: Any, _connection_record: Any) -> None:
            cursor = dbapi_conn.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    # Hey future me - one session_scope() == one unit of work. Commit on success, roll
    # back and re-raise on ANY exception. Data-store errors must surface to the caller
    # (they abort only the current user's check or job), so never swallow here.
    @asynccontextmanager
    async def session_scope(self) -> AsyncGenerator[AsyncSession, None]:
        """Provide a transactional scope for database operations."""
        async with self._session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def ping(self) -> bool:
        """Run SELECT 1, used by the readiness probe."""
        async with self._engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True

    async def close(self) -> None:
        """Dispose the engine."""
        await self._engine.dispose()

    async def create_tables(self) -> None:
        """Create all tables from ORM metadata."""
        from cleanplay.infrastructure.persistence.models import Base

        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables ensured")
