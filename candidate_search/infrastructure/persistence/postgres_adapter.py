"""Postgres adapter over a SQLAlchemy async engine (asyncpg driver)."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Mapping, Optional, Tuple, Type

import structlog
from sqlalchemy import text
from sqlalchemy.exc import DisconnectionError, InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine

from candidate_search.core.config import Settings, get_settings

logger = structlog.get_logger(__name__)

# Driver-level failures worth retrying from background jobs.
TRANSIENT_DATABASE_ERRORS: Tuple[Type[BaseException], ...] = (
    OperationalError,
    DisconnectionError,
    InterfaceError,
)


def build_async_database_url(settings: Settings) -> str:
    url = str(settings.get_postgres_url())
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql+asyncpg://", 1)
    return url


class _AsyncConnectionWrapper:
    def __init__(self, connection: AsyncConnection):
        self._connection = connection

    async def fetchrow(self, query: str, *params: Any) -> Optional[Dict[str, Any]]:
        result = await self._connection.exec_driver_sql(query, params)
        row = result.mappings().first()
        return dict(row) if row else None

    async def fetch(self, query: str, *params: Any) -> List[Dict[str, Any]]:
        result = await self._connection.exec_driver_sql(query, params)
        return [dict(row) for row in result.mappings().all()]

    async def execute(self, query: str, *params: Any) -> int:
        result = await self._connection.exec_driver_sql(query, params)
        return result.rowcount

    async def execute_statement(self, statement: Any) -> int:
        result = await self._connection.execute(statement)
        return result.rowcount


class PostgresAdapter:
    """Lightweight adapter exposing fetch/execute helpers.

    Queries use asyncpg's ``$n`` placeholders and go straight to the driver.
    """

    def __init__(self, engine: Optional[AsyncEngine] = None, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self._engine = engine

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            database_url = build_async_database_url(self.settings)
            self._engine = create_async_engine(
                database_url,
                pool_size=self.settings.POSTGRES_POOL_SIZE,
                max_overflow=self.settings.POSTGRES_POOL_SIZE * 2,
                pool_timeout=30,
                pool_recycle=3600,
                pool_pre_ping=True,
                connect_args={
                    "server_settings": {"application_name": "candidate-search"},
                },
            )
            logger.info(
                "Postgres engine created",
                database_url=database_url.split("@")[-1],
                pool_size=self.settings.POSTGRES_POOL_SIZE,
            )
        return self._engine

    async def fetch_all(self, query: str, *params: Any) -> List[Mapping[str, Any]]:
        async with self.engine.connect() as connection:
            return await _AsyncConnectionWrapper(connection).fetch(query, *params)

    async def fetch_one(self, query: str, *params: Any) -> Optional[Mapping[str, Any]]:
        async with self.engine.connect() as connection:
            return await _AsyncConnectionWrapper(connection).fetchrow(query, *params)

    async def execute(self, query: str, *params: Any) -> int:
        async with self.engine.begin() as connection:
            return await _AsyncConnectionWrapper(connection).execute(query, *params)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[_AsyncConnectionWrapper]:
        """Connection inside one transaction, committed on clean exit."""
        async with self.engine.begin() as connection:
            yield _AsyncConnectionWrapper(connection)

    async def check_health(self) -> Dict[str, Any]:
        try:
            async with self.engine.connect() as connection:
                await connection.execute(text("SELECT 1"))
            pool = self.engine.pool
            return {
                "status": "healthy",
                "pool_status": pool.status(),
            }
        except Exception as e:
            logger.error("Postgres health check failed", error=str(e))
            return {"status": "unhealthy", "error": str(e)}

    async def close(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            logger.info("Postgres engine disposed")


__all__ = ["PostgresAdapter", "TRANSIENT_DATABASE_ERRORS", "build_async_database_url"]
