"""
Database connection pool management for PulseCheck Brain.

Uses asyncpg. Repositories call get_db_pool() per operation and check
is_initialized first, so the service keeps classifying (without
recording) when the database is down.
"""

import json
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import asyncpg

from .config import db_settings

logger = logging.getLogger("pulsecheck.storage.database")


async def _init_connection(conn: asyncpg.Connection) -> None:
    # example_phrases and keywords come back as Python lists
    await conn.set_type_codec("jsonb", encoder=json.dumps, decoder=json.loads, schema="pg_catalog")


class DatabasePool:
    """Thin wrapper over an asyncpg pool with lazy initialization."""

    def __init__(self):
        self._pool: Optional[asyncpg.Pool] = None

    @property
    def is_initialized(self) -> bool:
        return self._pool is not None

    async def initialize(self) -> None:
        """Create the connection pool. No-op if disabled or already created."""
        if self._pool is not None:
            logger.debug("Database pool already initialized")
            return

        if not db_settings.enabled:
            logger.info("Escalation persistence is disabled")
            return

        logger.info(
            "Initializing database pool (db=%s, min=%d, max=%d)",
            db_settings.database,
            db_settings.min_pool_size,
            db_settings.max_pool_size,
        )
        try:
            self._pool = await asyncpg.create_pool(
                dsn=db_settings.dsn,
                min_size=db_settings.min_pool_size,
                max_size=db_settings.max_pool_size,
                timeout=db_settings.connect_timeout,
                command_timeout=db_settings.command_timeout,
                server_settings={"application_name": db_settings.application_name},
                init=_init_connection,
            )
        except Exception as e:
            logger.error("Failed to initialize database pool: %s", e)
            raise

    async def close(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None
            logger.info("Database pool closed")

    def _require_pool(self) -> asyncpg.Pool:
        if self._pool is None:
            raise RuntimeError("Database pool not initialized")
        return self._pool

    async def execute(self, query: str, *args) -> str:
        """Execute a statement and return the status tag."""
        return await self._require_pool().execute(query, *args)

    async def fetch(self, query: str, *args) -> list:
        return await self._require_pool().fetch(query, *args)

    async def fetchrow(self, query: str, *args) -> Optional[asyncpg.Record]:
        return await self._require_pool().fetchrow(query, *args)

    async def fetchval(self, query: str, *args):
        return await self._require_pool().fetchval(query, *args)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[asyncpg.Connection]:
        """
        Acquire a connection with an active transaction.

        Commits on success, rolls back on exception.
        """
        async with self._require_pool().acquire() as conn:
            async with conn.transaction():
                yield conn


# Global pool instance
_db_pool: Optional[DatabasePool] = None


def get_db_pool() -> DatabasePool:
    """Get or create the global database pool."""
    global _db_pool
    if _db_pool is None:
        _db_pool = DatabasePool()
    return _db_pool


async def init_database() -> None:
    """Initialize the database pool (call from app startup)."""
    await get_db_pool().initialize()


async def close_database() -> None:
    """Close the database pool (call from app shutdown)."""
    await get_db_pool().close()
