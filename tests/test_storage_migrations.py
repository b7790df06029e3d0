"""Tests for the migration runner and the health endpoint's schema check."""

from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from pulsecheck_brain.api.health import health, ping
from pulsecheck_brain.storage.migrations import (
    REQUIRED_TABLES,
    check_schema_exists,
    list_migrations,
    run_migrations,
)


def _make_pool(*, applied: list[int] | None = None, fail: bool = False):
    """Mock pool whose transaction() yields a connection with async execute()."""
    pool = MagicMock()
    pool.is_initialized = True
    pool.execute = AsyncMock(return_value="CREATE TABLE")
    pool.fetch = AsyncMock(return_value=[{"version": v} for v in (applied or [])])
    pool.fetchval = AsyncMock(return_value=len(REQUIRED_TABLES))

    conn = MagicMock()
    conn.execute = AsyncMock(side_effect=RuntimeError("syntax error") if fail else None)

    @asynccontextmanager
    async def _transaction():
        yield conn

    pool.transaction = _transaction
    return pool, conn


# ---------------------------------------------------------------------------
# run_migrations
# ---------------------------------------------------------------------------


class TestRunMigrations:

    def test_escalation_migration_listed(self):
        versions = [v for v, _ in list_migrations()]
        assert versions[0] == 1
        assert versions == sorted(versions)

    @pytest.mark.asyncio
    async def test_applies_pending_in_transaction(self):
        pool, conn = _make_pool(applied=[])
        applied = await run_migrations(pool)

        assert applied == len(list_migrations())
        schema_sql = conn.execute.call_args_list[0].args[0]
        assert "CREATE TABLE IF NOT EXISTS escalation_records" in schema_sql
        insert = conn.execute.call_args_list[1].args
        assert insert[0].startswith("INSERT INTO schema_migrations")
        assert insert[1:] == (1, "001_escalation")

    @pytest.mark.asyncio
    async def test_skips_applied(self):
        pool, conn = _make_pool(applied=[v for v, _ in list_migrations()])
        assert await run_migrations(pool) == 0
        conn.execute.assert_not_called()

    @pytest.mark.asyncio
    async def test_failure_propagates(self):
        pool, _ = _make_pool(applied=[], fail=True)
        with pytest.raises(RuntimeError):
            await run_migrations(pool)

    @pytest.mark.asyncio
    async def test_check_schema_exists(self):
        pool, _ = _make_pool()
        assert await check_schema_exists(pool) is True
        pool.fetchval = AsyncMock(return_value=1)
        assert await check_schema_exists(pool) is False


# ---------------------------------------------------------------------------
# Health endpoints
# ---------------------------------------------------------------------------


class TestHealth:

    @pytest.mark.asyncio
    async def test_ping(self):
        assert await ping() == {"status": "ok", "message": "pong"}

    @pytest.mark.asyncio
    async def test_degraded_without_database(self):
        pool = MagicMock()
        pool.is_initialized = False
        with patch("pulsecheck_brain.api.health.get_db_pool", return_value=pool):
            response = await health()
        assert response["status"] == "degraded"
        assert response["services"]["database"] == {"initialized": False, "schema": False}

    @pytest.mark.asyncio
    async def test_ok_with_schema_and_running_queue(self):
        pool, _ = _make_pool()
        queue = MagicMock()
        queue.is_running = True
        queue.stats = {"pending": 0}
        with (
            patch("pulsecheck_brain.api.health.get_db_pool", return_value=pool),
            patch("pulsecheck_brain.api.health.get_escalation_queue", return_value=queue),
        ):
            response = await health()
        assert response["status"] == "ok"
        assert response["services"]["database"]["schema"] is True
