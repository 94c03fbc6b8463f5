"""Tests for the pooled SQLite connections."""

from pathlib import Path
from unittest.mock import patch

import aiosqlite
import pytest

from catmatch.infrastructure.storage.sqlite.connection import (
    ConnectionPool,
    close_pool,
    get_connection,
    get_pool,
    get_transaction,
)


class TestConnectionPoolInit:
    """Constructor defaults."""

    def test_defaults(self, temp_db_path: Path):
        pool = ConnectionPool(temp_db_path)

        assert pool.db_path == temp_db_path
        assert pool.pool_size == 5
        assert pool.busy_timeout == 30000
        assert pool.initialized is False


@pytest.mark.asyncio
class TestConnectionPool:
    """Connection lifecycle."""

    async def test_initialize_opens_all_connections(self, temp_db_path: Path):
        pool = ConnectionPool(temp_db_path, pool_size=3)
        await pool.initialize()

        try:
            assert pool.initialized
            assert pool.open_count == 3
            assert temp_db_path.exists()
        finally:
            await pool.close()

    async def test_initialize_is_idempotent(self, temp_db_path: Path):
        pool = ConnectionPool(temp_db_path, pool_size=2)
        await pool.initialize()
        await pool.initialize()

        try:
            assert pool.open_count == 2
        finally:
            await pool.close()

    async def test_creates_parent_directory(self, tmp_path: Path):
        pool = ConnectionPool(tmp_path / "nested" / "dir" / "test.db", pool_size=1)
        await pool.initialize()
        await pool.close()

        assert (tmp_path / "nested" / "dir").is_dir()

    async def test_pragmas_applied(self, temp_db_path: Path):
        pool = ConnectionPool(temp_db_path, pool_size=1, busy_timeout=1234)

        try:
            async with pool.acquire() as conn:
                cursor = await conn.execute("PRAGMA foreign_keys")
                assert (await cursor.fetchone())[0] == 1
                cursor = await conn.execute("PRAGMA journal_mode")
                assert (await cursor.fetchone())[0] == "wal"
                cursor = await conn.execute("PRAGMA busy_timeout")
                assert (await cursor.fetchone())[0] == 1234
                assert conn.row_factory is aiosqlite.Row
        finally:
            await pool.close()

    async def test_transaction_commits(self, temp_db_path: Path):
        pool = ConnectionPool(temp_db_path, pool_size=1)

        try:
            async with pool.acquire() as conn:
                await conn.execute("CREATE TABLE t (v INTEGER)")
            async with pool.transaction() as conn:
                await conn.execute("INSERT INTO t VALUES (1)")
            async with pool.acquire() as conn:
                cursor = await conn.execute("SELECT COUNT(*) FROM t")
                assert (await cursor.fetchone())[0] == 1
        finally:
            await pool.close()

    async def test_transaction_rolls_back_on_error(self, temp_db_path: Path):
        pool = ConnectionPool(temp_db_path, pool_size=1)

        try:
            async with pool.acquire() as conn:
                await conn.execute("CREATE TABLE t (v INTEGER)")
            with pytest.raises(RuntimeError):
                async with pool.transaction() as conn:
                    await conn.execute("INSERT INTO t VALUES (1)")
                    raise RuntimeError("boom")
            async with pool.acquire() as conn:
                cursor = await conn.execute("SELECT COUNT(*) FROM t")
                assert (await cursor.fetchone())[0] == 0
        finally:
            await pool.close()

    async def test_connection_returned_after_error(self, temp_db_path: Path):
        pool = ConnectionPool(temp_db_path, pool_size=1)

        try:
            with pytest.raises(ValueError):
                async with pool.acquire():
                    raise ValueError("boom")
            assert pool.idle_count == 1
        finally:
            await pool.close()

    async def test_close_resets_state(self, temp_db_path: Path):
        pool = ConnectionPool(temp_db_path, pool_size=2)
        await pool.initialize()

        await pool.close()

        assert pool.initialized is False
        assert pool.open_count == 0
        assert pool.idle_count == 0


@pytest.mark.asyncio
class TestGlobalPool:
    """Module-level pool helpers."""

    async def test_get_pool_uses_settings(self, mock_settings):
        with patch(
            "catmatch.infrastructure.storage.sqlite.connection.get_settings",
            return_value=mock_settings,
        ):
            try:
                pool = await get_pool()
                assert pool.db_path == mock_settings.storage.db_path
                assert pool.pool_size == 2
                assert await get_pool() is pool

                async with get_transaction() as conn:
                    await conn.execute("CREATE TABLE t (v INTEGER)")
                    await conn.execute("INSERT INTO t VALUES (7)")
                async with get_connection() as conn:
                    cursor = await conn.execute("SELECT v FROM t")
                    assert (await cursor.fetchone())[0] == 7
            finally:
                await close_pool()

    async def test_close_pool_without_pool(self):
        await close_pool()
