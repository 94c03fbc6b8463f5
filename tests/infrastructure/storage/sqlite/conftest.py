"""Pytest fixtures for SQLite storage tests."""

from collections.abc import AsyncGenerator
from contextlib import ExitStack
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from catmatch.core.entities import Category
from catmatch.infrastructure.storage.sqlite import (
    SQLiteAuditLogStore,
    SQLiteCatalogStore,
    SQLiteMatchStore,
    SQLiteUploadStore,
)
from catmatch.infrastructure.storage.sqlite.connection import ConnectionPool
from catmatch.infrastructure.storage.sqlite.migrations.migrator import initialize_database

STORE_MODULES = (
    "catalog_store",
    "upload_store",
    "match_store",
    "audit_log_store",
)


@pytest.fixture
def temp_db_path(tmp_path: Path) -> Path:
    """Create a temporary database path."""
    return tmp_path / "test.db"


@pytest.fixture
async def initialized_db(temp_db_path: Path) -> Path:
    """Temporary database with all migrations applied."""
    results = await initialize_database(temp_db_path, create_backup_before=False)
    assert all(r.success for r in results)
    return temp_db_path


@pytest.fixture
async def pool(initialized_db: Path) -> AsyncGenerator[ConnectionPool, None]:
    """Connection pool patched into every store module."""
    pool = ConnectionPool(db_path=initialized_db, pool_size=2, busy_timeout=5000)
    await pool.initialize()

    with ExitStack() as stack:
        for module in STORE_MODULES:
            target = f"catmatch.infrastructure.storage.sqlite.{module}"
            stack.enter_context(
                patch(f"{target}.get_connection", side_effect=lambda: pool.acquire())
            )
            stack.enter_context(
                patch(f"{target}.get_transaction", side_effect=lambda: pool.transaction())
            )
        yield pool

    await pool.close()


@pytest.fixture
def catalog_store(pool) -> SQLiteCatalogStore:
    return SQLiteCatalogStore()


@pytest.fixture
def upload_store(pool) -> SQLiteUploadStore:
    return SQLiteUploadStore()


@pytest.fixture
def match_store(pool) -> SQLiteMatchStore:
    return SQLiteMatchStore()


@pytest.fixture
def audit_store(pool) -> SQLiteAuditLogStore:
    return SQLiteAuditLogStore()


@pytest.fixture
async def seeded_catalog(catalog_store, sample_category, sample_subcategory, sample_entries):
    """Catalog store holding the shared sample catalog."""
    await catalog_store.save_category(sample_category)
    await catalog_store.save_category(Category(id="cat-2", code="HID", name="Hidraulica"))
    await catalog_store.save_subcategory(sample_subcategory)
    for entry in sample_entries:
        await catalog_store.save_entry(entry)
    return catalog_store


@pytest.fixture
def mock_settings(temp_db_path: Path):
    """Mock settings with temp database path."""
    mock = MagicMock()
    mock.storage.db_path = temp_db_path
    mock.storage.pool_size = 2
    mock.storage.busy_timeout = 5000
    return mock
