"""Storage infrastructure implementations."""

from catmatch.infrastructure.storage.files import LocalFileStore, get_file_store, reset_file_store
from catmatch.infrastructure.storage.sqlite import (
    SQLiteAuditLogStore,
    SQLiteCatalogStore,
    SQLiteMatchStore,
    SQLiteUploadStore,
    close_pool,
    get_connection,
    get_pool,
    get_transaction,
)

__all__ = [
    # SQLite stores
    "SQLiteCatalogStore",
    "SQLiteUploadStore",
    "SQLiteMatchStore",
    "SQLiteAuditLogStore",
    # Connection pool
    "get_pool",
    "close_pool",
    "get_connection",
    "get_transaction",
    # Files
    "LocalFileStore",
    "get_file_store",
    "reset_file_store",
]
