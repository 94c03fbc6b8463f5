"""SQLite storage implementations."""

from catmatch.infrastructure.storage.sqlite.audit_log_store import SQLiteAuditLogStore
from catmatch.infrastructure.storage.sqlite.catalog_store import SQLiteCatalogStore
from catmatch.infrastructure.storage.sqlite.connection import (
    ConnectionPool,
    close_pool,
    get_connection,
    get_pool,
    get_transaction,
)
from catmatch.infrastructure.storage.sqlite.match_store import SQLiteMatchStore
from catmatch.infrastructure.storage.sqlite.upload_store import SQLiteUploadStore

# Singleton instances
_catalog_store: SQLiteCatalogStore | None = None
_upload_store: SQLiteUploadStore | None = None
_match_store: SQLiteMatchStore | None = None
_audit_log_store: SQLiteAuditLogStore | None = None


async def get_catalog_store() -> SQLiteCatalogStore:
    """Get singleton catalog store instance."""
    global _catalog_store
    if _catalog_store is None:
        _catalog_store = SQLiteCatalogStore()
    return _catalog_store


async def get_upload_store() -> SQLiteUploadStore:
    """Get singleton upload store instance."""
    global _upload_store
    if _upload_store is None:
        _upload_store = SQLiteUploadStore()
    return _upload_store


async def get_match_store() -> SQLiteMatchStore:
    """Get singleton match store instance."""
    global _match_store
    if _match_store is None:
        _match_store = SQLiteMatchStore()
    return _match_store


async def get_audit_log_store() -> SQLiteAuditLogStore:
    """Get singleton audit log store instance."""
    global _audit_log_store
    if _audit_log_store is None:
        _audit_log_store = SQLiteAuditLogStore()
    return _audit_log_store


__all__ = [
    # Connection
    "ConnectionPool",
    "get_pool",
    "close_pool",
    "get_connection",
    "get_transaction",
    # Stores
    "SQLiteCatalogStore",
    "SQLiteUploadStore",
    "SQLiteMatchStore",
    "SQLiteAuditLogStore",
    # Singleton getters
    "get_catalog_store",
    "get_upload_store",
    "get_match_store",
    "get_audit_log_store",
]
