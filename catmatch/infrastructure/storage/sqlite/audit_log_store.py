"""SQLite implementation of the audit log."""

from catmatch.config import get_logger
from catmatch.core.entities.audit import AuditAction, AuditLogEntry
from catmatch.core.interfaces.storage import IAuditLogStore
from catmatch.infrastructure.storage.sqlite.connection import get_connection, get_transaction
from catmatch.infrastructure.storage.sqlite.rows import (
    db_operation,
    from_db_time,
    generate_id,
    to_db_time,
)

logger = get_logger(__name__)


class SQLiteAuditLogStore(IAuditLogStore):
    """Append-only audit log table."""

    @db_operation("append_audit_entry")
    async def append(self, entry: AuditLogEntry) -> AuditLogEntry:
        if not entry.id:
            entry = entry.model_copy(update={"id": generate_id()})
        async with get_transaction() as conn:
            await conn.execute(
                """
                INSERT INTO audit_log (id, actor_id, action, detail, created_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    entry.id,
                    entry.actor_id,
                    entry.action.value,
                    entry.detail,
                    to_db_time(entry.created_at),
                ),
            )
        logger.debug("audit_entry_appended", actor_id=entry.actor_id, action=entry.action.value)
        return entry

    @db_operation("list_audit_entries")
    async def list_entries(self, actor_id: str, limit: int = 100) -> list[AuditLogEntry]:
        async with get_connection() as conn:
            cursor = await conn.execute(
                """
                SELECT * FROM audit_log
                WHERE actor_id = ?
                ORDER BY created_at DESC, rowid DESC
                LIMIT ?
                """,
                (actor_id, limit),
            )
            rows = await cursor.fetchall()
            return [
                AuditLogEntry(
                    id=row["id"],
                    actor_id=row["actor_id"],
                    action=AuditAction(row["action"]),
                    detail=row["detail"],
                    created_at=from_db_time(row["created_at"]),
                )
                for row in rows
            ]
