"""
SQLite implementation of upload storage.

Handles uploads and their line items. Every status or counter change is a
single conditional UPDATE, checked through the cursor's rowcount.
"""

from datetime import datetime

import aiosqlite

from catmatch.config import get_logger
from catmatch.core.entities.upload import LineItem, Upload, UploadStatus, can_transition
from catmatch.core.interfaces.storage import IUploadStore
from catmatch.infrastructure.storage.sqlite.connection import get_connection, get_transaction
from catmatch.infrastructure.storage.sqlite.rows import (
    db_operation,
    from_db_time,
    generate_id,
    now_db_time,
    to_db_time,
)

logger = get_logger(__name__)


class SQLiteUploadStore(IUploadStore):
    """SQLite implementation of upload storage."""

    @db_operation("create_upload")
    async def create_upload(self, upload: Upload) -> Upload:
        if not upload.id:
            upload = upload.model_copy(update={"id": generate_id()})
        async with get_transaction() as conn:
            await conn.execute(
                """
                INSERT INTO uploads (
                    id, owner_id, original_filename, stored_filename, file_size,
                    mime_type, status, total_items, processed_items, error_message,
                    created_at, updated_at, completed_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    upload.id,
                    upload.owner_id,
                    upload.original_filename,
                    upload.stored_filename,
                    upload.file_size,
                    upload.mime_type,
                    upload.status.value,
                    upload.total_items,
                    upload.processed_items,
                    upload.error_message,
                    to_db_time(upload.created_at),
                    to_db_time(upload.updated_at),
                    to_db_time(upload.completed_at),
                ),
            )
        logger.info("upload_created", upload_id=upload.id, owner_id=upload.owner_id)
        return upload

    @db_operation("get_upload")
    async def get_upload(self, upload_id: str) -> Upload | None:
        async with get_connection() as conn:
            return await self._fetch_upload(conn, upload_id)

    @db_operation("list_uploads_by_owner")
    async def list_uploads_by_owner(self, owner_id: str) -> list[Upload]:
        async with get_connection() as conn:
            cursor = await conn.execute(
                """
                SELECT * FROM uploads
                WHERE owner_id = ?
                ORDER BY created_at DESC, id DESC
                """,
                (owner_id,),
            )
            rows = await cursor.fetchall()
            return [self._row_to_upload(row) for row in rows]

    @db_operation("list_uploads_by_status")
    async def list_uploads_by_status(self, status: UploadStatus) -> list[Upload]:
        async with get_connection() as conn:
            cursor = await conn.execute(
                "SELECT * FROM uploads WHERE status = ? ORDER BY created_at, id",
                (status.value,),
            )
            rows = await cursor.fetchall()
            return [self._row_to_upload(row) for row in rows]

    @db_operation("begin_processing")
    async def begin_processing(self, upload_id: str, items: list[LineItem]) -> Upload | None:
        now = now_db_time()
        async with get_transaction() as conn:
            cursor = await conn.execute(
                """
                UPDATE uploads
                SET status = 'processing', total_items = ?, processed_items = 0,
                    error_message = NULL, updated_at = ?
                WHERE id = ? AND status = 'created'
                """,
                (len(items), now, upload_id),
            )
            if cursor.rowcount == 0:
                return None

            await conn.executemany(
                """
                INSERT INTO line_items (id, upload_id, row_number, original_text, quantity, unit)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                [
                    (
                        item.id or generate_id(),
                        upload_id,
                        item.row_number,
                        item.original_text,
                        item.quantity,
                        item.unit,
                    )
                    for item in items
                ],
            )
            upload = await self._fetch_upload(conn, upload_id)

        logger.info("upload_items_stored", upload_id=upload_id, total_items=len(items))
        return upload

    @db_operation("get_line_items")
    async def get_line_items(self, upload_id: str) -> list[LineItem]:
        async with get_connection() as conn:
            cursor = await conn.execute(
                "SELECT * FROM line_items WHERE upload_id = ? ORDER BY row_number",
                (upload_id,),
            )
            rows = await cursor.fetchall()
            return [
                LineItem(
                    id=row["id"],
                    upload_id=row["upload_id"],
                    row_number=row["row_number"],
                    original_text=row["original_text"],
                    quantity=row["quantity"],
                    unit=row["unit"],
                )
                for row in rows
            ]

    @db_operation("increment_processed")
    async def increment_processed(self, upload_id: str) -> Upload | None:
        async with get_transaction() as conn:
            await conn.execute(
                """
                UPDATE uploads
                SET processed_items = processed_items + 1, updated_at = ?
                WHERE id = ? AND status = 'processing'
                  AND (total_items IS NULL OR processed_items < total_items)
                """,
                (now_db_time(), upload_id),
            )
            return await self._fetch_upload(conn, upload_id)

    @db_operation("sync_processed_items")
    async def sync_processed_items(self, upload_id: str, count: int) -> Upload | None:
        async with get_transaction() as conn:
            await conn.execute(
                """
                UPDATE uploads
                SET processed_items = MIN(MAX(processed_items, ?), COALESCE(total_items, ?)),
                    updated_at = ?
                WHERE id = ? AND status = 'processing'
                """,
                (count, count, now_db_time(), upload_id),
            )
            return await self._fetch_upload(conn, upload_id)

    @db_operation("transition_upload_status")
    async def transition_status(
        self,
        upload_id: str,
        from_statuses: set[UploadStatus],
        to_status: UploadStatus,
        error_message: str | None = None,
    ) -> bool:
        sources = sorted(s.value for s in from_statuses if can_transition(s, to_status))
        if not sources:
            return False
        placeholders = ", ".join("?" for _ in sources)
        async with get_transaction() as conn:
            cursor = await conn.execute(
                f"""
                UPDATE uploads
                SET status = ?, error_message = COALESCE(?, error_message), updated_at = ?
                WHERE id = ? AND status IN ({placeholders})
                """,
                (
                    to_status.value,
                    error_message,
                    now_db_time(),
                    upload_id,
                    *sources,
                ),
            )
            changed = cursor.rowcount > 0

        if changed:
            logger.info("upload_status_changed", upload_id=upload_id, status=to_status.value)
        return changed

    @db_operation("complete_upload")
    async def complete_upload(self, upload_id: str) -> bool:
        now = now_db_time()
        async with get_transaction() as conn:
            cursor = await conn.execute(
                """
                UPDATE uploads
                SET status = 'completed', completed_at = ?, updated_at = ?
                WHERE id = ? AND status = 'processing'
                  AND processed_items = COALESCE(total_items, 0)
                """,
                (now, now, upload_id),
            )
            return cursor.rowcount > 0

    @db_operation("count_uploads_since")
    async def count_uploads_since(self, owner_id: str, since: datetime) -> int:
        async with get_connection() as conn:
            cursor = await conn.execute(
                "SELECT COUNT(*) FROM uploads WHERE owner_id = ? AND created_at >= ?",
                (owner_id, to_db_time(since)),
            )
            row = await cursor.fetchone()
            return row[0]

    @db_operation("sum_processed_items")
    async def sum_processed_items(self, owner_id: str) -> int:
        async with get_connection() as conn:
            cursor = await conn.execute(
                "SELECT COALESCE(SUM(processed_items), 0) FROM uploads WHERE owner_id = ?",
                (owner_id,),
            )
            row = await cursor.fetchone()
            return row[0]

    async def _fetch_upload(self, conn: aiosqlite.Connection, upload_id: str) -> Upload | None:
        cursor = await conn.execute("SELECT * FROM uploads WHERE id = ?", (upload_id,))
        row = await cursor.fetchone()
        return self._row_to_upload(row) if row else None

    def _row_to_upload(self, row: aiosqlite.Row) -> Upload:
        return Upload(
            id=row["id"],
            owner_id=row["owner_id"],
            original_filename=row["original_filename"],
            stored_filename=row["stored_filename"],
            file_size=row["file_size"],
            mime_type=row["mime_type"],
            status=UploadStatus(row["status"]),
            total_items=row["total_items"],
            processed_items=row["processed_items"],
            error_message=row["error_message"],
            created_at=from_db_time(row["created_at"]),
            updated_at=from_db_time(row["updated_at"]),
            completed_at=from_db_time(row["completed_at"]),
        )
