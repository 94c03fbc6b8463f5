"""SQLite implementation of match candidate storage."""

import aiosqlite

from catmatch.config import get_logger
from catmatch.core.entities.match import MatchCandidate, MatchStatus
from catmatch.core.interfaces.storage import IMatchStore
from catmatch.infrastructure.storage.sqlite.connection import get_connection, get_transaction
from catmatch.infrastructure.storage.sqlite.rows import (
    db_operation,
    from_db_time,
    generate_id,
    to_db_time,
)

logger = get_logger(__name__)


class SQLiteMatchStore(IMatchStore):
    """SQLite implementation of match candidate storage."""

    @db_operation("create_match_candidate")
    async def create_candidate(self, candidate: MatchCandidate) -> MatchCandidate:
        """Insert-or-ignore on (upload_id, row_number); returns the stored row."""
        candidate_id = candidate.id or generate_id()
        async with get_transaction() as conn:
            cursor = await conn.execute(
                """
                INSERT INTO match_candidates (
                    id, upload_id, line_item_id, row_number, confidence_score, status,
                    original_text, matched_text, material_id, reviewed_at, reviewed_by,
                    created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT DO NOTHING
                """,
                (
                    candidate_id,
                    candidate.upload_id,
                    candidate.line_item_id,
                    candidate.row_number,
                    candidate.confidence_score,
                    candidate.status.value,
                    candidate.original_text,
                    candidate.matched_text,
                    candidate.material_id,
                    to_db_time(candidate.reviewed_at),
                    candidate.reviewed_by,
                    to_db_time(candidate.created_at),
                ),
            )
            if cursor.rowcount == 0:
                logger.debug(
                    "match_candidate_exists",
                    upload_id=candidate.upload_id,
                    row_number=candidate.row_number,
                )

            cursor = await conn.execute(
                "SELECT * FROM match_candidates WHERE upload_id = ? AND row_number = ?",
                (candidate.upload_id, candidate.row_number),
            )
            row = await cursor.fetchone()
            return self._row_to_candidate(row)

    @db_operation("get_match_candidate")
    async def get_candidate(self, match_id: str) -> MatchCandidate | None:
        async with get_connection() as conn:
            cursor = await conn.execute(
                "SELECT * FROM match_candidates WHERE id = ?", (match_id,)
            )
            row = await cursor.fetchone()
            return self._row_to_candidate(row) if row else None

    @db_operation("list_match_candidates")
    async def list_candidates(self, upload_id: str) -> list[MatchCandidate]:
        async with get_connection() as conn:
            cursor = await conn.execute(
                "SELECT * FROM match_candidates WHERE upload_id = ? ORDER BY row_number",
                (upload_id,),
            )
            rows = await cursor.fetchall()
            return [self._row_to_candidate(row) for row in rows]

    @db_operation("list_candidate_rows")
    async def list_candidate_rows(self, upload_id: str) -> set[int]:
        async with get_connection() as conn:
            cursor = await conn.execute(
                "SELECT row_number FROM match_candidates WHERE upload_id = ?",
                (upload_id,),
            )
            return {row[0] for row in await cursor.fetchall()}

    @db_operation("update_match_review")
    async def update_review(
        self,
        candidate: MatchCandidate,
        expected_status: MatchStatus,
    ) -> bool:
        async with get_transaction() as conn:
            cursor = await conn.execute(
                """
                UPDATE match_candidates
                SET status = ?, material_id = ?, matched_text = ?,
                    reviewed_at = ?, reviewed_by = ?
                WHERE id = ? AND status = ?
                """,
                (
                    candidate.status.value,
                    candidate.material_id,
                    candidate.matched_text,
                    to_db_time(candidate.reviewed_at),
                    candidate.reviewed_by,
                    candidate.id,
                    expected_status.value,
                ),
            )
            return cursor.rowcount > 0

    @db_operation("count_matches_by_status")
    async def count_by_status_for_owner(self, owner_id: str) -> dict[MatchStatus, int]:
        async with get_connection() as conn:
            cursor = await conn.execute(
                """
                SELECT m.status, COUNT(*) FROM match_candidates m
                JOIN uploads u ON u.id = m.upload_id
                WHERE u.owner_id = ?
                GROUP BY m.status
                """,
                (owner_id,),
            )
            return {MatchStatus(row[0]): row[1] for row in await cursor.fetchall()}

    def _row_to_candidate(self, row: aiosqlite.Row) -> MatchCandidate:
        return MatchCandidate(
            id=row["id"],
            upload_id=row["upload_id"],
            line_item_id=row["line_item_id"],
            row_number=row["row_number"],
            confidence_score=row["confidence_score"],
            status=MatchStatus(row["status"]),
            original_text=row["original_text"],
            matched_text=row["matched_text"],
            material_id=row["material_id"],
            reviewed_at=from_db_time(row["reviewed_at"]),
            reviewed_by=row["reviewed_by"],
            created_at=from_db_time(row["created_at"]),
        )
