"""
SQLite implementation of catalog storage.

Handles categories, subcategories and catalog entries. Keywords are
stored as a JSON array.
"""

import json

import aiosqlite

from catmatch.config import get_logger
from catmatch.core.entities.catalog import CatalogEntry, Category, Subcategory
from catmatch.core.interfaces.storage import ICatalogStore
from catmatch.infrastructure.storage.sqlite.connection import get_connection, get_transaction
from catmatch.infrastructure.storage.sqlite.rows import db_operation

logger = get_logger(__name__)


def _escape_like(query: str) -> str:
    return query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _like_pattern(query: str) -> str:
    """Substring LIKE pattern with wildcards in the query escaped."""
    return f"%{_escape_like(query)}%"


# Relevance bucket, lower first: exact name, name prefix, word prefix, substring
_RELEVANCE_SQL = """
    CASE
        WHEN name = ? COLLATE NOCASE THEN 0
        WHEN name LIKE ? ESCAPE '\\' THEN 1
        WHEN name LIKE ? ESCAPE '\\' THEN 2
        ELSE 3
    END
"""


class SQLiteCatalogStore(ICatalogStore):
    """SQLite implementation of catalog storage."""

    @db_operation("get_catalog_entry")
    async def get_entry(self, entry_id: str) -> CatalogEntry | None:
        async with get_connection() as conn:
            cursor = await conn.execute(
                "SELECT * FROM catalog_entries WHERE id = ?", (entry_id,)
            )
            row = await cursor.fetchone()
            return self._row_to_entry(row) if row else None

    @db_operation("get_catalog_entry_by_code")
    async def get_by_code(self, code: str) -> CatalogEntry | None:
        async with get_connection() as conn:
            cursor = await conn.execute(
                "SELECT * FROM catalog_entries WHERE code = ?", (code,)
            )
            row = await cursor.fetchone()
            return self._row_to_entry(row) if row else None

    @db_operation("search_catalog")
    async def search_by_name(
        self,
        query: str,
        category_id: str | None = None,
        limit: int = 50,
    ) -> list[CatalogEntry]:
        """
        Case-insensitive substring search over active entry names.

        Rows come back best match first, so the limit never drops an exact
        or prefix hit in favour of a plain substring one.
        """
        sql = "SELECT * FROM catalog_entries WHERE active = 1 AND name LIKE ? ESCAPE '\\'"
        params: list = [_like_pattern(query)]
        if category_id:
            sql += " AND category_id = ?"
            params.append(category_id)
        sql += f" ORDER BY {_RELEVANCE_SQL}, name, id LIMIT ?"
        escaped = _escape_like(query)
        params.extend([query, f"{escaped}%", f"% {escaped}%", limit])

        async with get_connection() as conn:
            cursor = await conn.execute(sql, params)
            rows = await cursor.fetchall()
            return [self._row_to_entry(row) for row in rows]

    @db_operation("list_active_entries")
    async def list_active_entries(self) -> list[CatalogEntry]:
        async with get_connection() as conn:
            cursor = await conn.execute(
                "SELECT * FROM catalog_entries WHERE active = 1 ORDER BY name, id"
            )
            rows = await cursor.fetchall()
            return [self._row_to_entry(row) for row in rows]

    @db_operation("list_categories")
    async def list_categories(self) -> list[Category]:
        async with get_connection() as conn:
            cursor = await conn.execute("SELECT * FROM categories ORDER BY name, id")
            rows = await cursor.fetchall()
            return [
                Category(
                    id=row["id"],
                    code=row["code"],
                    name=row["name"],
                    description=row["description"],
                )
                for row in rows
            ]

    @db_operation("list_subcategories")
    async def list_subcategories(self, category_id: str | None = None) -> list[Subcategory]:
        async with get_connection() as conn:
            if category_id:
                cursor = await conn.execute(
                    "SELECT * FROM subcategories WHERE category_id = ? ORDER BY name, id",
                    (category_id,),
                )
            else:
                cursor = await conn.execute("SELECT * FROM subcategories ORDER BY name, id")
            rows = await cursor.fetchall()
            return [
                Subcategory(
                    id=row["id"],
                    code=row["code"],
                    name=row["name"],
                    description=row["description"],
                    category_id=row["category_id"],
                )
                for row in rows
            ]

    @db_operation("save_category")
    async def save_category(self, category: Category) -> Category:
        async with get_transaction() as conn:
            await conn.execute(
                """
                INSERT OR REPLACE INTO categories (id, code, name, description)
                VALUES (?, ?, ?, ?)
                """,
                (category.id, category.code, category.name, category.description),
            )
        logger.debug("category_saved", category_id=category.id, code=category.code)
        return category

    @db_operation("save_subcategory")
    async def save_subcategory(self, subcategory: Subcategory) -> Subcategory:
        async with get_transaction() as conn:
            await conn.execute(
                """
                INSERT OR REPLACE INTO subcategories (id, code, name, description, category_id)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    subcategory.id,
                    subcategory.code,
                    subcategory.name,
                    subcategory.description,
                    subcategory.category_id,
                ),
            )
        logger.debug("subcategory_saved", subcategory_id=subcategory.id, code=subcategory.code)
        return subcategory

    @db_operation("save_catalog_entry")
    async def save_entry(self, entry: CatalogEntry) -> CatalogEntry:
        async with get_transaction() as conn:
            await conn.execute(
                """
                INSERT INTO catalog_entries (
                    id, code, name, unit, active, category_id, subcategory_id, keywords
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    code = excluded.code,
                    name = excluded.name,
                    unit = excluded.unit,
                    active = excluded.active,
                    category_id = excluded.category_id,
                    subcategory_id = excluded.subcategory_id,
                    keywords = excluded.keywords
                """,
                (
                    entry.id,
                    entry.code,
                    entry.name,
                    entry.unit,
                    1 if entry.active else 0,
                    entry.category_id,
                    entry.subcategory_id,
                    json.dumps(list(entry.keywords), ensure_ascii=False),
                ),
            )
        logger.debug("catalog_entry_saved", entry_id=entry.id, code=entry.code)
        return entry

    def _row_to_entry(self, row: aiosqlite.Row) -> CatalogEntry:
        return CatalogEntry(
            id=row["id"],
            code=row["code"],
            name=row["name"],
            unit=row["unit"],
            active=bool(row["active"]),
            category_id=row["category_id"],
            subcategory_id=row["subcategory_id"],
            keywords=tuple(json.loads(row["keywords"] or "[]")),
        )
