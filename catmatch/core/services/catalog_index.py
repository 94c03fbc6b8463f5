"""
Catalog index service.

Read-only lookups over the reference catalog: ranked name search,
lookup by code or id, and category listings.
"""

from catmatch.config import get_logger
from catmatch.core.entities.catalog import CatalogEntry, Category, Subcategory
from catmatch.core.exceptions import CatalogEntryNotFoundError, ValidationError
from catmatch.core.interfaces.matching import CatalogSnapshot
from catmatch.core.interfaces.storage import ICatalogStore
from catmatch.core.services.catalog_matcher import normalize_text

logger = get_logger(__name__)

DEFAULT_LIMIT = 50
MAX_LIMIT = 100

# Candidate rows fetched from the store before ranking
_FETCH_FACTOR = 4


def _relevance(query: str, name: str) -> int:
    """Rank bucket of a name for a query: lower is better."""
    if name == query:
        return 0
    if name.startswith(query):
        return 1
    if any(word.startswith(query) for word in name.split()):
        return 2
    return 3


class CatalogIndex:
    """
    Search and lookup over catalog entries.

    Ranking: exact name, name prefix, word prefix, then plain substring;
    ties broken by name. Inactive entries never appear in search results
    but still resolve by id so old match candidates keep working.
    """

    def __init__(
        self,
        catalog_store: ICatalogStore,
        default_limit: int = DEFAULT_LIMIT,
        max_limit: int = MAX_LIMIT,
    ) -> None:
        self._store = catalog_store
        self._default_limit = default_limit
        self._max_limit = max_limit

    def _resolve_limit(self, limit: int | None) -> int:
        if limit is None:
            return self._default_limit
        if limit < 1:
            raise ValidationError("limit", "must be at least 1", limit)
        return min(limit, self._max_limit)

    async def search(
        self,
        text: str,
        category_id: str | None = None,
        limit: int | None = None,
    ) -> list[CatalogEntry]:
        """Search active entries by name."""
        resolved = self._resolve_limit(limit)
        query = text.strip()
        if not query:
            raise ValidationError("query", "must not be empty", text)

        rows = await self._store.search_by_name(
            query,
            category_id=category_id,
            limit=resolved * _FETCH_FACTOR,
        )

        normalized_query = normalize_text(query)
        ranked = sorted(
            (e for e in rows if e.active),
            key=lambda e: (_relevance(normalized_query, normalize_text(e.name)), e.name, e.id),
        )

        logger.debug(
            "catalog_search",
            query=query,
            category_id=category_id,
            fetched=len(rows),
            returned=min(len(ranked), resolved),
        )
        return ranked[:resolved]

    async def get_by_code(self, code: str) -> CatalogEntry | None:
        """Look up an entry by its external code."""
        return await self._store.get_by_code(code.strip())

    async def get_entry(self, entry_id: str) -> CatalogEntry:
        """Get an entry by id (active or not)."""
        entry = await self._store.get_entry(entry_id)
        if entry is None:
            raise CatalogEntryNotFoundError(entry_id)
        return entry

    async def find_entry(self, entry_id: str) -> CatalogEntry | None:
        """Get an entry by id, or None."""
        return await self._store.get_entry(entry_id)

    async def list_categories(self) -> list[Category]:
        return await self._store.list_categories()

    async def list_subcategories(self, category_id: str | None = None) -> list[Subcategory]:
        return await self._store.list_subcategories(category_id)

    async def snapshot(self) -> CatalogSnapshot:
        """Immutable view of all active entries, for a matching run."""
        entries = await self._store.list_active_entries()
        return CatalogSnapshot.from_entries(entries)
