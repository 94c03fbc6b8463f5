"""
Use case: Load a catalog fixture.

Reads a JSON document of categories, subcategories and entries and writes
it to the catalog store. Used to seed development and test databases;
entries missing from the file are left untouched.
"""

import json
from dataclasses import dataclass
from pathlib import Path

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from catmatch.config import get_logger
from catmatch.core.entities.catalog import CatalogEntry, Category, Subcategory
from catmatch.core.exceptions import ValidationError
from catmatch.core.interfaces.storage import ICatalogStore

logger = get_logger(__name__)


class CatalogFixture(BaseModel):
    """Shape of a catalog fixture file."""

    categories: list[Category] = Field(default_factory=list)
    subcategories: list[Subcategory] = Field(default_factory=list)
    entries: list[CatalogEntry] = Field(default_factory=list)


@dataclass
class LoadCatalogResult:
    categories: int = 0
    subcategories: int = 0
    entries: int = 0


class LoadCatalogUseCase:
    """Writes a catalog fixture into the catalog store."""

    def __init__(self, catalog_store: ICatalogStore | None = None):
        self._catalog_store = catalog_store

    async def _get_catalog_store(self) -> ICatalogStore:
        if self._catalog_store is None:
            # Lazy import to avoid circular imports
            from catmatch.infrastructure.storage.sqlite import get_catalog_store

            self._catalog_store = await get_catalog_store()
        return self._catalog_store

    @staticmethod
    def parse(raw: str | bytes) -> CatalogFixture:
        """Validate fixture JSON."""
        try:
            return CatalogFixture.model_validate(json.loads(raw))
        except json.JSONDecodeError as e:
            raise ValidationError("catalog", f"invalid JSON: {e.msg}") from e
        except PydanticValidationError as e:
            raise ValidationError("catalog", f"invalid catalog fixture: {e.error_count()} errors") from e

    async def execute(self, fixture: CatalogFixture) -> LoadCatalogResult:
        """Save categories first, then subcategories, then entries."""
        store = await self._get_catalog_store()
        result = LoadCatalogResult()

        for category in fixture.categories:
            await store.save_category(category)
            result.categories += 1
        for subcategory in fixture.subcategories:
            await store.save_subcategory(subcategory)
            result.subcategories += 1
        for entry in fixture.entries:
            await store.save_entry(entry)
            result.entries += 1

        logger.info(
            "catalog_loaded",
            categories=result.categories,
            subcategories=result.subcategories,
            entries=result.entries,
        )
        return result

    async def execute_file(self, path: Path) -> LoadCatalogResult:
        return await self.execute(self.parse(path.read_bytes()))
