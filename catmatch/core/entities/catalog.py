"""
Catalog domain entities.

Reference materials that uploaded line items are matched against.
The catalog is owned by the sync job; this pipeline only reads it.
"""

from pydantic import BaseModel, ConfigDict, Field


class Category(BaseModel):
    """Top-level catalog category."""

    model_config = ConfigDict(frozen=True)

    id: str
    code: str
    name: str
    description: str | None = None


class Subcategory(BaseModel):
    """Catalog subcategory, always nested under a category."""

    model_config = ConfigDict(frozen=True)

    id: str
    code: str
    name: str
    description: str | None = None
    category_id: str


class CatalogEntry(BaseModel):
    """
    A canonical reference material.

    `code` is the stable external identifier. Entries may be deactivated
    by the sync job but are never deleted, so match candidates can keep
    pointing at them.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    code: str
    name: str
    unit: str | None = None
    active: bool = True
    category_id: str
    subcategory_id: str | None = None
    keywords: tuple[str, ...] = Field(default_factory=tuple)
