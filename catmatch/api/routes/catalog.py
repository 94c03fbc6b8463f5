"""
Catalog lookup endpoints.
"""

from fastapi import APIRouter, Depends, Query

from catmatch.api.dependencies import get_catalog, get_current_user
from catmatch.application.dto.responses import (
    CatalogEntryResponse,
    CatalogSearchResponse,
    CategoryResponse,
    SubcategoryResponse,
)
from catmatch.core.exceptions import CatalogEntryNotFoundError
from catmatch.core.services import CatalogIndex

router = APIRouter(
    prefix="/api/catalog",
    tags=["catalog"],
    dependencies=[Depends(get_current_user)],
)


@router.get("/search", response_model=CatalogSearchResponse)
async def search_catalog(
    q: str = Query(..., description="Text to search in entry names"),
    category_id: str | None = Query(default=None),
    limit: int | None = Query(default=None, description="Defaults to 50, capped at 100"),
    catalog: CatalogIndex = Depends(get_catalog),
) -> CatalogSearchResponse:
    """Search active catalog entries by name."""
    entries = await catalog.search(q, category_id=category_id, limit=limit)
    return CatalogSearchResponse(
        query=q,
        results=[CatalogEntryResponse.from_entity(e) for e in entries],
        total=len(entries),
    )


@router.get("/categories", response_model=list[CategoryResponse])
async def list_categories(
    catalog: CatalogIndex = Depends(get_catalog),
) -> list[CategoryResponse]:
    return [CategoryResponse.from_entity(c) for c in await catalog.list_categories()]


@router.get("/subcategories", response_model=list[SubcategoryResponse])
async def list_subcategories(
    category_id: str | None = Query(default=None),
    catalog: CatalogIndex = Depends(get_catalog),
) -> list[SubcategoryResponse]:
    subcategories = await catalog.list_subcategories(category_id)
    return [SubcategoryResponse.from_entity(s) for s in subcategories]


@router.get("/code/{code}", response_model=CatalogEntryResponse)
async def get_entry_by_code(
    code: str,
    catalog: CatalogIndex = Depends(get_catalog),
) -> CatalogEntryResponse:
    """Look up an entry by its external code."""
    entry = await catalog.get_by_code(code)
    if entry is None:
        raise CatalogEntryNotFoundError(code, field="code")
    return CatalogEntryResponse.from_entity(entry)


@router.get("/{entry_id}", response_model=CatalogEntryResponse)
async def get_entry(
    entry_id: str,
    catalog: CatalogIndex = Depends(get_catalog),
) -> CatalogEntryResponse:
    """Get an entry by id, including inactive entries."""
    return CatalogEntryResponse.from_entity(await catalog.get_entry(entry_id))
