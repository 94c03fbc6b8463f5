"""Application use cases."""

from catmatch.application.use_cases.load_catalog import (
    CatalogFixture,
    LoadCatalogResult,
    LoadCatalogUseCase,
)

__all__ = [
    "LoadCatalogUseCase",
    "LoadCatalogResult",
    "CatalogFixture",
]
