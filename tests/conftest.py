"""Pytest configuration and fixtures."""

from collections.abc import Generator

import pytest

from catmatch.config import reset_settings
from catmatch.core.entities import CatalogEntry, Category, Subcategory


@pytest.fixture(autouse=True)
def _fresh_settings() -> Generator[None, None, None]:
    """Drop cached settings so env patches in one test don't leak."""
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def sample_category() -> Category:
    return Category(id="cat-1", code="ELE", name="Electrical")


@pytest.fixture
def sample_subcategory() -> Subcategory:
    return Subcategory(id="sub-1", code="ELE-CAB", name="Cables", category_id="cat-1")


@pytest.fixture
def sample_entries() -> list[CatalogEntry]:
    """A small catalog with one inactive entry."""
    return [
        CatalogEntry(
            id="e-cable",
            code="MAT-001",
            name="Cabo Flexivel 2,5mm",
            unit="M",
            category_id="cat-1",
            subcategory_id="sub-1",
            keywords=("fio", "condutor"),
        ),
        CatalogEntry(
            id="e-cable-10",
            code="MAT-002",
            name="Cabo Flexivel 10mm",
            unit="M",
            category_id="cat-1",
            subcategory_id="sub-1",
        ),
        CatalogEntry(
            id="e-pipe",
            code="MAT-003",
            name="Tubo PVC Soldavel 25mm",
            unit="UN",
            category_id="cat-2",
            keywords=("cano",),
        ),
        CatalogEntry(
            id="e-old",
            code="MAT-004",
            name="Cabo Rigido 4mm",
            unit="M",
            active=False,
            category_id="cat-1",
        ),
    ]
