"""Fixtures for API tests: service dependencies replaced with mocks."""

from collections.abc import AsyncGenerator
from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import ASGITransport, AsyncClient

from catmatch.api.dependencies import (
    get_catalog,
    get_orchestrator,
    get_registry,
    get_review_machine,
)
from catmatch.api.main import app
from catmatch.core.entities import MatchCandidate, MatchStatus, Upload, UploadStatus

CREATED_AT = datetime(2024, 6, 15, 12, 0, tzinfo=UTC)


@pytest.fixture
def sample_upload() -> Upload:
    return Upload(
        id="up-1",
        owner_id="alice",
        original_filename="pedido.csv",
        stored_filename="up-1.csv",
        file_size=42,
        mime_type="text/csv",
        status=UploadStatus.PROCESSING,
        total_items=4,
        processed_items=1,
        created_at=CREATED_AT,
        updated_at=CREATED_AT,
    )


@pytest.fixture
def sample_candidate() -> MatchCandidate:
    return MatchCandidate(
        id="m-1",
        upload_id="up-1",
        line_item_id="li-1",
        row_number=1,
        confidence_score=91.5,
        status=MatchStatus.PENDING,
        original_text="cabo flex 2,5",
        matched_text="Cabo Flexivel 2,5mm",
        material_id="e-cable",
        created_at=CREATED_AT,
    )


@pytest.fixture
def mock_registry(sample_upload):
    registry = AsyncMock()
    registry.submit_upload = AsyncMock(return_value=sample_upload)
    registry.get_upload = AsyncMock(return_value=sample_upload)
    registry.list_uploads = AsyncMock(return_value=[sample_upload])
    return registry


@pytest.fixture
def mock_orchestrator():
    orchestrator = AsyncMock()
    orchestrator.task_manager = MagicMock()
    orchestrator.task_manager.running_count = 0
    return orchestrator


@pytest.fixture
def mock_review_machine():
    return AsyncMock()


@pytest.fixture
def mock_catalog():
    return AsyncMock()


@pytest.fixture
async def api_client(
    mock_registry,
    mock_orchestrator,
    mock_review_machine,
    mock_catalog,
) -> AsyncGenerator[AsyncClient, None]:
    """Async client with all service dependencies overridden."""
    app.dependency_overrides[get_registry] = lambda: mock_registry
    app.dependency_overrides[get_orchestrator] = lambda: mock_orchestrator
    app.dependency_overrides[get_review_machine] = lambda: mock_review_machine
    app.dependency_overrides[get_catalog] = lambda: mock_catalog
    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
        headers={"X-User-Id": "alice"},
    ) as ac:
        yield ac
    app.dependency_overrides.clear()
