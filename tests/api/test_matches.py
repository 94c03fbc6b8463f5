"""API tests for the match review endpoint."""

from datetime import UTC, datetime
from unittest.mock import AsyncMock

import pytest
from httpx import AsyncClient

from catmatch.core.entities import MatchStatus, ReviewAction
from catmatch.core.exceptions import (
    CatalogEntryNotFoundError,
    InvalidTransitionError,
    MatchNotFoundError,
    ValidationError,
)


@pytest.mark.asyncio
class TestReviewMatchAPI:
    """Tests for PATCH /api/matches/{id}/status."""

    async def test_approve(self, api_client: AsyncClient, mock_review_machine, sample_candidate):
        approved = sample_candidate.model_copy(
            update={
                "status": MatchStatus.APPROVED,
                "reviewed_by": "alice",
                "reviewed_at": datetime(2024, 6, 16, tzinfo=UTC),
            }
        )
        mock_review_machine.apply = AsyncMock(return_value=approved)

        response = await api_client.patch("/api/matches/m-1/status", json={"action": "approve"})

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "approved"
        assert data["reviewed_by"] == "alice"
        mock_review_machine.apply.assert_awaited_once_with(
            "m-1",
            ReviewAction.APPROVE,
            reviewer_id="alice",
            target_material_id=None,
        )

    async def test_manual_passes_material(
        self, api_client: AsyncClient, mock_review_machine, sample_candidate
    ):
        manual = sample_candidate.model_copy(
            update={"status": MatchStatus.MANUAL, "material_id": "e-pipe"}
        )
        mock_review_machine.apply = AsyncMock(return_value=manual)

        response = await api_client.patch(
            "/api/matches/m-1/status", json={"action": "manual", "material_id": "e-pipe"}
        )

        assert response.json()["material_id"] == "e-pipe"
        assert mock_review_machine.apply.await_args.kwargs["target_material_id"] == "e-pipe"

    async def test_unknown_action(self, api_client: AsyncClient):
        response = await api_client.patch("/api/matches/m-1/status", json={"action": "maybe"})

        assert response.status_code == 422
        assert response.json()["error_code"] == "VALIDATION_ERROR"

    async def test_invalid_transition(self, api_client: AsyncClient, mock_review_machine):
        mock_review_machine.apply = AsyncMock(
            side_effect=InvalidTransitionError("m-1", "not_found", "approve")
        )

        response = await api_client.patch("/api/matches/m-1/status", json={"action": "approve"})

        assert response.status_code == 400
        data = response.json()
        assert data["error_code"] == "INVALID_TRANSITION"
        assert '"current_status": "not_found"' in data["detail"]

    async def test_manual_without_material(self, api_client: AsyncClient, mock_review_machine):
        mock_review_machine.apply = AsyncMock(
            side_effect=ValidationError("material_id", "required for manual assignment")
        )

        response = await api_client.patch("/api/matches/m-1/status", json={"action": "manual"})

        assert response.status_code == 400

    async def test_unknown_material(self, api_client: AsyncClient, mock_review_machine):
        mock_review_machine.apply = AsyncMock(side_effect=CatalogEntryNotFoundError("e-x"))

        response = await api_client.patch(
            "/api/matches/m-1/status", json={"action": "manual", "material_id": "e-x"}
        )

        assert response.status_code == 404
        assert response.json()["error_code"] == "CATALOG_ENTRY_NOT_FOUND"

    async def test_unknown_match(self, api_client: AsyncClient, mock_review_machine):
        mock_review_machine.apply = AsyncMock(side_effect=MatchNotFoundError("m-9"))

        response = await api_client.patch("/api/matches/m-9/status", json={"action": "reject"})

        assert response.status_code == 404
        assert response.json()["path"] == "/api/matches/m-9/status"
