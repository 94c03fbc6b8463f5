"""Unit tests for the review state machine."""

from datetime import UTC, datetime

import pytest

from catmatch.core.entities import (
    AuditAction,
    MatchCandidate,
    MatchStatus,
    ReviewAction,
    UploadStatus,
)
from catmatch.core.exceptions import (
    InvalidTransitionError,
    MatchNotFoundError,
    ValidationError,
)
from catmatch.core.services import ReviewStateMachine, next_status

REVIEWED_AT = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)


@pytest.fixture
def machine(stores) -> ReviewStateMachine:
    stores.add_upload(status=UploadStatus.COMPLETED, total_items=3, processed_items=3)
    return ReviewStateMachine(
        match_store=stores.matches,
        upload_store=stores.uploads,
        catalog_store=stores.catalog,
        audit_store=stores.audit,
        clock=lambda: REVIEWED_AT,
    )


def _candidate(stores, status: MatchStatus, material_id: str | None = None, row: int = 1) -> MatchCandidate:
    return stores.matches.put(
        MatchCandidate(
            upload_id="up-1",
            line_item_id=f"li-{row}",
            row_number=row,
            confidence_score=55.0 if material_id else 0.0,
            status=status,
            original_text="cabo flexivel 2,5",
            material_id=material_id,
            matched_text="Cabo Flexivel 2,5mm" if material_id else None,
        )
    )


class TestTransitionTable:
    """Allowed (status, action) pairs."""

    @pytest.mark.parametrize(
        "current,action,expected",
        [
            (MatchStatus.PENDING, ReviewAction.APPROVE, MatchStatus.APPROVED),
            (MatchStatus.PENDING, ReviewAction.REJECT, MatchStatus.REJECTED),
            (MatchStatus.PENDING, ReviewAction.MANUAL, MatchStatus.MANUAL),
            (MatchStatus.APPROVED, ReviewAction.REJECT, MatchStatus.REJECTED),
            (MatchStatus.REJECTED, ReviewAction.APPROVE, MatchStatus.APPROVED),
            (MatchStatus.REJECTED, ReviewAction.MANUAL, MatchStatus.MANUAL),
            (MatchStatus.NOT_FOUND, ReviewAction.MANUAL, MatchStatus.MANUAL),
            (MatchStatus.MANUAL, ReviewAction.REJECT, MatchStatus.REJECTED),
            (MatchStatus.MANUAL, ReviewAction.MANUAL, MatchStatus.MANUAL),
        ],
    )
    def test_allowed(self, current, action, expected):
        assert next_status(current, action) == expected

    @pytest.mark.parametrize(
        "current,action",
        [
            (MatchStatus.APPROVED, ReviewAction.APPROVE),
            (MatchStatus.APPROVED, ReviewAction.MANUAL),
            (MatchStatus.REJECTED, ReviewAction.REJECT),
            (MatchStatus.NOT_FOUND, ReviewAction.APPROVE),
            (MatchStatus.NOT_FOUND, ReviewAction.REJECT),
            (MatchStatus.MANUAL, ReviewAction.APPROVE),
        ],
    )
    def test_forbidden(self, current, action):
        assert next_status(current, action) is None


@pytest.mark.asyncio
class TestApply:
    """Applying review actions to stored candidates."""

    async def test_approve_pending(self, stores, machine):
        candidate = _candidate(stores, MatchStatus.PENDING, material_id="e-cable")

        result = await machine.apply(candidate.id, ReviewAction.APPROVE, reviewer_id="alice")

        assert result.status == MatchStatus.APPROVED
        assert result.material_id == "e-cable"
        assert result.reviewed_by == "alice"
        assert result.reviewed_at == REVIEWED_AT
        assert stores.matches.candidates[candidate.id].status == MatchStatus.APPROVED

    async def test_review_is_audited(self, stores, machine):
        candidate = _candidate(stores, MatchStatus.PENDING, material_id="e-cable")

        await machine.apply(candidate.id, ReviewAction.REJECT, reviewer_id="alice")

        assert len(stores.audit.entries) == 1
        entry = stores.audit.entries[0]
        assert entry.actor_id == "alice"
        assert entry.action == AuditAction.REVIEW_MATCH
        assert "pending->rejected" in entry.detail

    async def test_reject_keeps_suggestion(self, stores, machine):
        candidate = _candidate(stores, MatchStatus.PENDING, material_id="e-cable")

        result = await machine.apply(candidate.id, ReviewAction.REJECT, reviewer_id="alice")

        assert result.status == MatchStatus.REJECTED
        assert result.material_id == "e-cable"

    async def test_manual_assigns_active_entry(self, stores, machine):
        candidate = _candidate(stores, MatchStatus.NOT_FOUND)

        result = await machine.apply(
            candidate.id, ReviewAction.MANUAL, reviewer_id="alice", target_material_id="e-pipe"
        )

        assert result.status == MatchStatus.MANUAL
        assert result.material_id == "e-pipe"
        assert result.matched_text == "Tubo PVC Soldavel 25mm"
        assert "material=e-pipe" in stores.audit.entries[0].detail

    async def test_manual_reassignment(self, stores, machine):
        candidate = _candidate(stores, MatchStatus.MANUAL, material_id="e-cable")

        result = await machine.apply(
            candidate.id, ReviewAction.MANUAL, reviewer_id="alice", target_material_id="e-cable-10"
        )

        assert result.material_id == "e-cable-10"

    async def test_manual_to_inactive_entry_is_rejected(self, stores, machine):
        candidate = _candidate(stores, MatchStatus.PENDING, material_id="e-cable")

        with pytest.raises(ValidationError):
            await machine.apply(
                candidate.id, ReviewAction.MANUAL, reviewer_id="alice", target_material_id="e-old"
            )

        stored = stores.matches.candidates[candidate.id]
        assert stored.status == MatchStatus.PENDING
        assert stored.material_id == "e-cable"
        assert stored.reviewed_by is None
        assert stores.audit.entries == []

    async def test_manual_to_unknown_entry_is_rejected(self, stores, machine):
        candidate = _candidate(stores, MatchStatus.NOT_FOUND)

        with pytest.raises(ValidationError):
            await machine.apply(
                candidate.id, ReviewAction.MANUAL, reviewer_id="alice", target_material_id="missing"
            )

    async def test_manual_requires_target(self, stores, machine):
        candidate = _candidate(stores, MatchStatus.NOT_FOUND)

        with pytest.raises(ValidationError):
            await machine.apply(candidate.id, ReviewAction.MANUAL, reviewer_id="alice")

    async def test_target_only_accepted_for_manual(self, stores, machine):
        candidate = _candidate(stores, MatchStatus.PENDING, material_id="e-cable")

        with pytest.raises(ValidationError):
            await machine.apply(
                candidate.id, ReviewAction.APPROVE, reviewer_id="alice", target_material_id="e-pipe"
            )

    async def test_approve_not_found_is_invalid(self, stores, machine):
        candidate = _candidate(stores, MatchStatus.NOT_FOUND)

        with pytest.raises(InvalidTransitionError) as exc_info:
            await machine.apply(candidate.id, ReviewAction.APPROVE, reviewer_id="alice")

        assert exc_info.value.details["current_status"] == "not_found"
        assert stores.matches.candidates[candidate.id].status == MatchStatus.NOT_FOUND

    async def test_approve_rejected_without_material_is_invalid(self, stores, machine):
        candidate = _candidate(stores, MatchStatus.REJECTED)

        with pytest.raises(InvalidTransitionError):
            await machine.apply(candidate.id, ReviewAction.APPROVE, reviewer_id="alice")

    async def test_approve_rejected_with_material(self, stores, machine):
        candidate = _candidate(stores, MatchStatus.REJECTED, material_id="e-cable")

        result = await machine.apply(candidate.id, ReviewAction.APPROVE, reviewer_id="alice")

        assert result.status == MatchStatus.APPROVED

    async def test_unknown_match(self, machine):
        with pytest.raises(MatchNotFoundError):
            await machine.apply("missing", ReviewAction.APPROVE, reviewer_id="alice")

    async def test_other_owner_cannot_review(self, stores, machine):
        candidate = _candidate(stores, MatchStatus.PENDING, material_id="e-cable")

        with pytest.raises(MatchNotFoundError):
            await machine.apply(candidate.id, ReviewAction.APPROVE, reviewer_id="mallory")

        assert stores.matches.candidates[candidate.id].status == MatchStatus.PENDING

    async def test_reviewer_identity_required(self, stores, machine):
        candidate = _candidate(stores, MatchStatus.PENDING, material_id="e-cable")

        with pytest.raises(ValidationError):
            await machine.apply(candidate.id, ReviewAction.APPROVE, reviewer_id=" ")

    async def test_concurrent_review_conflict(self, stores, machine):
        candidate = _candidate(stores, MatchStatus.PENDING, material_id="e-cable")
        original_get = stores.matches.get_candidate
        calls = 0

        async def get_then_race(match_id):
            nonlocal calls
            calls += 1
            current = await original_get(match_id)
            if calls == 1:
                # Another reviewer rejects right after we read
                stores.matches.candidates[match_id] = current.model_copy(
                    update={"status": MatchStatus.REJECTED, "reviewed_by": "bob"}
                )
            return current

        stores.matches.get_candidate = get_then_race

        with pytest.raises(InvalidTransitionError) as exc_info:
            await machine.apply(candidate.id, ReviewAction.APPROVE, reviewer_id="alice")

        assert exc_info.value.details["current_status"] == "rejected"
        assert stores.matches.candidates[candidate.id].reviewed_by == "bob"
        assert stores.audit.entries == []
