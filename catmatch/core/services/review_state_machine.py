"""
Review state machine for match candidates.

Every transition is a human action: it needs a reviewer identity, stamps
the review timestamp and is recorded in the audit log.

    pending   --approve--> approved
    pending   --reject---> rejected
    pending   --manual---> manual
    approved  --reject---> rejected
    rejected  --approve--> approved   (only if a material is attached)
    rejected  --manual---> manual
    not_found --manual---> manual
    manual    --reject---> rejected
    manual    --manual---> manual     (pick a different entry)

Anything else raises InvalidTransitionError and leaves the candidate as is.
"""

from collections.abc import Callable
from datetime import UTC, datetime
from typing import assert_never

from catmatch.config import get_logger
from catmatch.core.entities.audit import AuditAction, AuditLogEntry
from catmatch.core.entities.match import MatchCandidate, MatchStatus, ReviewAction
from catmatch.core.exceptions import (
    InvalidTransitionError,
    MatchNotFoundError,
    ValidationError,
)
from catmatch.core.interfaces.storage import (
    IAuditLogStore,
    ICatalogStore,
    IMatchStore,
    IUploadStore,
)

logger = get_logger(__name__)


def next_status(current: MatchStatus, action: ReviewAction) -> MatchStatus | None:
    """Target status for an action, or None when the action is not allowed."""
    match action:
        case ReviewAction.APPROVE:
            allowed = {MatchStatus.PENDING, MatchStatus.REJECTED}
            target = MatchStatus.APPROVED
        case ReviewAction.REJECT:
            allowed = {MatchStatus.PENDING, MatchStatus.APPROVED, MatchStatus.MANUAL}
            target = MatchStatus.REJECTED
        case ReviewAction.MANUAL:
            allowed = {
                MatchStatus.PENDING,
                MatchStatus.REJECTED,
                MatchStatus.NOT_FOUND,
                MatchStatus.MANUAL,
            }
            target = MatchStatus.MANUAL
        case _:
            assert_never(action)

    return target if current in allowed else None


class ReviewStateMachine:
    """Applies review actions to persisted match candidates."""

    def __init__(
        self,
        match_store: IMatchStore,
        upload_store: IUploadStore,
        catalog_store: ICatalogStore,
        audit_store: IAuditLogStore,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._matches = match_store
        self._uploads = upload_store
        self._catalog = catalog_store
        self._audit = audit_store
        self._clock = clock or (lambda: datetime.now(UTC))

    async def apply(
        self,
        match_id: str,
        action: ReviewAction,
        reviewer_id: str,
        target_material_id: str | None = None,
    ) -> MatchCandidate:
        """
        Apply a review action.

        Args:
            match_id: Candidate to review.
            action: approve, reject or manual.
            reviewer_id: Identity of the reviewer; must own the upload.
            target_material_id: Catalog entry id, required for manual.

        Returns:
            The updated candidate.

        Raises:
            MatchNotFoundError: Unknown candidate, or not visible to the reviewer.
            InvalidTransitionError: Action not allowed from the current status.
            ValidationError: Missing/unknown/inactive target entry.
        """
        if not reviewer_id or not reviewer_id.strip():
            raise ValidationError("reviewer_id", "a reviewer identity is required")

        candidate = await self._matches.get_candidate(match_id)
        if candidate is None:
            raise MatchNotFoundError(match_id)

        upload = await self._uploads.get_upload(candidate.upload_id)
        if upload is None or upload.owner_id != reviewer_id:
            raise MatchNotFoundError(match_id)

        target = next_status(candidate.status, action)
        if target is None:
            raise InvalidTransitionError(match_id, candidate.status.value, action.value)

        updates: dict = {
            "status": target,
            "reviewed_at": self._clock(),
            "reviewed_by": reviewer_id,
        }

        if action == ReviewAction.MANUAL:
            updates.update(await self._resolve_target(target_material_id))
        elif target_material_id is not None:
            raise ValidationError(
                "material_id",
                "a target entry is only accepted for manual assignment",
                target_material_id,
            )

        if target == MatchStatus.APPROVED and candidate.material_id is None:
            raise InvalidTransitionError(match_id, candidate.status.value, action.value)

        updated = candidate.model_copy(update=updates)
        if not await self._matches.update_review(updated, expected_status=candidate.status):
            current = await self._matches.get_candidate(match_id)
            current_status = current.status.value if current else candidate.status.value
            logger.warning(
                "review_conflict",
                match_id=match_id,
                expected_status=candidate.status.value,
                current_status=current_status,
            )
            raise InvalidTransitionError(match_id, current_status, action.value)

        await self._audit.append(
            AuditLogEntry(
                actor_id=reviewer_id,
                action=AuditAction.REVIEW_MATCH,
                detail=(
                    f"match={match_id} upload={candidate.upload_id} row={candidate.row_number} "
                    f"{candidate.status.value}->{target.value}"
                    + (f" material={updated.material_id}" if action == ReviewAction.MANUAL else "")
                ),
            )
        )

        logger.info(
            "match_reviewed",
            match_id=match_id,
            upload_id=candidate.upload_id,
            action=action.value,
            from_status=candidate.status.value,
            to_status=target.value,
            reviewer_id=reviewer_id,
        )
        return updated

    async def _resolve_target(self, target_material_id: str | None) -> dict:
        """Validate a manual target and return the fields it sets."""
        if not target_material_id:
            raise ValidationError("material_id", "manual assignment requires a catalog entry")

        entry = await self._catalog.get_entry(target_material_id)
        if entry is None:
            raise ValidationError(
                "material_id", "catalog entry does not exist", target_material_id
            )
        if not entry.active:
            raise ValidationError(
                "material_id", "catalog entry is inactive", target_material_id
            )

        return {"material_id": entry.id, "matched_text": entry.name}
