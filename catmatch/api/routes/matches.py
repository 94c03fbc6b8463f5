"""
Match review endpoints.
"""

from fastapi import APIRouter, Depends

from catmatch.api.dependencies import get_current_user, get_review_machine
from catmatch.application.dto.requests import ReviewRequest
from catmatch.application.dto.responses import MatchCandidateResponse
from catmatch.core.services import ReviewStateMachine

router = APIRouter(prefix="/api/matches", tags=["matches"])


@router.patch("/{match_id}/status", response_model=MatchCandidateResponse)
async def review_match(
    match_id: str,
    request: ReviewRequest,
    reviewer_id: str = Depends(get_current_user),
    machine: ReviewStateMachine = Depends(get_review_machine),
) -> MatchCandidateResponse:
    """
    Approve, reject or manually assign a match candidate.

    Manual assignment needs `material_id` of an active catalog entry.
    """
    candidate = await machine.apply(
        match_id,
        request.action,
        reviewer_id=reviewer_id,
        target_material_id=request.material_id,
    )
    return MatchCandidateResponse.from_entity(candidate)
