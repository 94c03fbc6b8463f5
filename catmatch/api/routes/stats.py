"""
Dashboard statistics endpoint.
"""

from fastapi import APIRouter, Depends

from catmatch.api.dependencies import get_current_user, get_registry
from catmatch.application.dto.responses import StatsResponse
from catmatch.core.services import UploadRegistry

router = APIRouter(prefix="/api/stats", tags=["stats"])


@router.get("", response_model=StatsResponse)
async def get_stats(
    owner_id: str = Depends(get_current_user),
    registry: UploadRegistry = Depends(get_registry),
) -> StatsResponse:
    """Uploads this month, processed items, pending reviews and match rate."""
    return StatsResponse.from_entity(await registry.get_stats(owner_id))
