"""
Health check endpoints.
"""

import time

from fastapi import APIRouter, Depends

from catmatch.api.dependencies import get_app_settings, get_orchestrator
from catmatch.application.dto.responses import HealthResponse
from catmatch.config import Settings, get_logger
from catmatch.core.services import ProcessingOrchestrator
from catmatch.infrastructure.storage.sqlite import get_connection

logger = get_logger(__name__)

router = APIRouter(tags=["health"])

# Track startup time
_start_time = time.time()


@router.get("/health", response_model=HealthResponse)
async def health_check(settings: Settings = Depends(get_app_settings)) -> HealthResponse:
    """Liveness probe; touches no dependencies."""
    return HealthResponse(
        status="healthy",
        version=settings.app_version,
        uptime_seconds=time.time() - _start_time,
    )


@router.get("/api/health", response_model=HealthResponse)
async def detailed_health(
    settings: Settings = Depends(get_app_settings),
    orchestrator: ProcessingOrchestrator = Depends(get_orchestrator),
) -> HealthResponse:
    """Readiness: database connectivity and background processing load."""
    database = True
    try:
        async with get_connection() as conn:
            await conn.execute("SELECT 1")
    except Exception as e:
        logger.warning("health_db_check_failed", error=str(e))
        database = False

    return HealthResponse(
        status="healthy" if database else "degraded",
        version=settings.app_version,
        uptime_seconds=time.time() - _start_time,
        database=database,
        running_uploads=orchestrator.task_manager.running_count,
    )
