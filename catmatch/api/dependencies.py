"""
Dependency injection container for FastAPI.

Provides service instances and the caller identity to route handlers.
Tests replace these through app.dependency_overrides.
"""

from fastapi import Header, HTTPException, status

from catmatch.application.services import (
    get_catalog_index,
    get_processing_orchestrator,
    get_review_state_machine,
    get_upload_registry,
)
from catmatch.config import Settings, get_settings
from catmatch.core.services import (
    CatalogIndex,
    ProcessingOrchestrator,
    ReviewStateMachine,
    UploadRegistry,
)


def get_app_settings() -> Settings:
    """Get application settings."""
    return get_settings()


async def get_current_user(
    x_user_id: str | None = Header(default=None, alias="X-User-Id"),
) -> str:
    """
    Caller identity.

    Authentication happens upstream; the gateway forwards the
    authenticated user id in X-User-Id.
    """
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-User-Id header",
        )
    return x_user_id.strip()


async def get_registry() -> UploadRegistry:
    return await get_upload_registry()


async def get_orchestrator() -> ProcessingOrchestrator:
    return await get_processing_orchestrator()


async def get_review_machine() -> ReviewStateMachine:
    return await get_review_state_machine()


async def get_catalog() -> CatalogIndex:
    return await get_catalog_index()
