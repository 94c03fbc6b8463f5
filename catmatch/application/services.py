"""
Service factory functions for dependency injection.

Wires the SQLite stores and the local file store to the core services,
using values from settings. API dependencies and the CLI import from here.
"""

from functools import partial
from typing import TYPE_CHECKING

from catmatch.config import get_settings
from catmatch.core.services import (
    CatalogIndex,
    IngestionParser,
    ProcessingOrchestrator,
    ProcessingTaskManager,
    ReviewStateMachine,
    UploadRegistry,
    create_match_strategy,
)

if TYPE_CHECKING:
    from catmatch.core.interfaces import (
        ICatalogStore,
        IFileStore,
        IUploadStore,
    )


# Singleton service instances
_catalog_index: CatalogIndex | None = None
_upload_registry: UploadRegistry | None = None
_review_state_machine: ReviewStateMachine | None = None
_processing_orchestrator: ProcessingOrchestrator | None = None


async def get_catalog_index(catalog_store: "ICatalogStore | None" = None) -> CatalogIndex:
    """Get or create the CatalogIndex."""
    global _catalog_index

    if _catalog_index is not None and catalog_store is None:
        return _catalog_index

    # Lazy import infrastructure to avoid circular imports
    from catmatch.infrastructure.storage.sqlite import get_catalog_store

    settings = get_settings()
    index = CatalogIndex(
        catalog_store or await get_catalog_store(),
        default_limit=settings.catalog.search_default_limit,
        max_limit=settings.catalog.search_max_limit,
    )

    if catalog_store is None:
        _catalog_index = index
    return index


async def get_upload_registry(
    upload_store: "IUploadStore | None" = None,
    file_store: "IFileStore | None" = None,
) -> UploadRegistry:
    """Get or create the UploadRegistry."""
    global _upload_registry

    if _upload_registry is not None and upload_store is None and file_store is None:
        return _upload_registry

    from catmatch.infrastructure.storage import get_file_store
    from catmatch.infrastructure.storage.sqlite import (
        get_audit_log_store,
        get_catalog_store,
        get_match_store,
        get_upload_store,
    )

    settings = get_settings()
    registry = UploadRegistry(
        upload_store=upload_store or await get_upload_store(),
        match_store=await get_match_store(),
        catalog_store=await get_catalog_store(),
        audit_store=await get_audit_log_store(),
        file_store=file_store or get_file_store(),
        parser=IngestionParser(),
        max_upload_size=settings.api.max_upload_size,
        allowed_mime_types=settings.api.allowed_mime_types,
    )

    if upload_store is None and file_store is None:
        _upload_registry = registry
    return registry


async def get_review_state_machine() -> ReviewStateMachine:
    """Get or create the ReviewStateMachine."""
    global _review_state_machine

    if _review_state_machine is not None:
        return _review_state_machine

    from catmatch.infrastructure.storage.sqlite import (
        get_audit_log_store,
        get_catalog_store,
        get_match_store,
        get_upload_store,
    )

    _review_state_machine = ReviewStateMachine(
        match_store=await get_match_store(),
        upload_store=await get_upload_store(),
        catalog_store=await get_catalog_store(),
        audit_store=await get_audit_log_store(),
    )
    return _review_state_machine


async def get_processing_orchestrator() -> ProcessingOrchestrator:
    """
    Get or create the ProcessingOrchestrator.

    The orchestrator owns the process-wide ProcessingTaskManager, so it is
    always a singleton.
    """
    global _processing_orchestrator

    if _processing_orchestrator is not None:
        return _processing_orchestrator

    from catmatch.infrastructure.storage import get_file_store
    from catmatch.infrastructure.storage.sqlite import (
        get_audit_log_store,
        get_match_store,
        get_upload_store,
    )

    settings = get_settings()
    _processing_orchestrator = ProcessingOrchestrator(
        upload_store=await get_upload_store(),
        match_store=await get_match_store(),
        catalog_index=await get_catalog_index(),
        audit_store=await get_audit_log_store(),
        file_store=get_file_store(),
        parser=IngestionParser(),
        strategy_factory=partial(
            create_match_strategy,
            top_k=settings.catalog.match_top_k,
            min_score=settings.catalog.match_min_score,
        ),
        task_manager=ProcessingTaskManager(settings.processing.max_concurrent_uploads),
        auto_approve_threshold=settings.processing.auto_approve_threshold,
        match_timeout=settings.processing.match_timeout,
        persist_timeout=settings.processing.persist_timeout,
    )
    return _processing_orchestrator


async def shutdown_services() -> None:
    """Stop background processing and drop service singletons."""
    global _catalog_index, _upload_registry, _review_state_machine, _processing_orchestrator

    if _processing_orchestrator is not None:
        await _processing_orchestrator.task_manager.shutdown()

    _catalog_index = None
    _upload_registry = None
    _review_state_machine = None
    _processing_orchestrator = None
