"""
Core business logic services.

Layer-pure services that depend only on:
- catmatch/core/entities/*
- catmatch/core/interfaces/*
- catmatch/core/exceptions.py

NO infrastructure imports. All dependencies injected via constructor.
"""

from catmatch.core.services.catalog_index import CatalogIndex
from catmatch.core.services.catalog_matcher import (
    TokenOverlapStrategy,
    create_match_strategy,
    normalize_text,
    tokenize,
)
from catmatch.core.services.ingestion_parser import SUPPORTED_MIME_TYPES, IngestionParser
from catmatch.core.services.processing_orchestrator import ProcessingOrchestrator, StartResult
from catmatch.core.services.processing_tasks import ProcessingTaskManager
from catmatch.core.services.review_state_machine import ReviewStateMachine, next_status
from catmatch.core.services.upload_registry import EXPORT_COLUMNS, UploadRegistry

__all__ = [
    # Ingestion
    "IngestionParser",
    "SUPPORTED_MIME_TYPES",
    # Matching
    "TokenOverlapStrategy",
    "create_match_strategy",
    "normalize_text",
    "tokenize",
    # Catalog
    "CatalogIndex",
    # Processing
    "ProcessingOrchestrator",
    "ProcessingTaskManager",
    "StartResult",
    # Review
    "ReviewStateMachine",
    "next_status",
    # Registry
    "UploadRegistry",
    "EXPORT_COLUMNS",
]
