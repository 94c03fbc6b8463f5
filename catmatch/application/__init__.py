"""
Application layer - DTOs, use cases and service factories.

API handlers and the management CLI reach the core services through the
factories in catmatch.application.services.
"""

from catmatch.application.dto import (
    ErrorResponse,
    MatchCandidateResponse,
    ProcessUploadRequest,
    ReviewRequest,
    StatsResponse,
    UploadResponse,
)
from catmatch.application.use_cases import LoadCatalogUseCase

__all__ = [
    "ProcessUploadRequest",
    "ReviewRequest",
    "UploadResponse",
    "MatchCandidateResponse",
    "StatsResponse",
    "ErrorResponse",
    "LoadCatalogUseCase",
]
