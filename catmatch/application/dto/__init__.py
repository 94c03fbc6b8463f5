"""Data Transfer Objects for API layer.

Request DTOs: Validate and parse incoming API requests.
Response DTOs: Structure and serialize API responses.
"""

from catmatch.application.dto.requests import ProcessUploadRequest, ReviewRequest
from catmatch.application.dto.responses import (
    CatalogEntryResponse,
    CatalogSearchResponse,
    CategoryResponse,
    ColumnsResponse,
    ErrorResponse,
    HealthResponse,
    MatchCandidateResponse,
    MatchListResponse,
    StartProcessingResponse,
    StatsResponse,
    SubcategoryResponse,
    UploadListResponse,
    UploadResponse,
)

__all__ = [
    # Requests
    "ProcessUploadRequest",
    "ReviewRequest",
    # Responses
    "UploadResponse",
    "UploadListResponse",
    "ColumnsResponse",
    "StartProcessingResponse",
    "MatchCandidateResponse",
    "MatchListResponse",
    "CatalogEntryResponse",
    "CatalogSearchResponse",
    "CategoryResponse",
    "SubcategoryResponse",
    "StatsResponse",
    "HealthResponse",
    "ErrorResponse",
]
