"""Response DTOs for API endpoints.

Pydantic v2 models for API response serialization.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from catmatch.core.entities.catalog import CatalogEntry, Category, Subcategory
from catmatch.core.entities.match import MatchCandidate, MatchStatus
from catmatch.core.entities.stats import OwnerStats
from catmatch.core.entities.upload import Upload, UploadStatus


class UploadResponse(BaseModel):
    """Upload with its processing progress."""

    id: str = Field(..., description="Upload ID")
    original_filename: str = Field(..., description="Filename as submitted")
    file_size: int = Field(..., description="Size in bytes")
    mime_type: str = Field(..., description="Declared MIME type")
    status: UploadStatus = Field(..., description="Lifecycle status")
    total_items: int | None = Field(default=None, description="Rows to match (set on start)")
    processed_items: int = Field(default=0, description="Rows matched so far")
    progress: float = Field(default=0.0, description="processed / total, 0.0 to 1.0")
    error_message: str | None = Field(default=None, description="Why processing failed")
    created_at: datetime
    updated_at: datetime
    completed_at: datetime | None = None

    @classmethod
    def from_entity(cls, upload: Upload) -> "UploadResponse":
        return cls(
            id=upload.id,
            original_filename=upload.original_filename,
            file_size=upload.file_size,
            mime_type=upload.mime_type,
            status=upload.status,
            total_items=upload.total_items,
            processed_items=upload.processed_items,
            progress=round(upload.progress, 4),
            error_message=upload.error_message,
            created_at=upload.created_at,
            updated_at=upload.updated_at,
            completed_at=upload.completed_at,
        )


class UploadListResponse(BaseModel):
    """An owner's uploads, newest first."""

    uploads: list[UploadResponse] = Field(default_factory=list)
    total: int = 0


class ColumnsResponse(BaseModel):
    """Header columns of an uploaded file."""

    upload_id: str
    columns: list[str] = Field(default_factory=list)


class StartProcessingResponse(BaseModel):
    """Processing accepted; poll the upload for progress."""

    upload_id: str
    total_items: int
    status: UploadStatus = UploadStatus.PROCESSING


class MatchCandidateResponse(BaseModel):
    """Match candidate for one line item."""

    id: str
    upload_id: str
    row_number: int
    original_text: str
    confidence_score: float = Field(..., description="0 to 100")
    status: MatchStatus
    matched_text: str | None = None
    material_id: str | None = None
    reviewed_at: datetime | None = None
    reviewed_by: str | None = None

    @classmethod
    def from_entity(cls, candidate: MatchCandidate) -> "MatchCandidateResponse":
        return cls(
            id=candidate.id or "",
            upload_id=candidate.upload_id,
            row_number=candidate.row_number,
            original_text=candidate.original_text,
            confidence_score=candidate.confidence_score,
            status=candidate.status,
            matched_text=candidate.matched_text,
            material_id=candidate.material_id,
            reviewed_at=candidate.reviewed_at,
            reviewed_by=candidate.reviewed_by,
        )


class MatchListResponse(BaseModel):
    """Candidates of an upload in row order."""

    upload_id: str
    matches: list[MatchCandidateResponse] = Field(default_factory=list)
    total: int = 0


class CatalogEntryResponse(BaseModel):
    """Catalog entry."""

    id: str
    code: str
    name: str
    unit: str | None = None
    active: bool = True
    category_id: str
    subcategory_id: str | None = None

    @classmethod
    def from_entity(cls, entry: CatalogEntry) -> "CatalogEntryResponse":
        return cls(
            id=entry.id,
            code=entry.code,
            name=entry.name,
            unit=entry.unit,
            active=entry.active,
            category_id=entry.category_id,
            subcategory_id=entry.subcategory_id,
        )


class CatalogSearchResponse(BaseModel):
    """Ranked catalog search results."""

    query: str
    results: list[CatalogEntryResponse] = Field(default_factory=list)
    total: int = 0


class CategoryResponse(BaseModel):
    id: str
    code: str
    name: str
    description: str | None = None

    @classmethod
    def from_entity(cls, category: Category) -> "CategoryResponse":
        return cls(**category.model_dump())


class SubcategoryResponse(BaseModel):
    id: str
    code: str
    name: str
    description: str | None = None
    category_id: str

    @classmethod
    def from_entity(cls, subcategory: Subcategory) -> "SubcategoryResponse":
        return cls(**subcategory.model_dump())


class StatsResponse(BaseModel):
    """Dashboard aggregates for the current user."""

    monthly_uploads: int = Field(..., description="Uploads in the last 30 days")
    processed_items: int = Field(..., description="Rows processed across all uploads")
    pending_review: int = Field(..., description="Candidates awaiting review")
    match_rate: int = Field(..., description="Approved + manual share of all candidates, %")

    @classmethod
    def from_entity(cls, stats: OwnerStats) -> "StatsResponse":
        return cls(**stats.model_dump())


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(..., description="Overall status: healthy or degraded")
    version: str
    uptime_seconds: float = 0.0
    database: bool | None = Field(default=None, description="Database reachable")
    running_uploads: int | None = Field(default=None, description="Uploads being processed now")


class ErrorResponse(BaseModel):
    """Standardized error response DTO.

    Every error response includes:
    - error_code: machine-readable code (e.g. UPLOAD_NOT_FOUND)
    - message: human-readable description
    - hint: suggested recovery action
    - path: request path that triggered the error
    """

    error_code: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error description")
    hint: str | None = Field(default=None, description="Suggested recovery action")
    detail: str | None = Field(default=None, description="Additional details")
    path: str | None = Field(default=None, description="Request path")
    timestamp: datetime = Field(default_factory=datetime.now)
