"""
Upload domain entities.

An Upload is one submitted spreadsheet; its LineItems are the rows
extracted from it.
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class UploadStatus(str, Enum):
    """Upload lifecycle status."""

    CREATED = "created"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_UPLOAD_STATUSES


TERMINAL_UPLOAD_STATUSES = frozenset(
    {UploadStatus.COMPLETED, UploadStatus.FAILED, UploadStatus.CANCELLED}
)

# Status transitions never go backward
UPLOAD_TRANSITIONS: dict[UploadStatus, frozenset[UploadStatus]] = {
    UploadStatus.CREATED: frozenset(
        {UploadStatus.PROCESSING, UploadStatus.FAILED, UploadStatus.CANCELLED}
    ),
    UploadStatus.PROCESSING: TERMINAL_UPLOAD_STATUSES,
    UploadStatus.COMPLETED: frozenset(),
    UploadStatus.FAILED: frozenset(),
    UploadStatus.CANCELLED: frozenset(),
}


def can_transition(current: UploadStatus, target: UploadStatus) -> bool:
    """Check whether an upload may move from `current` to `target`."""
    return target in UPLOAD_TRANSITIONS[current]


class Upload(BaseModel):
    """One user-submitted file and its processing progress."""

    id: str
    owner_id: str
    original_filename: str
    stored_filename: str
    file_size: int
    mime_type: str
    status: UploadStatus = UploadStatus.CREATED
    total_items: int | None = None
    processed_items: int = 0
    error_message: str | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    completed_at: datetime | None = None

    @property
    def progress(self) -> float:
        """Fraction of items processed (0.0 when total is unknown)."""
        if not self.total_items:
            return 0.0
        return min(self.processed_items / self.total_items, 1.0)


class ColumnMapping(BaseModel):
    """User-chosen mapping from spreadsheet headers to line-item fields."""

    description_column: str
    quantity_column: str | None = None
    unit_column: str | None = None

    @field_validator("quantity_column", "unit_column", mode="before")
    @classmethod
    def blank_to_none(cls, v: Any) -> str | None:
        if v is None or (isinstance(v, str) and not v.strip()):
            return None
        return v


class LineItem(BaseModel):
    """
    One row extracted from an upload.

    Row numbers are 1-based over data rows and preserve file order.
    """

    model_config = ConfigDict(frozen=True)

    id: str | None = None
    upload_id: str | None = None
    row_number: int
    original_text: str = ""
    quantity: str | None = None
    unit: str | None = None

    @field_validator("original_text", mode="before")
    @classmethod
    def coerce_text(cls, v: Any) -> str:
        """Ensure text is never None."""
        if v is None:
            return ""
        return str(v).strip()
