"""Audit log entities. Entries are append-only."""

from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, Field


class AuditAction(str, Enum):
    """Kinds of state-changing actions recorded in the audit log."""

    UPLOAD_FILE = "upload_file"
    START_PROCESSING = "start_processing"
    CANCEL_UPLOAD = "cancel_upload"
    REVIEW_MATCH = "review_match"
    DOWNLOAD_RESULT = "download_result"
    PROCESSING_COMPLETED = "processing_completed"
    PROCESSING_FAILED = "processing_failed"


class AuditLogEntry(BaseModel):
    """One recorded action."""

    id: str | None = None
    actor_id: str
    action: AuditAction
    detail: str = ""
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
