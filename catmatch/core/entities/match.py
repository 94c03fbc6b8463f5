"""
Match candidate domain entities.

A MatchCandidate is the outcome of matching one LineItem against the
catalog. It is created once by the orchestrator and afterwards only
changed through review transitions.
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, Field, model_validator


class MatchStatus(str, Enum):
    """Review status of a match candidate."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    NOT_FOUND = "not_found"
    MANUAL = "manual"


class ReviewAction(str, Enum):
    """Human review actions."""

    APPROVE = "approve"
    REJECT = "reject"
    MANUAL = "manual"


@dataclass(frozen=True)
class ScoredEntry:
    """A catalog entry ranked by a match strategy."""

    catalog_entry_id: str
    name: str
    score: float  # 0.0 to 100.0


class MatchCandidate(BaseModel):
    """Persisted matching result for one line item."""

    id: str | None = None
    upload_id: str
    line_item_id: str
    row_number: int
    confidence_score: float = Field(default=0.0, ge=0.0, le=100.0)
    status: MatchStatus = MatchStatus.PENDING
    original_text: str = ""
    matched_text: str | None = None
    material_id: str | None = None
    reviewed_at: datetime | None = None
    reviewed_by: str | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @model_validator(mode="after")
    def check_status_fields(self) -> "MatchCandidate":
        """Keep matched fields consistent with the status."""
        if self.status == MatchStatus.NOT_FOUND:
            if self.matched_text is not None or self.material_id is not None:
                raise ValueError("not_found candidates carry no matched material")
        elif self.status in (MatchStatus.APPROVED, MatchStatus.MANUAL):
            if self.material_id is None:
                raise ValueError(f"{self.status.value} candidates require a material_id")
        return self
