"""Derived per-owner statistics. Recomputed on every read."""

from pydantic import BaseModel


class OwnerStats(BaseModel):
    """Dashboard aggregates for one owner."""

    monthly_uploads: int = 0
    processed_items: int = 0
    pending_review: int = 0
    match_rate: int = 0  # percent, rounded
