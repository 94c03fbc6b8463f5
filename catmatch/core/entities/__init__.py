"""Core domain entities."""

from catmatch.core.entities.audit import AuditAction, AuditLogEntry
from catmatch.core.entities.catalog import CatalogEntry, Category, Subcategory
from catmatch.core.entities.match import (
    MatchCandidate,
    MatchStatus,
    ReviewAction,
    ScoredEntry,
)
from catmatch.core.entities.stats import OwnerStats
from catmatch.core.entities.upload import (
    TERMINAL_UPLOAD_STATUSES,
    ColumnMapping,
    LineItem,
    Upload,
    UploadStatus,
    can_transition,
)

__all__ = [
    # Catalog entities
    "CatalogEntry",
    "Category",
    "Subcategory",
    # Upload entities
    "Upload",
    "UploadStatus",
    "LineItem",
    "ColumnMapping",
    "TERMINAL_UPLOAD_STATUSES",
    "can_transition",
    # Match entities
    "MatchCandidate",
    "MatchStatus",
    "ReviewAction",
    "ScoredEntry",
    # Audit entities
    "AuditLogEntry",
    "AuditAction",
    # Statistics
    "OwnerStats",
]
