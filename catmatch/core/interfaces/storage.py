"""
Abstract interfaces for persistence.

Defines the contracts the core services depend on. SQLite implementations
live in catmatch.infrastructure.storage; tests substitute in-memory fakes.
"""

from abc import ABC, abstractmethod
from datetime import datetime

from catmatch.core.entities.audit import AuditLogEntry
from catmatch.core.entities.catalog import CatalogEntry, Category, Subcategory
from catmatch.core.entities.match import MatchCandidate, MatchStatus
from catmatch.core.entities.upload import LineItem, Upload, UploadStatus


class ICatalogStore(ABC):
    """
    Read access to the reference catalog.

    The save_* methods exist for catalog loaders (seed files, the external
    sync job); the matching pipeline never calls them.
    """

    @abstractmethod
    async def get_entry(self, entry_id: str) -> CatalogEntry | None:
        """Get entry by ID, including inactive entries."""

    @abstractmethod
    async def get_by_code(self, code: str) -> CatalogEntry | None:
        """Get entry by its external code."""

    @abstractmethod
    async def search_by_name(
        self,
        query: str,
        category_id: str | None = None,
        limit: int = 50,
    ) -> list[CatalogEntry]:
        """Substring search over active entry names, most relevant first."""

    @abstractmethod
    async def list_active_entries(self) -> list[CatalogEntry]:
        """All active entries, ordered by name."""

    @abstractmethod
    async def list_categories(self) -> list[Category]:
        """All categories ordered by name."""

    @abstractmethod
    async def list_subcategories(self, category_id: str | None = None) -> list[Subcategory]:
        """Subcategories ordered by name, optionally for one category."""

    @abstractmethod
    async def save_category(self, category: Category) -> Category:
        """Insert or replace a category."""

    @abstractmethod
    async def save_subcategory(self, subcategory: Subcategory) -> Subcategory:
        """Insert or replace a subcategory."""

    @abstractmethod
    async def save_entry(self, entry: CatalogEntry) -> CatalogEntry:
        """Insert or replace a catalog entry."""


class IUploadStore(ABC):
    """
    Upload and line-item persistence.

    Status and counter updates are single conditional statements so that
    concurrent writers (orchestrator, cancel requests) never lose updates.
    """

    @abstractmethod
    async def create_upload(self, upload: Upload) -> Upload:
        """Create a new upload record."""

    @abstractmethod
    async def get_upload(self, upload_id: str) -> Upload | None:
        """Get upload by ID."""

    @abstractmethod
    async def list_uploads_by_owner(self, owner_id: str) -> list[Upload]:
        """List an owner's uploads, newest first."""

    @abstractmethod
    async def list_uploads_by_status(self, status: UploadStatus) -> list[Upload]:
        """List uploads currently in a status, oldest first."""

    @abstractmethod
    async def begin_processing(self, upload_id: str, items: list[LineItem]) -> Upload | None:
        """
        Persist line items and move the upload from created to processing.

        Runs in one transaction: items are stored, total_items is set and
        processed_items reset to 0. Returns None (and writes nothing) if the
        upload is no longer in the created status.
        """

    @abstractmethod
    async def get_line_items(self, upload_id: str) -> list[LineItem]:
        """Line items of an upload ordered by row number."""

    @abstractmethod
    async def increment_processed(self, upload_id: str) -> Upload | None:
        """
        Add one to processed_items while the upload is processing.

        Returns the upload as re-read after the update.
        """

    @abstractmethod
    async def sync_processed_items(self, upload_id: str, count: int) -> Upload | None:
        """Raise processed_items to `count` (never lowers it)."""

    @abstractmethod
    async def transition_status(
        self,
        upload_id: str,
        from_statuses: set[UploadStatus],
        to_status: UploadStatus,
        error_message: str | None = None,
    ) -> bool:
        """Compare-and-swap the status. Returns False if it did not match."""

    @abstractmethod
    async def complete_upload(self, upload_id: str) -> bool:
        """
        Move processing -> completed and stamp completed_at.

        Only succeeds when processed_items == total_items.
        """

    @abstractmethod
    async def count_uploads_since(self, owner_id: str, since: datetime) -> int:
        """Count an owner's uploads created at or after `since`."""

    @abstractmethod
    async def sum_processed_items(self, owner_id: str) -> int:
        """Total processed items across all of an owner's uploads."""


class IMatchStore(ABC):
    """Match candidate persistence."""

    @abstractmethod
    async def create_candidate(self, candidate: MatchCandidate) -> MatchCandidate:
        """
        Insert a candidate unless one exists for the same upload row.

        Returns the stored candidate (the pre-existing one on conflict).
        """

    @abstractmethod
    async def get_candidate(self, match_id: str) -> MatchCandidate | None:
        """Get candidate by ID."""

    @abstractmethod
    async def list_candidates(self, upload_id: str) -> list[MatchCandidate]:
        """Candidates of an upload ordered by row number."""

    @abstractmethod
    async def list_candidate_rows(self, upload_id: str) -> set[int]:
        """Row numbers that already have a candidate."""

    @abstractmethod
    async def update_review(
        self,
        candidate: MatchCandidate,
        expected_status: MatchStatus,
    ) -> bool:
        """
        Write review fields if the stored status still equals expected_status.

        Returns False when another reviewer changed the candidate first.
        """

    @abstractmethod
    async def count_by_status_for_owner(self, owner_id: str) -> dict[MatchStatus, int]:
        """Candidate counts per status across an owner's uploads."""


class IAuditLogStore(ABC):
    """Append-only audit log."""

    @abstractmethod
    async def append(self, entry: AuditLogEntry) -> AuditLogEntry:
        """Record an action."""

    @abstractmethod
    async def list_entries(self, actor_id: str, limit: int = 100) -> list[AuditLogEntry]:
        """An actor's entries, newest first."""


class IFileStore(ABC):
    """Storage for raw uploaded file bytes."""

    @abstractmethod
    async def save(self, stored_filename: str, content: bytes) -> None:
        """Write file content."""

    @abstractmethod
    async def read(self, stored_filename: str) -> bytes:
        """Read file content."""

    @abstractmethod
    async def delete(self, stored_filename: str) -> bool:
        """Remove a stored file."""
