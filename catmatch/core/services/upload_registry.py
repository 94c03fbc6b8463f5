"""
Upload registry service.

Owns the upload lifecycle outside of processing: submission, lookup,
cancellation, result export, and the per-owner dashboard aggregates.
Aggregates are recomputed on every read and never stored.
"""

import csv
import io
import uuid
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from pathlib import PurePath

from catmatch.config import get_logger
from catmatch.core.entities.audit import AuditAction, AuditLogEntry
from catmatch.core.entities.match import MatchCandidate, MatchStatus
from catmatch.core.entities.stats import OwnerStats
from catmatch.core.entities.upload import Upload, UploadStatus
from catmatch.core.exceptions import (
    FileTooLargeError,
    InvalidUploadStateError,
    UnsupportedFormatError,
    UploadNotFoundError,
    ValidationError,
)
from catmatch.core.interfaces.storage import (
    IAuditLogStore,
    ICatalogStore,
    IFileStore,
    IMatchStore,
    IUploadStore,
)
from catmatch.core.services.ingestion_parser import (
    SUPPORTED_MIME_TYPES,
    IngestionParser,
    normalize_mime,
)

logger = get_logger(__name__)

DEFAULT_MAX_UPLOAD_SIZE = 10 * 1024 * 1024
STATS_WINDOW = timedelta(days=30)
ALLOWED_SUFFIXES = frozenset({".csv", ".xlsx", ".xls", ".txt"})

EXPORT_COLUMNS = [
    "row_number",
    "original_text",
    "quantity",
    "unit",
    "status",
    "confidence_score",
    "material_code",
    "matched_text",
]

# Leading characters a spreadsheet reads as the start of a formula
FORMULA_PREFIXES = ("=", "+", "-", "@", "\t", "\r")


def _csv_text(value: str | None) -> str:
    """Free text for the export, neutralised so it cannot run as a formula."""
    if not value:
        return ""
    return f"'{value}" if value.startswith(FORMULA_PREFIXES) else value


class UploadRegistry:
    """Upload lifecycle and aggregate views for one deployment."""

    def __init__(
        self,
        upload_store: IUploadStore,
        match_store: IMatchStore,
        catalog_store: ICatalogStore,
        audit_store: IAuditLogStore,
        file_store: IFileStore,
        parser: IngestionParser | None = None,
        max_upload_size: int = DEFAULT_MAX_UPLOAD_SIZE,
        allowed_mime_types: list[str] | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._uploads = upload_store
        self._matches = match_store
        self._catalog = catalog_store
        self._audit = audit_store
        self._files = file_store
        self._parser = parser or IngestionParser()
        self._max_upload_size = max_upload_size
        self._allowed_mime_types = sorted(
            {normalize_mime(m) for m in (allowed_mime_types or SUPPORTED_MIME_TYPES)}
        )
        self._clock = clock or (lambda: datetime.now(UTC))

    async def submit_upload(
        self,
        owner_id: str,
        content: bytes,
        original_name: str,
        mime_type: str,
        size: int | None = None,
    ) -> Upload:
        """
        Store an uploaded file and register it in the created state.

        Raises:
            ValidationError: Missing owner or empty file.
            FileTooLargeError: File exceeds the configured limit.
            UnsupportedFormatError: MIME type is not CSV or XLSX.
        """
        if not owner_id or not owner_id.strip():
            raise ValidationError("owner_id", "an owner identity is required")
        if not content:
            raise ValidationError("file", "uploaded file is empty", original_name)

        actual_size = max(size or 0, len(content))
        if actual_size > self._max_upload_size:
            raise FileTooLargeError(original_name, actual_size, self._max_upload_size)
        if (
            not self._parser.supports(mime_type)
            or normalize_mime(mime_type) not in self._allowed_mime_types
        ):
            raise UnsupportedFormatError(mime_type, self._allowed_mime_types)

        upload_id = str(uuid.uuid4())
        suffix = PurePath(original_name).suffix.lower()
        stored_filename = upload_id + (suffix if suffix in ALLOWED_SUFFIXES else "")

        await self._files.save(stored_filename, content)
        try:
            upload = await self._uploads.create_upload(
                Upload(
                    id=upload_id,
                    owner_id=owner_id,
                    original_filename=original_name,
                    stored_filename=stored_filename,
                    file_size=actual_size,
                    mime_type=mime_type,
                )
            )
        except Exception:
            await self._files.delete(stored_filename)
            raise

        await self._audit.append(
            AuditLogEntry(
                actor_id=owner_id,
                action=AuditAction.UPLOAD_FILE,
                detail=f"Uploaded file: {original_name} ({upload_id})",
            )
        )
        logger.info(
            "upload_submitted",
            upload_id=upload_id,
            owner_id=owner_id,
            filename=original_name,
            size=actual_size,
            mime_type=mime_type,
        )
        return upload

    async def get_upload(self, upload_id: str, owner_id: str) -> Upload:
        """Get an upload visible to `owner_id`."""
        upload = await self._uploads.get_upload(upload_id)
        if upload is None or upload.owner_id != owner_id:
            raise UploadNotFoundError(upload_id)
        return upload

    async def list_uploads(self, owner_id: str) -> list[Upload]:
        """An owner's uploads, newest first."""
        return await self._uploads.list_uploads_by_owner(owner_id)

    async def list_matches(self, upload_id: str, owner_id: str) -> list[MatchCandidate]:
        """Candidates of an owned upload in row order."""
        await self.get_upload(upload_id, owner_id)
        return await self._matches.list_candidates(upload_id)

    async def read_columns(self, upload_id: str, owner_id: str) -> list[str]:
        """Header columns of the stored file, for building a column mapping."""
        upload = await self.get_upload(upload_id, owner_id)
        content = await self._files.read(upload.stored_filename)
        return self._parser.read_header(content, upload.mime_type, upload.original_filename)

    async def cancel_upload(self, upload_id: str, owner_id: str) -> Upload:
        """
        Cancel an upload that has not finished.

        Processing stops at the next item boundary.
        """
        upload = await self.get_upload(upload_id, owner_id)

        cancelled = await self._uploads.transition_status(
            upload_id,
            {UploadStatus.CREATED, UploadStatus.PROCESSING},
            UploadStatus.CANCELLED,
        )
        if not cancelled:
            current = await self._uploads.get_upload(upload_id)
            status = current.status if current else upload.status
            raise InvalidUploadStateError(upload_id, status.value, "cancel")

        await self._audit.append(
            AuditLogEntry(
                actor_id=owner_id,
                action=AuditAction.CANCEL_UPLOAD,
                detail=f"Cancelled upload {upload_id} at {upload.processed_items} items",
            )
        )
        logger.info("upload_cancelled", upload_id=upload_id, owner_id=owner_id)
        return await self.get_upload(upload_id, owner_id)

    async def get_stats(self, owner_id: str) -> OwnerStats:
        """Dashboard aggregates, recomputed from stored records."""
        since = self._clock() - STATS_WINDOW
        monthly_uploads = await self._uploads.count_uploads_since(owner_id, since)
        processed_items = await self._uploads.sum_processed_items(owner_id)
        counts = await self._matches.count_by_status_for_owner(owner_id)

        total = sum(counts.values())
        matched = counts.get(MatchStatus.APPROVED, 0) + counts.get(MatchStatus.MANUAL, 0)
        match_rate = round(matched / total * 100) if total else 0

        return OwnerStats(
            monthly_uploads=monthly_uploads,
            processed_items=processed_items,
            pending_review=counts.get(MatchStatus.PENDING, 0),
            match_rate=match_rate,
        )

    async def export_results(self, upload_id: str, owner_id: str) -> str:
        """Render the upload's results as CSV text."""
        await self.get_upload(upload_id, owner_id)
        items = {item.row_number: item for item in await self._uploads.get_line_items(upload_id)}
        candidates = await self._matches.list_candidates(upload_id)

        codes: dict[str, str] = {}
        for material_id in {c.material_id for c in candidates if c.material_id}:
            entry = await self._catalog.get_entry(material_id)
            # Dangling references export with a blank code
            codes[material_id] = entry.code if entry else ""

        output = io.StringIO()
        writer = csv.writer(output)
        writer.writerow(EXPORT_COLUMNS)
        for candidate in candidates:
            item = items.get(candidate.row_number)
            writer.writerow(
                [
                    candidate.row_number,
                    _csv_text(candidate.original_text),
                    item.quantity if item and item.quantity else "",
                    _csv_text(item.unit) if item else "",
                    candidate.status.value,
                    f"{candidate.confidence_score:.2f}",
                    codes.get(candidate.material_id or "", ""),
                    _csv_text(candidate.matched_text),
                ]
            )

        await self._audit.append(
            AuditLogEntry(
                actor_id=owner_id,
                action=AuditAction.DOWNLOAD_RESULT,
                detail=f"Exported {len(candidates)} results for upload {upload_id}",
            )
        )
        return output.getvalue()
