"""
Processing orchestrator.

Drives one upload from parsed rows to persisted match candidates:

    start_processing: parse file -> store line items -> created->processing
    run:              snapshot catalog -> match each item -> persist
                      candidate -> bump progress -> processing->completed

Runs are resumable: rows that already have a candidate are skipped, so an
upload interrupted by a restart continues where it stopped.
"""

import asyncio
from dataclasses import dataclass
from functools import partial

from catmatch.config import get_logger
from catmatch.core.entities.audit import AuditAction, AuditLogEntry
from catmatch.core.entities.match import MatchCandidate, MatchStatus, ScoredEntry
from catmatch.core.entities.upload import ColumnMapping, LineItem, UploadStatus
from catmatch.core.exceptions import (
    ConfigurationError,
    InvalidUploadStateError,
    ParsingFailedError,
    ProcessingTimeoutError,
    UnsupportedFormatError,
    UploadNotFoundError,
)
from catmatch.core.interfaces.matching import IMatchStrategy, MatchStrategyFactory
from catmatch.core.interfaces.storage import (
    IAuditLogStore,
    IFileStore,
    IMatchStore,
    IUploadStore,
)
from catmatch.core.services.catalog_index import CatalogIndex
from catmatch.core.services.catalog_matcher import create_match_strategy
from catmatch.core.services.ingestion_parser import IngestionParser
from catmatch.core.services.processing_tasks import ProcessingTaskManager

logger = get_logger(__name__)

DEFAULT_AUTO_APPROVE_THRESHOLD = 80.0
DEFAULT_MATCH_TIMEOUT = 10.0
DEFAULT_PERSIST_TIMEOUT = 10.0

MAX_ERROR_MESSAGE_LENGTH = 500


@dataclass(frozen=True)
class StartResult:
    """Accepted processing request."""

    upload_id: str
    total_items: int


class ProcessingOrchestrator:
    """Turns uploads into match candidates in background tasks."""

    def __init__(
        self,
        upload_store: IUploadStore,
        match_store: IMatchStore,
        catalog_index: CatalogIndex,
        audit_store: IAuditLogStore,
        file_store: IFileStore,
        parser: IngestionParser | None = None,
        strategy_factory: MatchStrategyFactory | None = None,
        task_manager: ProcessingTaskManager | None = None,
        auto_approve_threshold: float = DEFAULT_AUTO_APPROVE_THRESHOLD,
        match_timeout: float = DEFAULT_MATCH_TIMEOUT,
        persist_timeout: float = DEFAULT_PERSIST_TIMEOUT,
    ) -> None:
        self._uploads = upload_store
        self._matches = match_store
        self._catalog = catalog_index
        self._audit = audit_store
        self._files = file_store
        self._parser = parser or IngestionParser()
        self._strategy_factory = strategy_factory or create_match_strategy
        self._tasks = task_manager or ProcessingTaskManager()
        self._auto_approve_threshold = auto_approve_threshold
        self._match_timeout = match_timeout
        self._persist_timeout = persist_timeout

    @property
    def task_manager(self) -> ProcessingTaskManager:
        return self._tasks

    async def start_processing(
        self,
        upload_id: str,
        owner_id: str,
        mapping: ColumnMapping,
    ) -> StartResult:
        """
        Parse an upload and schedule its matching run.

        Args:
            upload_id: Upload to process; must be in the created status.
            owner_id: Requesting user; must own the upload.
            mapping: Which columns hold description, quantity and unit.

        Returns:
            StartResult with the number of line items that will be matched.

        Raises:
            UploadNotFoundError: Unknown upload or not owned by `owner_id`.
            InvalidUploadStateError: Upload is not in the created status.
            ConfigurationError: Mapping does not fit the file; upload unchanged.
            UnsupportedFormatError: File type not supported; upload unchanged.
            ParsingFailedError: File is corrupt; upload marked failed.
        """
        upload = await self._uploads.get_upload(upload_id)
        if upload is None or upload.owner_id != owner_id:
            raise UploadNotFoundError(upload_id)
        if upload.status != UploadStatus.CREATED:
            raise InvalidUploadStateError(upload_id, upload.status.value, "start processing")

        content = await self._files.read(upload.stored_filename)

        try:
            items = await asyncio.to_thread(
                self._parser.parse,
                content,
                upload.mime_type,
                mapping,
                upload.original_filename,
            )
        except (ConfigurationError, UnsupportedFormatError) as e:
            logger.warning(
                "upload_mapping_rejected",
                upload_id=upload_id,
                error_code=e.code,
                error=e.message,
            )
            raise
        except ParsingFailedError as e:
            await self._uploads.transition_status(
                upload_id,
                {UploadStatus.CREATED},
                UploadStatus.FAILED,
                error_message=e.message[:MAX_ERROR_MESSAGE_LENGTH],
            )
            await self._audit.append(
                AuditLogEntry(
                    actor_id=owner_id,
                    action=AuditAction.PROCESSING_FAILED,
                    detail=f"upload={upload_id} parse failed: {e.message}",
                )
            )
            logger.warning("upload_parse_failed", upload_id=upload_id, error=e.message)
            raise

        items = [item.model_copy(update={"upload_id": upload_id}) for item in items]
        started = await self._uploads.begin_processing(upload_id, items)
        if started is None:
            current = await self._uploads.get_upload(upload_id)
            status = current.status.value if current else "unknown"
            raise InvalidUploadStateError(upload_id, status, "start processing")

        await self._audit.append(
            AuditLogEntry(
                actor_id=owner_id,
                action=AuditAction.START_PROCESSING,
                detail=f"upload={upload_id} items={len(items)}",
            )
        )
        logger.info(
            "upload_processing_started",
            upload_id=upload_id,
            owner_id=owner_id,
            total_items=len(items),
        )

        self._tasks.schedule(upload_id, self.run)
        return StartResult(upload_id=upload_id, total_items=len(items))

    async def resume_interrupted(self) -> int:
        """Re-schedule uploads left in processing by a previous process."""
        pending = await self._uploads.list_uploads_by_status(UploadStatus.PROCESSING)
        scheduled = sum(1 for upload in pending if self._tasks.schedule(upload.id, self.run))
        if pending:
            logger.info("uploads_resumed", found=len(pending), scheduled=scheduled)
        return scheduled

    async def run(self, upload_id: str) -> UploadStatus | None:
        """
        Match every line item of a processing upload.

        Returns the status the upload was left in, or None if it vanished.
        Never raises for per-item problems: matcher errors degrade to
        not_found, persistence errors and timeouts fail the upload.
        """
        upload = await self._uploads.get_upload(upload_id)
        if upload is None:
            logger.warning("upload_run_missing", upload_id=upload_id)
            return None
        if upload.status != UploadStatus.PROCESSING:
            logger.info("upload_run_skipped", upload_id=upload_id, status=upload.status.value)
            return upload.status

        row_number: int | None = None
        try:
            async with asyncio.timeout(self._persist_timeout):
                snapshot = await self._catalog.snapshot()
                items = await self._uploads.get_line_items(upload_id)
                done_rows = await self._matches.list_candidate_rows(upload_id)

            strategy = await asyncio.to_thread(self._strategy_factory, snapshot)
            if done_rows:
                async with asyncio.timeout(self._persist_timeout):
                    await self._uploads.sync_processed_items(upload_id, len(done_rows))

            logger.info(
                "upload_run_started",
                upload_id=upload_id,
                total_items=len(items),
                already_done=len(done_rows),
                catalog_entries=len(snapshot),
                strategy=strategy.name,
            )

            for item in items:
                if item.row_number in done_rows:
                    continue
                row_number = item.row_number

                candidate = await self._match_item(upload_id, item, strategy)
                async with asyncio.timeout(self._persist_timeout):
                    await self._matches.create_candidate(candidate)
                    current = await self._uploads.increment_processed(upload_id)

                if current is None or current.status != UploadStatus.PROCESSING:
                    status = current.status if current else None
                    logger.info(
                        "upload_run_stopped",
                        upload_id=upload_id,
                        row_number=row_number,
                        status=status.value if status else None,
                    )
                    return status

            row_number = None
            async with asyncio.timeout(self._persist_timeout):
                return await self._finish(upload_id)

        except ProcessingTimeoutError as e:
            await self._fail(upload_id, row_number, e.message, e)
        except TimeoutError as e:
            message = f"Storage operation timed out after {self._persist_timeout}s"
            await self._fail(upload_id, row_number, message, e)
        except Exception as e:
            await self._fail(upload_id, row_number, str(e) or type(e).__name__, e)
        return UploadStatus.FAILED

    async def _match_item(
        self,
        upload_id: str,
        item: LineItem,
        strategy: IMatchStrategy,
    ) -> MatchCandidate:
        """Score one item and build its candidate."""
        scored: list[ScoredEntry] = []
        if item.original_text:
            try:
                async with asyncio.timeout(self._match_timeout):
                    scored = await asyncio.to_thread(strategy.match, item.original_text)
            except TimeoutError as e:
                raise ProcessingTimeoutError(
                    upload_id, item.row_number, "match", self._match_timeout
                ) from e
            except Exception as e:
                logger.warning(
                    "matcher_failed",
                    upload_id=upload_id,
                    row_number=item.row_number,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                scored = []

        return self._classify(upload_id, item, scored)

    def _classify(
        self,
        upload_id: str,
        item: LineItem,
        scored: list[ScoredEntry],
    ) -> MatchCandidate:
        top = scored[0] if scored else None
        base = partial(
            MatchCandidate,
            upload_id=upload_id,
            line_item_id=item.id or "",
            row_number=item.row_number,
            original_text=item.original_text,
        )

        if top is None or top.score <= 0:
            return base(status=MatchStatus.NOT_FOUND, confidence_score=0.0)

        score = min(max(top.score, 0.0), 100.0)
        status = (
            MatchStatus.APPROVED
            if score >= self._auto_approve_threshold
            else MatchStatus.PENDING
        )
        return base(
            status=status,
            confidence_score=score,
            material_id=top.catalog_entry_id,
            matched_text=top.name,
        )

    async def _finish(self, upload_id: str) -> UploadStatus | None:
        if await self._uploads.complete_upload(upload_id):
            upload = await self._uploads.get_upload(upload_id)
            if upload is not None:
                await self._audit.append(
                    AuditLogEntry(
                        actor_id=upload.owner_id,
                        action=AuditAction.PROCESSING_COMPLETED,
                        detail=f"upload={upload_id} items={upload.processed_items}",
                    )
                )
            logger.info(
                "upload_processing_completed",
                upload_id=upload_id,
                processed_items=upload.processed_items if upload else None,
            )
            return UploadStatus.COMPLETED

        upload = await self._uploads.get_upload(upload_id)
        if upload is None:
            return None
        if upload.status == UploadStatus.PROCESSING:
            # Counter and candidates disagree; never report completed
            raise RuntimeError(
                f"processed {upload.processed_items} of {upload.total_items} items"
            )
        logger.info("upload_run_stopped", upload_id=upload_id, status=upload.status.value)
        return upload.status

    async def _fail(
        self,
        upload_id: str,
        row_number: int | None,
        message: str,
        error: BaseException,
    ) -> None:
        logger.error(
            "upload_processing_failed",
            upload_id=upload_id,
            row_number=row_number,
            error=message,
            error_type=type(error).__name__,
        )
        try:
            moved = await self._uploads.transition_status(
                upload_id,
                {UploadStatus.PROCESSING},
                UploadStatus.FAILED,
                error_message=message[:MAX_ERROR_MESSAGE_LENGTH],
            )
            if moved:
                upload = await self._uploads.get_upload(upload_id)
                await self._audit.append(
                    AuditLogEntry(
                        actor_id=upload.owner_id if upload else "system",
                        action=AuditAction.PROCESSING_FAILED,
                        detail=f"upload={upload_id} row={row_number}: {message}",
                    )
                )
        except Exception as e:
            # Upload stays processing and is picked up by resume_interrupted
            logger.error(
                "upload_fail_transition_failed",
                upload_id=upload_id,
                error=str(e),
                error_type=type(e).__name__,
            )
