"""
Upload endpoints.

Submit spreadsheets, start and cancel processing, poll progress, list
match candidates and export results.
"""

import mimetypes

from fastapi import APIRouter, Depends, File, UploadFile, status
from fastapi.responses import Response

from catmatch.api.dependencies import (
    get_app_settings,
    get_current_user,
    get_orchestrator,
    get_registry,
)
from catmatch.application.dto.requests import ProcessUploadRequest
from catmatch.application.dto.responses import (
    ColumnsResponse,
    MatchCandidateResponse,
    MatchListResponse,
    StartProcessingResponse,
    UploadListResponse,
    UploadResponse,
)
from catmatch.config import Settings, get_logger
from catmatch.core.services import ProcessingOrchestrator, UploadRegistry

logger = get_logger(__name__)

router = APIRouter(prefix="/api/uploads", tags=["uploads"])

GENERIC_MIME_TYPES = {"", "application/octet-stream"}


def _resolve_mime_type(file: UploadFile) -> str:
    """Declared content type, or a guess from the filename for generic ones."""
    declared = (file.content_type or "").strip()
    if declared.lower() not in GENERIC_MIME_TYPES:
        return declared
    guessed, _ = mimetypes.guess_type(file.filename or "")
    return guessed or declared or "application/octet-stream"


@router.post("", response_model=UploadResponse, status_code=status.HTTP_201_CREATED)
async def submit_upload(
    file: UploadFile = File(..., description="CSV or XLSX spreadsheet"),
    owner_id: str = Depends(get_current_user),
    registry: UploadRegistry = Depends(get_registry),
    settings: Settings = Depends(get_app_settings),
) -> UploadResponse:
    """Upload a spreadsheet. Processing starts separately."""
    # One byte past the limit is enough to reject oversized files
    content = await file.read(settings.api.max_upload_size + 1)
    upload = await registry.submit_upload(
        owner_id=owner_id,
        content=content,
        original_name=file.filename or "upload",
        mime_type=_resolve_mime_type(file),
        size=file.size,
    )
    return UploadResponse.from_entity(upload)


@router.get("", response_model=UploadListResponse)
async def list_uploads(
    owner_id: str = Depends(get_current_user),
    registry: UploadRegistry = Depends(get_registry),
) -> UploadListResponse:
    """List the caller's uploads, newest first."""
    uploads = await registry.list_uploads(owner_id)
    return UploadListResponse(
        uploads=[UploadResponse.from_entity(u) for u in uploads],
        total=len(uploads),
    )


@router.get("/{upload_id}", response_model=UploadResponse)
async def get_upload(
    upload_id: str,
    owner_id: str = Depends(get_current_user),
    registry: UploadRegistry = Depends(get_registry),
) -> UploadResponse:
    """Get an upload and its progress."""
    return UploadResponse.from_entity(await registry.get_upload(upload_id, owner_id))


@router.get("/{upload_id}/columns", response_model=ColumnsResponse)
async def get_columns(
    upload_id: str,
    owner_id: str = Depends(get_current_user),
    registry: UploadRegistry = Depends(get_registry),
) -> ColumnsResponse:
    """Header columns of the uploaded file, for choosing the mapping."""
    columns = await registry.read_columns(upload_id, owner_id)
    return ColumnsResponse(upload_id=upload_id, columns=columns)


@router.post(
    "/{upload_id}/process",
    response_model=StartProcessingResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def start_processing(
    upload_id: str,
    request: ProcessUploadRequest,
    owner_id: str = Depends(get_current_user),
    orchestrator: ProcessingOrchestrator = Depends(get_orchestrator),
) -> StartProcessingResponse:
    """Parse the file and start matching in the background."""
    result = await orchestrator.start_processing(upload_id, owner_id, request.to_mapping())
    return StartProcessingResponse(upload_id=result.upload_id, total_items=result.total_items)


@router.post("/{upload_id}/cancel", response_model=UploadResponse)
async def cancel_upload(
    upload_id: str,
    owner_id: str = Depends(get_current_user),
    registry: UploadRegistry = Depends(get_registry),
) -> UploadResponse:
    """Cancel an upload that is created or processing."""
    return UploadResponse.from_entity(await registry.cancel_upload(upload_id, owner_id))


@router.get("/{upload_id}/matches", response_model=MatchListResponse)
async def list_matches(
    upload_id: str,
    owner_id: str = Depends(get_current_user),
    registry: UploadRegistry = Depends(get_registry),
) -> MatchListResponse:
    """Match candidates of an upload in row order."""
    candidates = await registry.list_matches(upload_id, owner_id)
    return MatchListResponse(
        upload_id=upload_id,
        matches=[MatchCandidateResponse.from_entity(c) for c in candidates],
        total=len(candidates),
    )


@router.get("/{upload_id}/export")
async def export_results(
    upload_id: str,
    owner_id: str = Depends(get_current_user),
    registry: UploadRegistry = Depends(get_registry),
) -> Response:
    """Download match results as CSV."""
    body = await registry.export_results(upload_id, owner_id)
    return Response(
        content=body,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="results-{upload_id}.csv"'},
    )
