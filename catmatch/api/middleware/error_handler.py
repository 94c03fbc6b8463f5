"""
Error handling for the HTTP API.

Every failure leaves the API as an ErrorResponse body: a stable
error_code for clients to branch on, a readable message and, where one
is known, a hint on how to recover.
"""

import json
from collections.abc import Awaitable, Callable
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from catmatch.application.dto.responses import ErrorResponse
from catmatch.config import get_logger
from catmatch.core.exceptions import (
    CatMatchError,
    NotFoundError,
    ParserError,
    PersistenceError,
    ProcessingTimeoutError,
    ValidationError,
)

logger = get_logger(__name__)

# Named locally: starlette renamed its 413 and 422 constants
HTTP_413_CONTENT_TOO_LARGE = 413
HTTP_422_UNPROCESSABLE_CONTENT = 422

# Checked in order, so subclasses must precede their bases
DOMAIN_STATUS: tuple[tuple[type[CatMatchError], int], ...] = (
    (ProcessingTimeoutError, status.HTTP_504_GATEWAY_TIMEOUT),
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (ParserError, HTTP_422_UNPROCESSABLE_CONTENT),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (PersistenceError, status.HTTP_500_INTERNAL_SERVER_ERROR),
)

HINTS: dict[str, str] = {
    "UPLOAD_NOT_FOUND": "Check the upload ID and try GET /api/uploads to list your uploads.",
    "MATCH_NOT_FOUND": "Check the match ID and try GET /api/uploads/{id}/matches.",
    "CATALOG_ENTRY_NOT_FOUND": "Search the catalog with GET /api/catalog/search?q=...",
    "CONFIGURATION_ERROR": "Pick the description column from GET /api/uploads/{id}/columns.",
    "UNSUPPORTED_FORMAT": "Upload a CSV or XLSX spreadsheet.",
    "PARSING_FAILED": "The file is corrupt or not a spreadsheet. Upload it again.",
    "INVALID_TRANSITION": "Reload the match; its status may have changed.",
    "INVALID_UPLOAD_STATE": "Check the upload status with GET /api/uploads/{id}.",
    "VALIDATION_ERROR": "Check the request parameters and body.",
    "FILE_TOO_LARGE": "Split the spreadsheet or remove unused sheets and columns.",
    "FILE_STORAGE_ERROR": "The stored file could not be accessed. Upload it again.",
    "PROCESSING_TIMEOUT": "Matching took too long. Retry the upload later.",
    "UNAUTHENTICATED": "Send the caller identity in the X-User-Id header.",
    "INTERNAL_ERROR": "Retry later; the failure has been logged with the request ID.",
}

# Framework-raised HTTP errors carry no domain code
HTTP_ERROR_CODES: dict[int, str] = {
    status.HTTP_401_UNAUTHORIZED: "UNAUTHENTICATED",
    status.HTTP_404_NOT_FOUND: "NOT_FOUND",
    status.HTTP_405_METHOD_NOT_ALLOWED: "METHOD_NOT_ALLOWED",
    HTTP_413_CONTENT_TOO_LARGE: "FILE_TOO_LARGE",
}


def _render(
    request: Request,
    status_code: int,
    error_code: str,
    message: str,
    detail: str | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    body = ErrorResponse(
        error_code=error_code,
        message=message,
        hint=HINTS.get(error_code),
        detail=detail,
        path=request.url.path,
    )
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(mode="json"),
        headers=headers,
    )


def status_for(exc: CatMatchError) -> int:
    return next(
        (code for exc_type, code in DOMAIN_STATUS if isinstance(exc, exc_type)),
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


def domain_error_response(request: Request, exc: CatMatchError) -> JSONResponse:
    status_code = status_for(exc)
    # Details of server-side failures stay in the log
    details: dict[str, Any] = exc.details if status_code < 500 else {}

    log = logger.error if status_code >= 500 else logger.warning
    log(
        "request_error",
        path=request.url.path,
        error_code=exc.code,
        error=exc.message,
        details=details or None,
    )

    return _render(
        request,
        status_code,
        exc.code,
        exc.message,
        detail=json.dumps(details, default=str, ensure_ascii=False) if details else None,
    )


def unexpected_error_response(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("request_crashed", path=request.url.path, error_type=type(exc).__name__)
    return _render(
        request,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "INTERNAL_ERROR",
        "Internal error",
    )


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Last line of defence: turns anything still raised into a 500 ErrorResponse."""

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        try:
            return await call_next(request)
        except CatMatchError as e:
            return domain_error_response(request, e)
        except Exception as e:
            return unexpected_error_response(request, e)


def setup_exception_handlers(app: FastAPI) -> None:
    """Register the ErrorResponse renderers on the app."""

    @app.exception_handler(CatMatchError)
    async def on_domain_error(request: Request, exc: CatMatchError) -> JSONResponse:
        return domain_error_response(request, exc)

    @app.exception_handler(RequestValidationError)
    async def on_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
        problems = [
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in exc.errors()
        ]
        return _render(
            request,
            HTTP_422_UNPROCESSABLE_CONTENT,
            "VALIDATION_ERROR",
            "Request validation failed",
            detail="; ".join(problems),
        )

    @app.exception_handler(HTTPException)
    async def on_http_error(request: Request, exc: HTTPException) -> JSONResponse:
        return _render(
            request,
            exc.status_code,
            HTTP_ERROR_CODES.get(exc.status_code, "HTTP_ERROR"),
            str(exc.detail) if exc.detail else "Request failed",
            headers=getattr(exc, "headers", None),
        )
