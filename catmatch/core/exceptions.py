"""
Domain exceptions.

Each carries a stable code and a details dict; the API layer maps the
family (not found, parser, validation, persistence, timeout) to an HTTP
status.
"""

from typing import Any


class CatMatchError(Exception):
    """Base exception for all CatMatch errors."""

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}


# Not-found Exceptions
class NotFoundError(CatMatchError):
    """Base exception for references to unknown entities."""

    pass


class UploadNotFoundError(NotFoundError):
    """Upload not found (or not visible to the caller)."""

    def __init__(self, upload_id: str):
        super().__init__(
            f"Upload not found: {upload_id}",
            code="UPLOAD_NOT_FOUND",
            details={"upload_id": upload_id},
        )


class MatchNotFoundError(NotFoundError):
    """Match candidate not found."""

    def __init__(self, match_id: str):
        super().__init__(
            f"Match not found: {match_id}",
            code="MATCH_NOT_FOUND",
            details={"match_id": match_id},
        )


class CatalogEntryNotFoundError(NotFoundError):
    """Catalog entry not found by id or code."""

    def __init__(self, key: str, field: str = "id"):
        super().__init__(
            f"Catalog entry not found: {field}={key}",
            code="CATALOG_ENTRY_NOT_FOUND",
            details={"field": field, "value": key},
        )


# Storage Exceptions
class PersistenceError(CatMatchError):
    """Storage layer failures."""

    pass


class DatabaseError(PersistenceError):
    """An SQL statement failed."""

    def __init__(self, operation: str, error: str):
        super().__init__(
            f"Database error during {operation}: {error}",
            code="DATABASE_ERROR",
            details={"operation": operation, "error": error},
        )


class FileStorageError(PersistenceError):
    """Stored upload file could not be written or read."""

    def __init__(self, stored_filename: str, reason: str):
        super().__init__(
            f"File storage error for '{stored_filename}': {reason}",
            code="FILE_STORAGE_ERROR",
            details={"stored_filename": stored_filename, "reason": reason},
        )


# Parser Exceptions
class ParserError(CatMatchError):
    """Base exception for ingestion parsing."""

    pass


class ConfigurationError(ParserError):
    """Column mapping does not fit the uploaded file."""

    def __init__(self, message: str, column: str | None = None, available: list[str] | None = None):
        super().__init__(
            message,
            code="CONFIGURATION_ERROR",
            details={"column": column, "available_columns": available or []},
        )


class UnsupportedFormatError(ParserError):
    """MIME type is not a supported tabular encoding."""

    def __init__(self, mime_type: str, allowed: list[str]):
        super().__init__(
            f"Unsupported file format '{mime_type}'. Allowed: {', '.join(allowed)}",
            code="UNSUPPORTED_FORMAT",
            details={"mime_type": mime_type, "allowed": allowed},
        )


class ParsingFailedError(ParserError):
    """File content could not be read as the declared format."""

    def __init__(self, filename: str, reason: str):
        super().__init__(
            f"Failed to parse '{filename}': {reason}",
            code="PARSING_FAILED",
            details={"filename": filename, "reason": reason},
        )


# Processing Exceptions
class ProcessingTimeoutError(CatMatchError):
    """A per-item matching or persistence call exceeded its timeout."""

    def __init__(self, upload_id: str, row_number: int, operation: str, timeout: float):
        super().__init__(
            f"{operation} timed out after {timeout}s (upload {upload_id}, row {row_number})",
            code="PROCESSING_TIMEOUT",
            details={
                "upload_id": upload_id,
                "row_number": row_number,
                "operation": operation,
                "timeout": timeout,
            },
        )


# Validation Exceptions
class ValidationError(CatMatchError):
    """Caller input was rejected."""

    def __init__(self, field: str, message: str, value: Any = None):
        super().__init__(
            f"Validation error for '{field}': {message}",
            code="VALIDATION_ERROR",
            details={
                "field": field,
                "message": message,
                "value": None if value is None else str(value)[:80],
            },
        )


class InvalidTransitionError(ValidationError):
    """Review action is not allowed from the candidate's current status."""

    def __init__(self, match_id: str, current_status: str, action: str):
        super().__init__(
            field="action",
            message=f"Cannot {action} a match in status '{current_status}'",
            value=action,
        )
        self.code = "INVALID_TRANSITION"
        self.details.update(
            {
                "match_id": match_id,
                "current_status": current_status,
                "action": action,
            }
        )


class InvalidUploadStateError(ValidationError):
    """Upload is not in a status that allows the requested operation."""

    def __init__(self, upload_id: str, current_status: str, operation: str):
        super().__init__(
            field="status",
            message=f"Cannot {operation} upload in status '{current_status}'",
            value=current_status,
        )
        self.code = "INVALID_UPLOAD_STATE"
        self.details.update(
            {
                "upload_id": upload_id,
                "current_status": current_status,
                "operation": operation,
            }
        )


class FileTooLargeError(ValidationError):
    """Upload body is larger than API_MAX_UPLOAD_SIZE."""

    def __init__(self, filename: str, size: int, max_size: int):
        super().__init__(
            field="file",
            message=f"File '{filename}' is too large ({size} bytes, max {max_size})",
        )
        self.code = "FILE_TOO_LARGE"
        self.details.update(
            {
                "filename": filename,
                "size": size,
                "max_size": max_size,
            }
        )
