"""Unit tests for domain exceptions."""

import pytest

from catmatch.core.exceptions import (
    CatalogEntryNotFoundError,
    CatMatchError,
    ConfigurationError,
    DatabaseError,
    FileStorageError,
    FileTooLargeError,
    InvalidTransitionError,
    InvalidUploadStateError,
    MatchNotFoundError,
    NotFoundError,
    ParserError,
    ParsingFailedError,
    PersistenceError,
    ProcessingTimeoutError,
    UnsupportedFormatError,
    UploadNotFoundError,
    ValidationError,
)


class TestCatMatchError:
    """Tests for base CatMatchError exception."""

    def test_basic_initialization(self):
        error = CatMatchError("Something went wrong")
        assert str(error) == "Something went wrong"
        assert error.message == "Something went wrong"
        assert error.code == "CatMatchError"
        assert error.details == {}

    def test_with_custom_code(self):
        error = CatMatchError("Error message", code="CUSTOM_ERROR")
        assert error.code == "CUSTOM_ERROR"


class TestNotFoundErrors:
    """Unknown entity references."""

    @pytest.mark.parametrize(
        "error,code",
        [
            (UploadNotFoundError("up-1"), "UPLOAD_NOT_FOUND"),
            (MatchNotFoundError("m-1"), "MATCH_NOT_FOUND"),
            (CatalogEntryNotFoundError("e-1"), "CATALOG_ENTRY_NOT_FOUND"),
        ],
    )
    def test_codes_and_hierarchy(self, error, code):
        assert error.code == code
        assert isinstance(error, NotFoundError)
        assert isinstance(error, CatMatchError)

    def test_catalog_lookup_field(self):
        error = CatalogEntryNotFoundError("MAT-9", field="code")
        assert error.details == {"field": "code", "value": "MAT-9"}
        assert "code=MAT-9" in error.message


class TestPersistenceErrors:
    def test_database_error(self):
        error = DatabaseError("create_upload", "database is locked")
        assert isinstance(error, PersistenceError)
        assert error.code == "DATABASE_ERROR"
        assert error.details["operation"] == "create_upload"
        assert "database is locked" in error.message

    def test_file_storage_error(self):
        error = FileStorageError("abc.csv", "file is missing")
        assert isinstance(error, PersistenceError)
        assert error.code == "FILE_STORAGE_ERROR"


class TestParserErrors:
    """Mapping, format and content errors."""

    def test_configuration_error(self):
        error = ConfigurationError("missing", column="desc", available=["a", "b"])
        assert isinstance(error, ParserError)
        assert error.code == "CONFIGURATION_ERROR"
        assert error.details == {"column": "desc", "available_columns": ["a", "b"]}

    def test_unsupported_format_lists_allowed_types(self):
        error = UnsupportedFormatError("image/png", ["text/csv"])
        assert isinstance(error, ParserError)
        assert "text/csv" in error.message

    def test_parsing_failed(self):
        error = ParsingFailedError("a.xlsx", "bad zip")
        assert error.code == "PARSING_FAILED"
        assert "a.xlsx" in error.message


class TestValidationErrors:
    """Input and state validation."""

    def test_validation_error_truncates_value(self):
        error = ValidationError("query", "too long", "x" * 500)
        assert error.code == "VALIDATION_ERROR"
        assert len(error.details["value"]) == 80

    def test_invalid_transition(self):
        error = InvalidTransitionError("m-1", "not_found", "approve")
        assert isinstance(error, ValidationError)
        assert error.code == "INVALID_TRANSITION"
        assert error.details["current_status"] == "not_found"
        assert error.details["action"] == "approve"

    def test_invalid_upload_state(self):
        error = InvalidUploadStateError("up-1", "completed", "cancel")
        assert isinstance(error, ValidationError)
        assert error.code == "INVALID_UPLOAD_STATE"
        assert error.details["operation"] == "cancel"

    def test_file_too_large(self):
        error = FileTooLargeError("big.csv", 20, 10)
        assert isinstance(error, ValidationError)
        assert error.code == "FILE_TOO_LARGE"
        assert error.details["size"] == 20
        assert error.details["max_size"] == 10


def test_processing_timeout():
    error = ProcessingTimeoutError("up-1", 7, "match", 10.0)
    assert error.code == "PROCESSING_TIMEOUT"
    assert error.details["row_number"] == 7
    assert "timed out after 10.0s" in error.message
