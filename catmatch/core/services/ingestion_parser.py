"""
Ingestion parser service.

Turns uploaded tabular bytes (CSV or XLSX first sheet) plus a column
mapping into ordered LineItems. Reads only; never writes to storage.
"""

import csv
import io
import zipfile
from collections.abc import Iterable, Iterator
from datetime import date, datetime
from typing import Any

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from catmatch.config import get_logger
from catmatch.core.entities.upload import ColumnMapping, LineItem
from catmatch.core.exceptions import (
    ConfigurationError,
    ParsingFailedError,
    UnsupportedFormatError,
)

logger = get_logger(__name__)

CSV_MIME_TYPES = frozenset({"text/csv", "application/csv"})
XLSX_MIME_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
# Browsers report both legacy Excel and plain CSV files under this type
LEGACY_EXCEL_MIME_TYPE = "application/vnd.ms-excel"

SUPPORTED_MIME_TYPES = sorted(CSV_MIME_TYPES | {XLSX_MIME_TYPE, LEGACY_EXCEL_MIME_TYPE})

CSV_DELIMITERS = ",;\t|"
SNIFF_SAMPLE_SIZE = 8192
ZIP_MAGIC = b"PK\x03\x04"


def normalize_mime(mime_type: str) -> str:
    """Drop parameters (e.g. charset) and lowercase."""
    return mime_type.split(";", 1)[0].strip().lower()


def _cell_to_str(value: Any) -> str:
    """Render a spreadsheet cell as text."""
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, datetime):
        return value.isoformat(sep=" ")
    if isinstance(value, date):
        return value.isoformat()
    return str(value).strip()


def _normalize_headers(raw: Iterable[Any]) -> list[str]:
    """Strip header cells and name blank ones by position."""
    headers = []
    for index, cell in enumerate(raw, start=1):
        text = _cell_to_str(cell)
        headers.append(text or f"column_{index}")
    return headers


class IngestionParser:
    """
    Parses uploaded spreadsheets into line items.

    Row 1 is the header; data rows are numbered from 1 in file order.
    Fully blank rows are skipped, but rows whose description cell is empty
    are kept with empty text so the orchestrator can decide what to do.
    """

    def supports(self, mime_type: str) -> bool:
        return normalize_mime(mime_type) in SUPPORTED_MIME_TYPES

    def read_header(self, content: bytes, mime_type: str, filename: str = "upload") -> list[str]:
        """Return the header columns of the file."""
        rows = self._iter_rows(content, mime_type, filename)
        first = next(rows, None)
        return _normalize_headers(first) if first is not None else []

    def parse(
        self,
        content: bytes,
        mime_type: str,
        mapping: ColumnMapping,
        filename: str = "upload",
    ) -> list[LineItem]:
        """
        Parse file content into line items.

        Args:
            content: Raw file bytes.
            mime_type: Declared MIME type of the upload.
            mapping: Column mapping chosen by the user.
            filename: Original filename, used in error messages.

        Returns:
            LineItems in file order (upload_id left unset).

        Raises:
            ConfigurationError: Mapped column missing from the header.
            UnsupportedFormatError: MIME type is not CSV or XLSX.
            ParsingFailedError: Content is not readable as the declared type.
        """
        if not mapping.description_column or not mapping.description_column.strip():
            raise ConfigurationError(
                "Description column must not be empty",
                column=mapping.description_column,
            )

        rows = self._iter_rows(content, mime_type, filename)
        first = next(rows, None)
        headers = _normalize_headers(first) if first is not None else []

        description_idx = self._column_index(headers, mapping.description_column)
        quantity_idx = (
            self._column_index(headers, mapping.quantity_column)
            if mapping.quantity_column
            else None
        )
        unit_idx = (
            self._column_index(headers, mapping.unit_column) if mapping.unit_column else None
        )

        items: list[LineItem] = []
        for raw in rows:
            cells = [_cell_to_str(c) for c in raw]
            if not any(cells):
                continue

            items.append(
                LineItem(
                    row_number=len(items) + 1,
                    original_text=self._cell(cells, description_idx) or "",
                    quantity=self._cell(cells, quantity_idx),
                    unit=self._cell(cells, unit_idx),
                )
            )

        logger.info(
            "upload_parsed",
            filename=filename,
            mime_type=mime_type,
            columns=len(headers),
            items=len(items),
        )
        return items

    def _column_index(self, headers: list[str], column: str) -> int:
        """Locate a mapped column, matching exactly then case-insensitively."""
        wanted = column.strip()
        if wanted in headers:
            return headers.index(wanted)

        folded = [h.casefold() for h in headers]
        if wanted.casefold() in folded:
            return folded.index(wanted.casefold())

        raise ConfigurationError(
            f"Column '{column}' not found in file header",
            column=column,
            available=headers,
        )

    @staticmethod
    def _cell(cells: list[str], index: int | None) -> str | None:
        if index is None or index >= len(cells):
            return None
        return cells[index] or None

    def _iter_rows(self, content: bytes, mime_type: str, filename: str) -> Iterator[list[Any]]:
        """Dispatch to the reader for the declared MIME type."""
        normalized = normalize_mime(mime_type)

        if normalized in CSV_MIME_TYPES:
            return self._iter_csv(content, filename)
        if normalized == XLSX_MIME_TYPE:
            return self._iter_xlsx(content, filename)
        if normalized == LEGACY_EXCEL_MIME_TYPE:
            if content.startswith(ZIP_MAGIC):
                return self._iter_xlsx(content, filename)
            return self._iter_csv(content, filename)

        raise UnsupportedFormatError(mime_type, SUPPORTED_MIME_TYPES)

    def _iter_csv(self, content: bytes, filename: str) -> Iterator[list[Any]]:
        """Read delimited text, sniffing the delimiter."""
        try:
            text = content.decode("utf-8-sig")
        except UnicodeDecodeError:
            text = content.decode("latin-1")

        if "\x00" in text:
            raise ParsingFailedError(filename, "binary content is not delimited text")

        try:
            dialect: Any = csv.Sniffer().sniff(text[:SNIFF_SAMPLE_SIZE], delimiters=CSV_DELIMITERS)
        except csv.Error:
            dialect = csv.excel

        try:
            rows = list(csv.reader(io.StringIO(text), dialect))
        except csv.Error as e:
            raise ParsingFailedError(filename, str(e)) from e

        return iter(rows)

    def _iter_xlsx(self, content: bytes, filename: str) -> Iterator[list[Any]]:
        """Read the first worksheet of a workbook."""
        try:
            wb = load_workbook(io.BytesIO(content), read_only=True, data_only=True)
        except (InvalidFileException, zipfile.BadZipFile, KeyError, ValueError, OSError) as e:
            raise ParsingFailedError(filename, f"cannot read workbook: {e}") from e

        try:
            if not wb.worksheets:
                return iter([])
            ws = wb.worksheets[0]
            rows = [list(row) for row in ws.iter_rows(values_only=True)]
        finally:
            wb.close()

        return iter(rows)
