"""Reading uploaded spreadsheets into row dicts.

Only the first sheet is read. Row 1 is the header; blank cells are dropped
from each row dict and fully blank rows are skipped.
"""
import logging
import zipfile
from io import BytesIO
from pathlib import Path
from typing import Any

import pandas as pd
from openpyxl.utils.exceptions import InvalidFileException
from xlrd import XLRDError

logger = logging.getLogger(__name__)

EXCEL_EXTENSIONS = {".xlsx", ".xlsm"}
LEGACY_EXCEL_EXTENSIONS = {".xls"}
CSV_EXTENSIONS = {".csv"}

XLSX_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
CSV_CONTENT_TYPE = "text/csv"
XLS_CONTENT_TYPE = "application/vnd.ms-excel"


class ImportFileRejected(Exception):
    """The file cannot go through validation at all."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class EmptyImportFile(ImportFileRejected):
    def __init__(self, message: str = "The file is empty or has no valid data"):
        super().__init__(message)


class ImportTooLarge(ImportFileRejected):
    pass


class UnreadableImportFile(ImportFileRejected):
    def __init__(self, message: str = "Failed to read file. Please ensure it is a valid Excel file."):
        super().__init__(message)


SUPPORTED_EXTENSIONS = EXCEL_EXTENSIONS | LEGACY_EXCEL_EXTENSIONS | CSV_EXTENSIONS


def content_type_for(filename: str) -> str:
    extension = Path(filename).suffix.lower()
    if extension in CSV_EXTENSIONS:
        return CSV_CONTENT_TYPE
    if extension in LEGACY_EXCEL_EXTENSIONS:
        return XLS_CONTENT_TYPE
    return XLSX_CONTENT_TYPE


def _read_frame(content: bytes, extension: str) -> pd.DataFrame:
    if extension in CSV_EXTENSIONS:
        return pd.read_csv(BytesIO(content), dtype=str, skip_blank_lines=True)
    engine = "xlrd" if extension in LEGACY_EXCEL_EXTENSIONS else "openpyxl"
    return pd.read_excel(BytesIO(content), sheet_name=0, engine=engine, dtype=object)


def _clean_row(record: dict[Any, Any]) -> dict[str, Any]:
    row = {}
    for key, value in record.items():
        if value is None or pd.isna(value):
            continue
        if isinstance(value, str) and not value.strip():
            continue
        row[str(key)] = value
    return row


def read_rows(
    content: bytes,
    filename: str,
    *,
    max_rows: int,
    max_bytes: int | None = None,
) -> list[dict[str, Any]]:
    """Parse ``content`` and enforce the size limits before any validation."""
    extension = Path(filename).suffix.lower()
    if extension not in SUPPORTED_EXTENSIONS:
        raise UnreadableImportFile("Invalid file type. Only CSV and Excel (.xlsx, .xls) files are allowed.")

    if max_bytes is not None and len(content) > max_bytes:
        raise ImportTooLarge(f"File size exceeds {max_bytes // (1024 * 1024)}MB limit")

    if not content:
        raise EmptyImportFile()

    try:
        frame = _read_frame(content, extension)
    except pd.errors.EmptyDataError:
        raise EmptyImportFile()
    except (
        ValueError,
        KeyError,
        OSError,
        zipfile.BadZipFile,
        InvalidFileException,
        XLRDError,
        pd.errors.ParserError,
    ) as exc:
        logger.info("Could not parse %s: %s", filename, exc)
        raise UnreadableImportFile()

    rows = [_clean_row(record) for record in frame.to_dict(orient="records")]
    rows = [row for row in rows if row]

    if not rows:
        raise EmptyImportFile()
    if len(rows) > max_rows:
        raise ImportTooLarge(f"Maximum {max_rows} records can be uploaded at once")

    logger.debug("Read %d rows from %s", len(rows), filename)
    return rows
