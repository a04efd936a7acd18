"""Validate a bulk-upload spreadsheet locally, without touching the platform.

Run: python scripts/check_import.py self-internships path/to/file.xlsx
Exit code is 1 when the file is rejected or any row is invalid.
"""
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from app.core.config import settings
from app.schemas.imports import UploadType
from app.services.bulk_validation import validate_rows
from app.services.spreadsheet import ImportFileRejected, read_rows


def main(argv: list[str]) -> int:
    if len(argv) != 2 or argv[0] not in {t.value for t in UploadType}:
        types = "|".join(t.value for t in UploadType)
        print(f"usage: check_import.py <{types}> <file>")
        return 2

    upload_type = UploadType(argv[0])
    path = argv[1]
    with open(path, "rb") as fh:
        content = fh.read()

    try:
        rows = read_rows(
            content,
            os.path.basename(path),
            max_rows=settings.BULK_MAX_ROWS,
            max_bytes=settings.bulk_max_file_bytes,
        )
    except ImportFileRejected as exc:
        print(f"[rejected] {exc.message}")
        return 1

    result = validate_rows(upload_type, rows)
    print(f"{result.total} rows: {len(result.valid)} valid, {len(result.invalid)} invalid")

    for row in result.invalid:
        print(f"  row {row.row_number}: {'; '.join(row.errors)}")
    for row in result.valid + result.invalid:
        for warning in row.warnings:
            print(f"  row {row.row_number} [warning] {warning}")

    return 1 if result.invalid else 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
