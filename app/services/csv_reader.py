"""
app/services/csv_reader.py

Reads an uploaded CSV into header-keyed records.
"""

from __future__ import annotations

import csv
import io
from dataclasses import dataclass, field
from typing import BinaryIO

from app.domain.qc_records import RowValidationError


class CSVUploadError(ValueError):
    """
    Raised when an upload cannot be read as a CSV with a header row.
    """


@dataclass(frozen=True)
class CSVUpload:
    headers: list[str]
    records: list[dict[str, str]]
    row_numbers: list[int]
    row_errors: list[RowValidationError] = field(default_factory=list)


def read_csv_upload(raw_file: BinaryIO, *, max_rows: int) -> CSVUpload:
    """
    Parse a UTF-8 CSV stream (BOM tolerated) into records.

    Rows whose cells are all empty are skipped and reported; blank lines
    are dropped by the reader. ``row_numbers`` keeps the sheet line of each
    record, counting the header as line 1.

    Raises:
        CSVUploadError: On missing headers, bad encoding, malformed CSV,
            or more than ``max_rows`` data rows.
    """

    raw_file.seek(0)
    text_stream: io.TextIOWrapper | None = None
    records: list[dict[str, str]] = []
    row_numbers: list[int] = []
    row_errors: list[RowValidationError] = []

    try:
        text_stream = io.TextIOWrapper(raw_file, encoding="utf-8-sig", newline="")
        reader = csv.DictReader(text_stream)
        headers = [header for header in (reader.fieldnames or []) if header is not None]
        if not any(header.strip() for header in headers):
            raise CSVUploadError("CSV header row is missing.")

        for raw_row in reader:
            row_number = reader.line_num
            values = {
                key: (value or "")
                for key, value in raw_row.items()
                if key is not None
            }
            if not any(str(value).strip() for value in values.values()):
                row_errors.append(
                    RowValidationError(
                        row_number=row_number,
                        message="Completely empty rows are skipped.",
                    )
                )
                continue
            records.append(values)
            row_numbers.append(row_number)
            if len(records) > max_rows:
                raise CSVUploadError(f"CSV exceeds the maximum of {max_rows} data rows.")

    except UnicodeDecodeError as exc:
        raise CSVUploadError("CSV must be UTF-8 encoded.") from exc
    except csv.Error as exc:
        raise CSVUploadError(f"Invalid CSV format: {exc}") from exc
    finally:
        if text_stream is not None:
            try:
                text_stream.detach()
            except ValueError:
                pass

    return CSVUpload(
        headers=headers,
        records=records,
        row_numbers=row_numbers,
        row_errors=row_errors,
    )
