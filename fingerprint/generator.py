"""
fingerprint/generator.py

Deterministic content fingerprints for tabular records.

A fingerprint identifies a record by the values of its "important columns".
Headers are matched case-insensitively after trimming, so two spreadsheets
that spell a header differently still produce the same fingerprint for the
same data.

Hash scheme
-----------
fingerprint = sha256( lower( trim( v1 + "|" + v2 + ... + "|" + vN ) ) )

Values are stringified individually but only the joined string is
normalized. Stored tracker fingerprints were produced with this exact
scheme, so changing it requires a backfill of ``tracker_records``.

Known limitation: the ``|`` separator is not escaped, so
``{"a": "x|y", "b": "z"}`` and ``{"a": "x", "b": "y|z"}`` share a
fingerprint under columns ``[a, b]``.
"""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence, Union

logger = logging.getLogger(__name__)

CellValue = Union[str, int, float, bool, None]
Record = Mapping[str, CellValue]

HASH_SEPARATOR = "|"
HEADER_ROW_OFFSET = 2


@dataclass(frozen=True)
class RowValidationError:
    """
    One row-level problem found while reading or fingerprinting an upload.
    """

    row_number: int
    message: str
    column: str | None = None
    value: str | None = None


class MalformedRecordError(TypeError):
    """
    Raised when a row handed to the generator is not a mapping.
    """


@dataclass(frozen=True)
class FingerprintResult:
    """
    Fingerprint of one record plus the values that produced it.
    """

    fingerprint: str
    hash_input: str
    """Normalized pre-hash string. Diagnostics only."""

    matched_values: dict[str, CellValue]
    """Selected column -> source value, for columns present in the record."""


@dataclass(frozen=True)
class FingerprintedRow:
    """
    One batch row ready for duplicate classification.
    """

    row_number: int
    fingerprint: str
    record: Record
    matched_values: dict[str, CellValue] = field(default_factory=dict)


@dataclass(frozen=True)
class FingerprintBatch:
    """
    Fingerprints for a whole batch plus rows that could not be fingerprinted.
    """

    rows: list[FingerprintedRow]
    columns: tuple[str, ...]
    row_errors: list[RowValidationError] = field(default_factory=list)


def normalize_header(name: Any) -> str:
    """
    Canonical form used to match a selected column against record headers.
    """

    if name is None:
        return ""
    return str(name).strip().lower()


def stringify_cell(value: CellValue) -> str:
    """
    Coerce one cell value to the text that enters the hash input.

    Integral floats render without a fractional part so that a spreadsheet
    cell holding ``1`` hashes identically whether the reader produced an int
    or a float.
    """

    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _header_lookup(record: Record) -> dict[str, str]:
    lookup: dict[str, str] = {}
    for key in record.keys():
        lookup.setdefault(normalize_header(key), key)
    return lookup


def fingerprint_record(
    record: Record,
    columns: Sequence[str] = (),
) -> FingerprintResult:
    """
    Compute the SHA-256 fingerprint of one record.

    Args:
        record: Column name -> cell value mapping, as read from the sheet.
        columns: Ordered important columns. Empty means every column of
            ``record`` in its own order.

    Returns:
        FingerprintResult with the hex digest and the matched values.

    Raises:
        MalformedRecordError: If ``record`` is not a mapping.
    """

    if not isinstance(record, Mapping):
        raise MalformedRecordError(
            f"Record must be a mapping of column name to value, got {type(record).__name__}."
        )

    lookup = _header_lookup(record)
    selected = list(columns) if columns else list(record.keys())

    parts: list[str] = []
    matched: dict[str, CellValue] = {}
    for column in selected:
        source_key = lookup.get(normalize_header(column))
        if source_key is None:
            parts.append("")
            continue
        value = record[source_key]
        matched[str(column)] = value
        parts.append(stringify_cell(value))

    hash_input = HASH_SEPARATOR.join(parts).lower().strip()
    digest = hashlib.sha256(hash_input.encode("utf-8")).hexdigest()
    return FingerprintResult(fingerprint=digest, hash_input=hash_input, matched_values=matched)


def resolve_batch_columns(
    records: Sequence[Any],
    columns: Sequence[str],
) -> tuple[str, ...]:
    """
    Decide the column selection for a whole batch.

    An explicit selection is used as-is. Otherwise the headers of the first
    well-formed record are used for every row in the batch.
    """

    if columns:
        return tuple(columns)
    for record in records:
        if isinstance(record, Mapping):
            return tuple(str(key) for key in record.keys())
    return ()


def fingerprint_rows(
    records: Sequence[Any],
    columns: Sequence[str] = (),
    *,
    first_row_number: int = HEADER_ROW_OFFSET,
    row_numbers: Sequence[int] | None = None,
) -> FingerprintBatch:
    """
    Fingerprint every record of a batch in order.

    Row numbers start at ``first_row_number`` (2 for a sheet with one header
    row) unless ``row_numbers`` gives the sheet row of each record. Rows
    that are not mappings are excluded and reported in ``row_errors``
    instead of being skipped silently.

    Raises:
        ValueError: If ``row_numbers`` and ``records`` differ in length.
    """

    if row_numbers is not None and len(row_numbers) != len(records):
        raise ValueError(
            f"row_numbers has {len(row_numbers)} entries for {len(records)} records"
        )

    batch_columns = resolve_batch_columns(records, columns)
    rows: list[FingerprintedRow] = []
    row_errors: list[RowValidationError] = []

    for offset, record in enumerate(records):
        row_number = row_numbers[offset] if row_numbers is not None else first_row_number + offset
        try:
            result = fingerprint_record(record, batch_columns)
        except MalformedRecordError as exc:
            row_errors.append(
                RowValidationError(
                    row_number=row_number,
                    message=str(exc),
                    column=None,
                    value=None,
                )
            )
            continue

        rows.append(
            FingerprintedRow(
                row_number=row_number,
                fingerprint=result.fingerprint,
                record=record,
                matched_values=result.matched_values,
            )
        )

    if rows and logger.isEnabledFor(logging.DEBUG):
        sample = fingerprint_record(rows[0].record, batch_columns)
        logger.debug(
            "Fingerprint sample row=%s input=%r hash=%s",
            rows[0].row_number,
            sample.hash_input,
            sample.fingerprint,
        )

    return FingerprintBatch(rows=rows, columns=batch_columns, row_errors=row_errors)
