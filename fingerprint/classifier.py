"""
fingerprint/classifier.py

Duplicate classification for a fingerprinted batch.

Every row is classified against two sources:

- rows earlier in the same batch (in-batch duplicates), and
- a snapshot of fingerprints already persisted.

The pass is strictly sequential in row order. The first row carrying a
fingerprint is the original; every later row with the same fingerprint
points back to it through ``first_occurrence_row``. Whether to reject the
batch or only skip the duplicates is left to the caller.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Iterable, Sequence

from fingerprint.generator import CellValue, FingerprintedRow, Record


class DuplicateKind:
    UNIQUE = "unique"
    IN_BATCH = "in_batch"
    PERSISTED = "persisted"
    BOTH = "both"


class DuplicatePolicy:
    """
    Ingestion policy applied to a classification report by the caller.
    """

    STRICT = "strict"
    LENIENT = "lenient"

    ALL = (STRICT, LENIENT)


@dataclass(frozen=True)
class RowClassification:
    row_number: int
    fingerprint: str
    kind: str
    first_occurrence_row: int | None = None


@dataclass(frozen=True)
class DuplicateRecord:
    """
    One duplicate row with the column values that caused the match.
    """

    row_number: int
    fingerprint: str
    kind: str
    first_occurrence_row: int | None
    record: Record
    matched_values: dict[str, CellValue]
    columns: tuple[str, ...]


@dataclass(frozen=True)
class ClassificationReport:
    """
    Outcome of one classification pass.
    """

    rows: list[RowClassification]
    duplicates: list[DuplicateRecord] = field(default_factory=list)

    @property
    def total_rows(self) -> int:
        return len(self.rows)

    @property
    def duplicate_count(self) -> int:
        return len(self.duplicates)

    @property
    def has_duplicates(self) -> bool:
        return bool(self.duplicates)

    @property
    def unique_count(self) -> int:
        return self.total_rows - self.duplicate_count

    @property
    def unique_row_numbers(self) -> list[int]:
        return [row.row_number for row in self.rows if row.kind == DuplicateKind.UNIQUE]

    def count_by_kind(self) -> dict[str, int]:
        counts = Counter(row.kind for row in self.rows)
        return {
            kind: counts.get(kind, 0)
            for kind in (
                DuplicateKind.UNIQUE,
                DuplicateKind.IN_BATCH,
                DuplicateKind.PERSISTED,
                DuplicateKind.BOTH,
            )
        }

    def rows_of_kind(self, *kinds: str) -> list[int]:
        wanted = set(kinds)
        return [duplicate.row_number for duplicate in self.duplicates if duplicate.kind in wanted]


def _kind_for(in_batch: bool, persisted: bool) -> str:
    if in_batch and persisted:
        return DuplicateKind.BOTH
    if persisted:
        return DuplicateKind.PERSISTED
    if in_batch:
        return DuplicateKind.IN_BATCH
    return DuplicateKind.UNIQUE


def classify_batch(
    rows: Sequence[FingerprintedRow],
    persisted_fingerprints: Iterable[str],
    columns: Sequence[str] = (),
) -> ClassificationReport:
    """
    Classify each row as unique, in-batch duplicate, persisted duplicate, or both.

    Rows are ordered by ``row_number`` before the pass so that shards
    fingerprinted in parallel reconcile to the same verdicts as a single
    sequential read.

    Args:
        rows: Fingerprinted rows of one batch.
        persisted_fingerprints: Fingerprints already stored. Copied into a
            frozen snapshot before the pass.
        columns: Column selection used to build the fingerprints, echoed in
            each DuplicateRecord for reporting.

    Returns:
        ClassificationReport covering every row.
    """

    snapshot = frozenset(persisted_fingerprints)
    selection = tuple(columns)
    first_seen: dict[str, int] = {}
    classifications: list[RowClassification] = []
    duplicates: list[DuplicateRecord] = []

    for row in sorted(rows, key=lambda item: item.row_number):
        first_row = first_seen.get(row.fingerprint)
        in_batch = first_row is not None
        persisted = row.fingerprint in snapshot
        kind = _kind_for(in_batch, persisted)

        classifications.append(
            RowClassification(
                row_number=row.row_number,
                fingerprint=row.fingerprint,
                kind=kind,
                first_occurrence_row=first_row,
            )
        )

        if kind != DuplicateKind.UNIQUE:
            duplicates.append(
                DuplicateRecord(
                    row_number=row.row_number,
                    fingerprint=row.fingerprint,
                    kind=kind,
                    first_occurrence_row=first_row,
                    record=row.record,
                    matched_values=dict(row.matched_values),
                    columns=selection or tuple(str(key) for key in row.record.keys()),
                )
            )

        if not in_batch:
            first_seen[row.fingerprint] = row.row_number

    return ClassificationReport(rows=classifications, duplicates=duplicates)


def describe_rejection(report: ClassificationReport) -> str:
    """
    Human-readable reason for rejecting a batch under the strict policy.
    """

    in_batch_rows = report.rows_of_kind(DuplicateKind.IN_BATCH, DuplicateKind.BOTH)
    persisted_rows = report.rows_of_kind(DuplicateKind.PERSISTED, DuplicateKind.BOTH)

    message = f"File upload rejected: Found {report.duplicate_count} duplicate records."
    if in_batch_rows:
        message += (
            f" {len(in_batch_rows)} duplicates within the file "
            f"(rows: {', '.join(str(row) for row in in_batch_rows)})."
        )
    if persisted_rows:
        message += (
            f" {len(persisted_rows)} duplicates already exist in database "
            f"(rows: {', '.join(str(row) for row in persisted_rows)})."
        )
    message += " Please remove duplicates and upload again."
    return message
