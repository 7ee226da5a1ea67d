"""
app/domain/qc_records.py

Domain models shared by the duplicate-check and QC evaluation flows.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from fingerprint.generator import RowValidationError
from fingerprint.store import FingerprintScope

__all__ = [
    "DuplicateCheckResult",
    "FingerprintScope",
    "IngestionOutcome",
    "QCEvaluationSubmission",
    "RecordEvaluation",
    "RecordMarking",
    "ReviewSample",
    "RowValidationError",
    "TrackerRowInput",
]


@dataclass(frozen=True)
class TrackerRowInput:
    """
    Typed tracker row prepared for persistence.
    """

    user_id: int
    project_id: int
    task_id: int
    record_data: dict[str, Any]
    hash_value: str
    status: str = "ready"


@dataclass(frozen=True)
class RecordMarking:
    """
    One reviewer marking attached to a single evaluated record.
    """

    subcategory_id: int
    has_error: bool = True
    error_count: int = 0
    points_deducted: float = 0.0
    subcategory_name: str | None = None
    notes: str | None = None


@dataclass(frozen=True)
class RecordEvaluation:
    """
    Reviewer verdict for one sampled record.
    """

    record_id: str | int
    record_data: dict[str, Any] = field(default_factory=dict)
    markings: list[RecordMarking] = field(default_factory=list)


@dataclass(frozen=True)
class DuplicateCheckResult:
    """
    Duplicate classification of one upload.

    ``report`` is a ``fingerprint.classifier.ClassificationReport``.
    """

    total_rows: int
    columns: tuple[str, ...]
    report: Any
    row_errors: list[RowValidationError] = field(default_factory=list)

    @property
    def has_duplicates(self) -> bool:
        return self.report.has_duplicates


@dataclass(frozen=True)
class IngestionOutcome:
    """
    Result of one tracker upload under a duplicate policy.
    """

    policy: str
    validate_only: bool
    inserted: int
    skipped_rows: list[int]
    message: str
    check: DuplicateCheckResult


@dataclass(frozen=True)
class QCEvaluationSubmission:
    """
    Reviewer markings for a sample of one task's records.
    """

    project_id: int
    project_type_id: int
    records: list[RecordEvaluation]
    task_id: int | None = None
    qc_agent_id: int | None = None
    total_records: int | None = None
    overall_notes: str | None = None


@dataclass(frozen=True)
class ReviewSample:
    task_id: int
    total_records: int
    sample_size: int
    seed: int | None
    records: list[dict[str, Any]] = field(default_factory=list)
