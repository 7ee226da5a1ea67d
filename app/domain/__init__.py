"""
app/domain package marker.
"""

from app.domain.qc_records import (
    DuplicateCheckResult,
    FingerprintScope,
    IngestionOutcome,
    QCEvaluationSubmission,
    RecordEvaluation,
    RecordMarking,
    ReviewSample,
    RowValidationError,
    TrackerRowInput,
)

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
