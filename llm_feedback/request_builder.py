"""Builds the structured feedback request for a scored QC evaluation.

Pure functions over a ScoreResult and optional per-record issue details;
no I/O happens here.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Iterable

from scoring.models import ScoreResult

SNIPPET_MAX_CHARS = 200
DEFAULT_FEEDBACK_THRESHOLD = 95.0


@dataclass(frozen=True)
class IssueDetail:
    """
    One reviewer-flagged problem on a single record.
    """

    subcategory_id: int
    record_id: str | int | None = None
    error_details: str | None = None
    data_snippet: str | None = None


@dataclass(frozen=True)
class SubcategoryErrorSummary:
    subcategory_id: int
    subcategory_name: str
    error_count: int
    is_fatal: bool
    samples: list[IssueDetail] = field(default_factory=list)


@dataclass(frozen=True)
class FeedbackRequest:
    overall_score: float
    total_records: int | None
    is_rejected: bool
    errors_by_subcategory: list[SubcategoryErrorSummary] = field(default_factory=list)
    fatal_errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def truncate_snippet(text: str | None, limit: int = SNIPPET_MAX_CHARS) -> str | None:
    if text is None:
        return None
    if len(text) <= limit:
        return text
    return text[:limit] + "..."


def should_request_feedback(
    score_result: ScoreResult,
    threshold: float = DEFAULT_FEEDBACK_THRESHOLD,
) -> bool:
    """
    True when the evaluation is rejected or scores below ``threshold``.
    """

    return score_result.is_rejected or score_result.total_percentage < threshold


def build_feedback_request(
    score_result: ScoreResult,
    issues: Iterable[IssueDetail] = (),
    total_records: int | None = None,
    max_samples: int = 5,
) -> FeedbackRequest:
    """
    Group issue details by subcategory next to the scored error counts.

    Subcategories with an error count in ``score_result`` appear even when
    no issue detail was supplied for them. Issues for subcategories the
    catalog does not know are dropped. At most ``max_samples`` issue
    samples are kept per subcategory, in input order.
    """

    samples_by_id: dict[int, list[IssueDetail]] = {}
    for issue in issues:
        bucket = samples_by_id.setdefault(issue.subcategory_id, [])
        if len(bucket) < max_samples:
            bucket.append(
                IssueDetail(
                    subcategory_id=issue.subcategory_id,
                    record_id=issue.record_id,
                    error_details=issue.error_details,
                    data_snippet=truncate_snippet(issue.data_snippet),
                )
            )

    errors_by_subcategory: list[SubcategoryErrorSummary] = []
    for sub_score in score_result.iter_subcategory_scores():
        samples = samples_by_id.get(sub_score.subcategory_id, [])
        if sub_score.error_count <= 0 and not samples:
            continue
        errors_by_subcategory.append(
            SubcategoryErrorSummary(
                subcategory_id=sub_score.subcategory_id,
                subcategory_name=sub_score.subcategory_name,
                error_count=sub_score.error_count,
                is_fatal=sub_score.is_fatal,
                samples=list(samples),
            )
        )

    return FeedbackRequest(
        overall_score=score_result.total_percentage,
        total_records=total_records,
        is_rejected=score_result.is_rejected,
        errors_by_subcategory=errors_by_subcategory,
        fatal_errors=[event.subcategory_name for event in score_result.fatal_errors],
    )
