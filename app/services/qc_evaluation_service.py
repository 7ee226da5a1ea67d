"""
app/services/qc_evaluation_service.py

Service layer for QC scoring, evaluation storage and feedback.

An evaluation submission carries per-record markings. They are summed per
subcategory into one Marking each, scored against the project type's
catalog, stored, and, when the score is under the feedback threshold or
the evaluation is rejected, sent for generated feedback.

Feedback is best-effort: a failure is logged at WARNING level, recorded
as ``feedback_status = "unavailable"`` and never fails the evaluation.
"""

from __future__ import annotations

import json
import logging
import math
import uuid
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from functools import lru_cache
from typing import Any

from sqlalchemy.orm import Session

from app.config import (
    SamplingSettings,
    ScoringSettings,
    get_sampling_settings,
    get_scoring_settings,
)
from app.domain.qc_records import QCEvaluationSubmission, RecordEvaluation, ReviewSample
from app.logging_utils import log_event
from app.repositories.category_catalog_repository import CategoryCatalogRepository
from app.repositories.qc_evaluation_repository import QCEvaluationRepository
from app.repositories.task_repository import TaskRepository
from app.repositories.tracker_record_repository import TrackerRecordRepository
from app.services.sampling import review_sample_size, sample_records
from app.services.text_generation import get_feedback_generator
from db.models.qc_evaluation import FeedbackStatus
from llm_feedback.feedback import FeedbackGenerator
from llm_feedback.request_builder import (
    IssueDetail,
    build_feedback_request,
    should_request_feedback,
)
from scoring.calculator import ScoringCalculator, generate_scoring_summary
from scoring.catalog import BaseCategoryCatalog
from scoring.errors import InputValidationError
from scoring.models import Category, Marking, ScoreResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScoredMarkings:
    score_result: ScoreResult
    summary: str


@dataclass(frozen=True)
class QCEvaluationOutcome:
    evaluation_id: uuid.UUID | None
    score_result: ScoreResult
    summary: str
    total_records: int
    feedback_status: str
    feedback: dict[str, Any] | None = None
    feedback_error: str | None = None


# ---------------------------------------------------------------------------
# Marking aggregation
# ---------------------------------------------------------------------------


def _validate_record_markings(records: Sequence[RecordEvaluation]) -> None:
    errors: list[str] = []
    for record in records:
        for marking in record.markings:
            if marking.error_count < 0:
                errors.append(
                    f"Record {record.record_id}: Negative error count for "
                    f"subcategory ID {marking.subcategory_id}"
                )
            if not math.isfinite(marking.points_deducted):
                errors.append(
                    f"Record {record.record_id}: Non-finite points deducted for "
                    f"subcategory ID {marking.subcategory_id}"
                )
            elif marking.points_deducted < 0:
                errors.append(
                    f"Record {record.record_id}: Negative points deducted for "
                    f"subcategory ID {marking.subcategory_id}"
                )
    if errors:
        raise InputValidationError(errors)


def aggregate_record_markings(
    records: Sequence[RecordEvaluation],
) -> tuple[list[Marking], list[IssueDetail]]:
    """
    Sum per-record markings into one Marking per subcategory.

    Only markings with ``has_error`` and a positive ``error_count`` count.
    Each of them also yields an IssueDetail with a JSON snippet of the
    record. Markings keep the order in which subcategories first appear.

    Raises:
        InputValidationError: If any per-record marking is negative or non-finite.
    """

    _validate_record_markings(records)

    totals: dict[int, list[float]] = {}
    issues: list[IssueDetail] = []
    for record in records:
        snippet = json.dumps(record.record_data, default=str, ensure_ascii=False)
        for marking in record.markings:
            if not marking.has_error or marking.error_count <= 0:
                continue
            bucket = totals.setdefault(marking.subcategory_id, [0, 0.0])
            bucket[0] += marking.error_count
            bucket[1] += marking.points_deducted
            issues.append(
                IssueDetail(
                    subcategory_id=marking.subcategory_id,
                    record_id=record.record_id,
                    error_details=marking.notes,
                    data_snippet=snippet,
                )
            )

    markings = [
        Marking(subcategory_id=subcategory_id, error_count=int(count), points_deducted=points)
        for subcategory_id, (count, points) in totals.items()
    ]
    return markings, issues


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class QCEvaluationService:
    """
    Coordinates scoring, evaluation persistence, review sampling and feedback.
    """

    def __init__(
        self,
        scoring_settings: ScoringSettings,
        sampling_settings: SamplingSettings,
        *,
        catalog_factory: Callable[[Session], BaseCategoryCatalog] = CategoryCatalogRepository,
        evaluation_repository_factory: Callable[[Session], QCEvaluationRepository] = QCEvaluationRepository,
        tracker_repository_factory: Callable[[Session], TrackerRecordRepository] = TrackerRecordRepository,
        task_repository_factory: Callable[[Session], TaskRepository] = TaskRepository,
        feedback_generator_factory: Callable[[], FeedbackGenerator] | None = None,
    ) -> None:
        self._scoring_settings = scoring_settings
        self._sampling_settings = sampling_settings
        self._catalog_factory = catalog_factory
        self._evaluation_repository_factory = evaluation_repository_factory
        self._tracker_repository_factory = tracker_repository_factory
        self._task_repository_factory = task_repository_factory
        self._feedback_generator_factory = feedback_generator_factory

    def get_categories(self, db: Session, project_type_id: int) -> list[Category]:
        return list(self._catalog_factory(db).get_categories(project_type_id))

    def score(
        self,
        db: Session,
        project_type_id: int,
        markings: Sequence[Marking],
    ) -> ScoredMarkings:
        """
        Raises:
            InputValidationError: If the markings break a precondition.
            CatalogUnavailableError: If the catalog cannot be fetched.
        """

        calculator = ScoringCalculator(
            self._catalog_factory(db),
            catalog_max_retries=self._scoring_settings.catalog_max_retries,
            catalog_backoff_seconds=self._scoring_settings.catalog_backoff_seconds,
        )
        result = calculator.calculate_score(project_type_id, markings)
        return ScoredMarkings(score_result=result, summary=generate_scoring_summary(result))

    def evaluate(self, db: Session, submission: QCEvaluationSubmission) -> QCEvaluationOutcome:
        """
        Aggregate, score, store and, when warranted, request feedback.

        Raises:
            InputValidationError: If any marking is invalid.
            CatalogUnavailableError: If the catalog cannot be fetched.
        """

        markings, issues = aggregate_record_markings(submission.records)
        scored = self.score(db, submission.project_type_id, markings)
        result = scored.score_result
        total_records = (
            submission.total_records
            if submission.total_records is not None
            else len(submission.records)
        )

        repository = self._evaluation_repository_factory(db)
        try:
            evaluation = repository.create(
                project_id=submission.project_id,
                project_type_id=submission.project_type_id,
                score_result=result,
                total_records=total_records,
                task_id=submission.task_id,
                qc_agent_id=submission.qc_agent_id,
                overall_notes=submission.overall_notes,
            )
            db.commit()
        except Exception:
            db.rollback()
            raise

        feedback_status = FeedbackStatus.NOT_REQUESTED
        feedback: dict[str, Any] | None = None
        feedback_error: str | None = None

        if should_request_feedback(result, self._scoring_settings.feedback_score_threshold):
            request = build_feedback_request(
                result,
                issues,
                total_records=total_records,
                max_samples=self._scoring_settings.feedback_max_samples,
            )
            try:
                if self._feedback_generator_factory is None:
                    raise RuntimeError("Feedback generation is not configured.")
                output = self._feedback_generator_factory().generate(request)
                feedback = output.model_dump()
                feedback_status = FeedbackStatus.GENERATED
            except Exception as exc:  # noqa: BLE001
                feedback_status = FeedbackStatus.UNAVAILABLE
                feedback_error = str(exc)
                logger.warning(
                    "QC feedback unavailable evaluation_id=%s error_type=%s: %s",
                    evaluation.id,
                    type(exc).__name__,
                    exc,
                )

            try:
                repository.record_feedback(
                    evaluation,
                    status=feedback_status,
                    feedback=feedback,
                    error=feedback_error,
                )
                db.commit()
            except Exception:
                db.rollback()
                raise

        log_event(
            logger,
            logging.INFO,
            "qc_evaluation_stored",
            evaluation_id=evaluation.id,
            project_id=submission.project_id,
            task_id=submission.task_id,
            records=len(submission.records),
            total_percentage=result.total_percentage,
            is_rejected=result.is_rejected,
            feedback_status=feedback_status,
        )

        return QCEvaluationOutcome(
            evaluation_id=evaluation.id,
            score_result=result,
            summary=scored.summary,
            total_records=total_records,
            feedback_status=feedback_status,
            feedback=feedback,
            feedback_error=feedback_error,
        )

    def review_sample(self, db: Session, task_id: int, *, seed: int | None = None) -> ReviewSample:
        """
        Draw the records of a task that a reviewer should mark.

        Raises:
            TaskNotFoundError: If the task does not exist.
        """

        self._task_repository_factory(db).get_or_raise(task_id)
        records = self._tracker_repository_factory(db).list_for_task(task_id)
        size = review_sample_size(len(records), self._sampling_settings.fraction)
        sampled = sample_records(records, size, seed=seed)
        return ReviewSample(
            task_id=task_id,
            total_records=len(records),
            sample_size=len(sampled),
            seed=seed,
            records=[
                {
                    "record_id": record.id,
                    "hash_value": record.hash_value,
                    "record_data": record.record_data,
                    "created_at": record.created_at,
                }
                for record in sampled
            ],
        )


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


@lru_cache(maxsize=1)
def get_qc_evaluation_service() -> QCEvaluationService:
    """
    Build and cache the QC evaluation service with env-driven settings.
    """
    return QCEvaluationService(
        get_scoring_settings(),
        get_sampling_settings(),
        feedback_generator_factory=get_feedback_generator,
    )
