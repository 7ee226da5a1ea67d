"""
app/services/ai_evaluation_service.py

AI data-quality evaluation of an uploaded CSV.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from functools import lru_cache
from typing import BinaryIO

from sqlalchemy.orm import Session

from app.config import DuplicateCheckSettings, get_duplicate_check_settings
from app.repositories.task_repository import TaskRepository
from app.services.csv_reader import read_csv_upload
from app.services.text_generation import get_data_quality_evaluator
from fingerprint.columns import parse_important_columns
from llm_feedback.data_evaluation import AggregatedEvaluation, DataQualityEvaluator

logger = logging.getLogger(__name__)


class EmptyUploadError(ValueError):
    """
    Raised when an upload has a header row but no data rows.
    """


class AIEvaluationService:
    """
    Reads an upload, resolves its focus columns and runs the batched evaluator.
    """

    def __init__(
        self,
        settings: DuplicateCheckSettings,
        *,
        evaluator_factory: Callable[[], DataQualityEvaluator] = get_data_quality_evaluator,
        task_repository_factory: Callable[[Session], TaskRepository] = TaskRepository,
    ) -> None:
        self._settings = settings
        self._evaluator_factory = evaluator_factory
        self._task_repository_factory = task_repository_factory

    def evaluate_upload(
        self,
        db: Session,
        raw_file: BinaryIO,
        *,
        task_id: int | None = None,
        columns: Sequence[str] | str | None = None,
    ) -> AggregatedEvaluation:
        """
        Raises:
            CSVUploadError: If the upload cannot be read.
            EmptyUploadError: If the upload has no data rows.
            ExternalServiceError: If any batch evaluation fails.
        """

        upload = read_csv_upload(raw_file, max_rows=self._settings.max_rows)
        if not upload.records:
            raise EmptyUploadError("CSV contains no data rows.")

        raw_columns = columns
        if not raw_columns and task_id is not None:
            raw_columns = self._task_repository_factory(db).get_or_raise(task_id).important_columns
        important_columns = parse_important_columns(raw_columns, upload.headers)

        logger.info(
            "AI evaluation requested records=%s columns=%s task_id=%s",
            len(upload.records),
            len(important_columns),
            task_id,
        )
        result = self._evaluator_factory().evaluate(
            upload.records, important_columns, row_numbers=upload.row_numbers
        )
        if result is None:
            raise EmptyUploadError("CSV contains no data rows.")
        return result


@lru_cache(maxsize=1)
def get_ai_evaluation_service() -> AIEvaluationService:
    return AIEvaluationService(get_duplicate_check_settings())
