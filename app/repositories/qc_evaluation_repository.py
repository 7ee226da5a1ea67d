"""
app/repositories/qc_evaluation_repository.py

Persistence of scored QC evaluations.
"""

from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from db.models.qc_evaluation import FeedbackStatus, QCEvaluation
from scoring.models import ScoreResult


class QCEvaluationRepository:
    """
    Stores evaluation results. Flushes but never commits.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def create(
        self,
        *,
        project_id: int,
        project_type_id: int,
        score_result: ScoreResult,
        total_records: int,
        task_id: int | None = None,
        qc_agent_id: int | None = None,
        overall_notes: str | None = None,
    ) -> QCEvaluation:
        evaluation = QCEvaluation(
            project_id=project_id,
            project_type_id=project_type_id,
            task_id=task_id,
            qc_agent_id=qc_agent_id,
            total_records=total_records,
            total_points_earned=score_result.total_points_earned,
            total_project_points=score_result.total_project_points,
            total_percentage=score_result.total_percentage,
            is_rejected=score_result.is_rejected,
            rejection_reason=score_result.rejection_reason,
            overall_notes=overall_notes,
            score_json=score_result.to_dict(),
            feedback_status=FeedbackStatus.NOT_REQUESTED,
        )
        self._session.add(evaluation)
        self._session.flush()
        return evaluation

    def record_feedback(
        self,
        evaluation: QCEvaluation,
        *,
        status: str,
        feedback: dict[str, Any] | None = None,
        error: str | None = None,
    ) -> QCEvaluation:
        evaluation.feedback_status = status
        evaluation.feedback_json = feedback
        evaluation.feedback_error = error
        self._session.flush()
        return evaluation

    def get(self, evaluation_id: uuid.UUID) -> QCEvaluation | None:
        stmt = select(QCEvaluation).where(QCEvaluation.id == evaluation_id)
        return self._session.execute(stmt).scalars().first()
