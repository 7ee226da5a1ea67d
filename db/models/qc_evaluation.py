"""
db/models/qc_evaluation.py

Stored QC evaluation outcome with its category breakdown and feedback.
"""

from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy import BigInteger, Boolean, Float, Index, String, Text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin


class FeedbackStatus:
    NOT_REQUESTED = "not_requested"
    GENERATED = "generated"
    UNAVAILABLE = "unavailable"


class QCEvaluation(TimestampMixin, Base):
    __tablename__ = "qc_evaluations"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    project_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    project_type_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    task_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    qc_agent_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    total_records: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    total_points_earned: Mapped[float] = mapped_column(Float, nullable=False)
    total_project_points: Mapped[float] = mapped_column(Float, nullable=False)
    total_percentage: Mapped[float] = mapped_column(Float, nullable=False)
    is_rejected: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    overall_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    score_json: Mapped[dict[str, Any]] = mapped_column(
        JSONB,
        nullable=False,
        comment="Category and subcategory breakdown",
    )
    feedback_status: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        default=FeedbackStatus.NOT_REQUESTED,
        server_default=FeedbackStatus.NOT_REQUESTED,
    )
    feedback_json: Mapped[dict[str, Any] | None] = mapped_column(JSONB, nullable=True)
    feedback_error: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index("ix_qc_evaluations_project_id", "project_id"),
        Index("ix_qc_evaluations_task_id", "task_id"),
        Index("ix_qc_evaluations_is_rejected", "is_rejected"),
    )
