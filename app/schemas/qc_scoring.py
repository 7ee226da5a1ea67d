"""
app/schemas/qc_scoring.py

Request and response schemas for QC catalog, scoring and evaluations.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

_REQUEST_CONFIG = ConfigDict(extra="forbid", str_strip_whitespace=True, allow_inf_nan=False)


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


class SubcategoryResponse(BaseModel):
    subcategory_id: int
    name: str
    point_value: float
    is_fatal: bool


class CategoryResponse(BaseModel):
    category_id: int
    name: str
    total_points: float
    subcategories: list[SubcategoryResponse] = Field(default_factory=list)


class CategoryCatalogResponse(BaseModel):
    project_type_id: int
    categories: list[CategoryResponse] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Markings and scores
# ---------------------------------------------------------------------------


class MarkingRequest(BaseModel):
    """
    Sign constraints are checked by the marking validator so every
    violation is reported together.
    """

    model_config = _REQUEST_CONFIG

    subcategory_id: int
    error_count: int = 0
    points_deducted: float = 0.0


class MarkingValidationRequest(BaseModel):
    model_config = _REQUEST_CONFIG

    markings: list[MarkingRequest] = Field(default_factory=list)


class MarkingValidationResponse(BaseModel):
    valid: bool
    errors: list[str] = Field(default_factory=list)


class ScoreRequest(BaseModel):
    model_config = _REQUEST_CONFIG

    project_type_id: int
    markings: list[MarkingRequest] = Field(default_factory=list)


class SubcategoryScoreResponse(BaseModel):
    subcategory_id: int
    subcategory_name: str
    error_count: int
    points_deducted: float
    is_fatal: bool


class CategoryScoreResponse(BaseModel):
    category_id: int
    category_name: str
    category_points: float
    points_deducted: float
    final_score: float
    percentage: float
    has_fatal_error: bool
    subcategories: list[SubcategoryScoreResponse] = Field(default_factory=list)


class FatalErrorResponse(BaseModel):
    subcategory_id: int
    subcategory_name: str
    category_name: str


class ScoreResultResponse(BaseModel):
    total_points_earned: float
    total_project_points: float
    total_percentage: float
    is_rejected: bool
    rejection_reason: str | None = None
    category_scores: list[CategoryScoreResponse] = Field(default_factory=list)
    fatal_errors: list[FatalErrorResponse] = Field(default_factory=list)


class ScoreResponse(BaseModel):
    result: ScoreResultResponse
    summary: str


# ---------------------------------------------------------------------------
# Evaluations
# ---------------------------------------------------------------------------


class RecordMarkingRequest(BaseModel):
    model_config = _REQUEST_CONFIG

    subcategory_id: int
    has_error: bool = True
    error_count: int = 0
    points_deducted: float = 0.0
    subcategory_name: str | None = None
    notes: str | None = None


class RecordEvaluationRequest(BaseModel):
    model_config = _REQUEST_CONFIG

    record_id: str | int
    record_data: dict[str, Any] = Field(default_factory=dict)
    afd_markings: list[RecordMarkingRequest] = Field(default_factory=list)


class QCEvaluationRequest(BaseModel):
    model_config = _REQUEST_CONFIG

    project_id: int
    project_type_id: int
    task_id: int | None = None
    qc_agent_id: int | None = None
    total_records: int | None = Field(default=None, ge=0)
    overall_notes: str | None = None
    records: list[RecordEvaluationRequest] = Field(default_factory=list)


class QCEvaluationResponse(BaseModel):
    evaluation_id: UUID | None = None
    result: ScoreResultResponse
    summary: str
    total_records: int
    feedback_status: str
    feedback: dict[str, Any] | None = None
    feedback_error: str | None = None


class ReviewSampleRecordResponse(BaseModel):
    record_id: int
    hash_value: str
    record_data: dict[str, Any]
    created_at: datetime | None = None


class ReviewSampleResponse(BaseModel):
    task_id: int
    total_records: int
    sample_size: int
    seed: int | None = None
    records: list[ReviewSampleRecordResponse] = Field(default_factory=list)
