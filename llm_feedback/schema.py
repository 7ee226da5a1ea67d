"""Structured output contracts for text-generation responses."""

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

_STRICT_CONFIG = ConfigDict(
    extra="forbid",
    frozen=True,
    str_strip_whitespace=True,
)

# Nested items tolerate extra keys; only top-level keys are projected.
_ITEM_CONFIG = ConfigDict(
    extra="ignore",
    frozen=True,
    str_strip_whitespace=True,
)


class CategoryAnalysis(BaseModel):
    model_config = _ITEM_CONFIG

    subcategory_name: str = Field(min_length=1)
    error_count: int = Field(ge=0)
    is_fatal_error: bool = False
    impact: str = ""
    recommendations: List[str] = Field(default_factory=list)


class PriorityIssue(BaseModel):
    model_config = _ITEM_CONFIG

    subcategory: str = Field(min_length=1)
    severity: Literal["high", "medium", "low"]
    affected_records: int = Field(default=0, ge=0)
    action_required: str = ""

    @field_validator("severity", mode="before")
    @classmethod
    def _lower_severity(cls, value: object) -> object:
        return value.strip().lower() if isinstance(value, str) else value


class FeedbackOutput(BaseModel):
    """Feedback contract returned for a scored QC evaluation."""

    model_config = _STRICT_CONFIG

    summary: str = Field(min_length=1)
    overall_score: float = Field(ge=0.0, le=100.0)
    is_rejected: bool
    category_analysis: List[CategoryAnalysis] = Field(default_factory=list)
    priority_issues: List[PriorityIssue] = Field(default_factory=list)
    improvement_suggestions: List[str] = Field(default_factory=list)
    next_steps: List[str] = Field(default_factory=list)


class CriticalIssue(BaseModel):
    model_config = _ITEM_CONFIG

    issue: str = Field(min_length=1)
    location: str = ""
    impact: str = ""
    fix: str = ""
    affected_records: Optional[int] = Field(default=None, ge=0)


class DataEvaluationOutput(BaseModel):
    """Data-quality contract returned for one chunk of spreadsheet records."""

    model_config = _STRICT_CONFIG

    quality_score: float = Field(ge=0.0, le=100.0)
    total_records: int = Field(default=0, ge=0)
    valid_records: int = Field(default=0, ge=0)
    issues_found: Optional[int] = Field(default=None, ge=0)
    summary: str = "AI analysis completed"
    critical_issues: List[CriticalIssue] = Field(default_factory=list)
    suggestions: List[str] = Field(default_factory=list)
