"""
app/schemas/ai_evaluation.py

Response schema for batched AI data-quality evaluation.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class AIEvaluationResponse(BaseModel):
    quality_score: float = Field(..., ge=0.0, le=100.0)
    total_records: int = Field(..., ge=0)
    valid_records: int = Field(..., ge=0)
    issues_found: int = Field(..., ge=0)
    summary: str
    batches: int = Field(..., ge=1)
    suggestions: list[str] = Field(default_factory=list)
    critical_issues: list[dict[str, Any]] = Field(default_factory=list)
