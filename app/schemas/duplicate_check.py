"""
app/schemas/duplicate_check.py

Response schemas for duplicate checks and tracker uploads.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class RowErrorResponse(BaseModel):
    """
    API response model for one row-level problem.
    """

    row_number: int = Field(..., ge=1)
    message: str
    column: str | None = None
    value: str | None = None


class DuplicateRowResponse(BaseModel):
    row_number: int = Field(..., ge=1)
    fingerprint: str
    kind: str = Field(..., description="in_batch, persisted or both")
    first_occurrence_row: int | None = None
    matched_values: dict[str, Any] = Field(default_factory=dict)
    record: dict[str, Any] = Field(default_factory=dict)


class DuplicateCheckResponse(BaseModel):
    total_rows: int = Field(..., ge=0)
    unique_rows: int = Field(..., ge=0)
    duplicate_count: int = Field(..., ge=0)
    has_duplicates: bool
    columns: list[str] = Field(default_factory=list)
    counts_by_kind: dict[str, int] = Field(default_factory=dict)
    duplicates: list[DuplicateRowResponse] = Field(
        default_factory=list,
        description="First duplicates in row order, capped by the report limit",
    )
    duplicates_truncated: bool = False
    row_errors: list[RowErrorResponse] = Field(default_factory=list)


class TrackerUploadResponse(BaseModel):
    policy: str
    validate_only: bool
    inserted: int = Field(..., ge=0)
    skipped_rows: list[int] = Field(default_factory=list)
    message: str
    check: DuplicateCheckResponse


class DuplicateRejectionResponse(BaseModel):
    message: str
    check: DuplicateCheckResponse
