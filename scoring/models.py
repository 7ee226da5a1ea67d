"""
scoring/models.py

Typed structures for the category-weighted QC scoring rollup.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any


@dataclass(frozen=True)
class Subcategory:
    """
    One scorable error type within a category.

    ``point_value`` is informational; deductions come from the marking.
    """

    subcategory_id: int
    name: str
    point_value: float
    is_fatal: bool = False


@dataclass(frozen=True)
class Category:
    """
    Top-level scoring bucket with its weight and ordered subcategories.
    """

    category_id: int
    name: str
    total_points: float
    subcategories: tuple[Subcategory, ...] = ()


@dataclass(frozen=True)
class Marking:
    """
    Reviewer-submitted error tally against one subcategory.
    """

    subcategory_id: int
    error_count: int = 0
    points_deducted: float = 0.0


@dataclass(frozen=True)
class MarkingValidationResult:
    valid: bool
    errors: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class SubcategoryScore:
    subcategory_id: int
    subcategory_name: str
    error_count: int
    points_deducted: float
    is_fatal: bool


@dataclass(frozen=True)
class CategoryScore:
    category_id: int
    category_name: str
    category_points: float
    points_deducted: float
    final_score: float
    percentage: float
    subcategories: list[SubcategoryScore] = field(default_factory=list)
    has_fatal_error: bool = False


@dataclass(frozen=True)
class FatalErrorEvent:
    subcategory_id: int
    subcategory_name: str
    category_name: str


@dataclass(frozen=True)
class ScoreResult:
    """
    Final outcome of one scoring call.

    ``rejection_reason`` is set if and only if ``is_rejected``.
    """

    total_points_earned: float
    total_project_points: float
    total_percentage: float
    is_rejected: bool
    rejection_reason: str | None
    category_scores: list[CategoryScore] = field(default_factory=list)
    fatal_errors: list[FatalErrorEvent] = field(default_factory=list)

    def iter_subcategory_scores(self):
        for category in self.category_scores:
            yield from category.subcategories

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
