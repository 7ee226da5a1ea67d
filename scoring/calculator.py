"""
scoring/calculator.py

Category-weighted QC scoring rollup with fatal-error override.

Formulas
--------
category deduction   = sum(points_deducted of its subcategory markings),
                       or the full category weight once a fatal
                       subcategory has error_count > 0
category final score = max(0, category weight - category deduction)
category percentage  = final score / category weight * 100   (0 if weight <= 0)
total percentage     = sum(final scores) / sum(weights) * 100 (0 if sum <= 0),
                       rounded to 2 decimals, half away from zero
"""

from __future__ import annotations

import logging
import time
from decimal import ROUND_HALF_UP, Decimal
from typing import Sequence

from scoring.catalog import BaseCategoryCatalog
from scoring.errors import CatalogUnavailableError, InputValidationError
from scoring.models import (
    Category,
    CategoryScore,
    FatalErrorEvent,
    Marking,
    ScoreResult,
    SubcategoryScore,
)
from scoring.validator import validate_markings

logger = logging.getLogger(__name__)

_TWO_PLACES = Decimal("0.01")


def round_half_up(value: float, places: Decimal = _TWO_PLACES) -> float:
    """
    Round to a fixed number of decimals with ROUND_HALF_UP semantics.
    """

    return float(Decimal(str(value)).quantize(places, rounding=ROUND_HALF_UP))


def _points(value: float | None, category_name: str = "") -> float:
    if value is None:
        return 0.0
    points = float(value)
    if not points > 0:
        if points != 0:
            logger.warning(
                "Category %r has non-positive total points %s; it carries no weight",
                category_name,
                value,
            )
        return 0.0
    return points


class ScoringCalculator:
    """
    Stateless scoring engine bound to a category catalog.

    The catalog is read once per :meth:`calculate_score` call. Only the
    catalog fetch is retried; the rollup itself is deterministic.
    """

    def __init__(
        self,
        catalog: BaseCategoryCatalog,
        *,
        catalog_max_retries: int = 0,
        catalog_backoff_seconds: float = 0.5,
    ) -> None:
        self._catalog = catalog
        self._catalog_max_retries = max(0, catalog_max_retries)
        self._catalog_backoff_seconds = max(0.0, catalog_backoff_seconds)

    def calculate_score(
        self,
        project_type_id: int,
        markings: Sequence[Marking],
    ) -> ScoreResult:
        """
        Score a marking submission against the project type's catalog.

        Raises:
            InputValidationError: If the markings break a precondition.
            CatalogUnavailableError: If the catalog cannot be fetched.
        """

        validation = validate_markings(markings)
        if not validation.valid:
            raise InputValidationError(validation.errors)

        categories = self._fetch_catalog(project_type_id)
        result = self.rollup(categories, markings)

        logger.info(
            "QC score calculated project_type_id=%s categories=%d markings=%d "
            "total_percentage=%.2f is_rejected=%s",
            project_type_id,
            len(categories),
            len(markings),
            result.total_percentage,
            result.is_rejected,
        )
        return result

    def rollup(
        self,
        categories: Sequence[Category],
        markings: Sequence[Marking],
    ) -> ScoreResult:
        """
        Pure rollup of markings over an already fetched catalog.
        """

        by_subcategory = {marking.subcategory_id: marking for marking in markings}
        known_ids = {
            subcategory.subcategory_id
            for category in categories
            for subcategory in category.subcategories
        }
        unknown_ids = sorted(set(by_subcategory) - known_ids)
        if unknown_ids:
            logger.debug("Markings reference subcategories outside the catalog: %s", unknown_ids)

        category_scores: list[CategoryScore] = []
        fatal_errors: list[FatalErrorEvent] = []
        total_project_points = 0.0
        total_points_earned = 0.0

        for category in categories:
            category_points = _points(category.total_points, category.name)
            total_project_points += category_points

            points_deducted = 0.0
            has_fatal = False
            subcategory_scores: list[SubcategoryScore] = []

            for subcategory in category.subcategories:
                marking = by_subcategory.get(subcategory.subcategory_id)
                error_count = marking.error_count if marking else 0
                deducted = float(marking.points_deducted) if marking else 0.0

                if subcategory.is_fatal and error_count > 0:
                    fatal_errors.append(
                        FatalErrorEvent(
                            subcategory_id=subcategory.subcategory_id,
                            subcategory_name=subcategory.name,
                            category_name=category.name,
                        )
                    )
                    has_fatal = True
                elif not has_fatal:
                    points_deducted += deducted

                subcategory_scores.append(
                    SubcategoryScore(
                        subcategory_id=subcategory.subcategory_id,
                        subcategory_name=subcategory.name,
                        error_count=error_count,
                        points_deducted=deducted,
                        is_fatal=subcategory.is_fatal,
                    )
                )

            # A fatal error zeroes the whole category, not just its subcategory.
            if has_fatal:
                points_deducted = category_points

            final_score = max(0.0, category_points - points_deducted)
            percentage = final_score / category_points * 100.0 if category_points > 0 else 0.0
            total_points_earned += final_score

            category_scores.append(
                CategoryScore(
                    category_id=category.category_id,
                    category_name=category.name,
                    category_points=category_points,
                    points_deducted=points_deducted,
                    final_score=final_score,
                    percentage=percentage,
                    subcategories=subcategory_scores,
                    has_fatal_error=has_fatal,
                )
            )

        total_percentage = (
            total_points_earned / total_project_points * 100.0 if total_project_points > 0 else 0.0
        )
        is_rejected = bool(fatal_errors)
        rejection_reason = (
            "Fatal error(s) found: " + ", ".join(event.subcategory_name for event in fatal_errors)
            if is_rejected
            else None
        )

        return ScoreResult(
            total_points_earned=total_points_earned,
            total_project_points=total_project_points,
            total_percentage=round_half_up(total_percentage),
            is_rejected=is_rejected,
            rejection_reason=rejection_reason,
            category_scores=category_scores,
            fatal_errors=fatal_errors,
        )

    def _fetch_catalog(self, project_type_id: int) -> list[Category]:
        last_error: Exception | None = None
        for attempt in range(self._catalog_max_retries + 1):
            try:
                return list(self._catalog.get_categories(project_type_id))
            except Exception as exc:  # noqa: BLE001
                last_error = exc

            if attempt >= self._catalog_max_retries:
                break

            backoff_seconds = self._catalog_backoff_seconds * (2**attempt)
            logger.warning(
                "Catalog fetch retry project_type_id=%s attempt=%s/%s wait_seconds=%.2f error=%s",
                project_type_id,
                attempt + 1,
                self._catalog_max_retries,
                backoff_seconds,
                last_error,
            )
            time.sleep(backoff_seconds)

        logger.error(
            "Catalog fetch failed project_type_id=%s error=%s",
            project_type_id,
            last_error,
        )
        if isinstance(last_error, CatalogUnavailableError):
            raise last_error
        raise CatalogUnavailableError(project_type_id) from last_error


def generate_scoring_summary(result: ScoreResult) -> str:
    """
    One-line report of a score result.
    """

    if result.is_rejected:
        return f"QC REJECTED: {result.rejection_reason}. Overall score: {result.total_percentage}%"

    breakdown = ", ".join(
        f"{category.category_name}: {category.percentage:.1f}%"
        for category in result.category_scores
    )
    return f"QC PASSED: Overall score {result.total_percentage}%. Category breakdown: {breakdown}"
