"""
tests/test_scoring_calculator.py

Pytest unit tests for the category-weighted scoring rollup.

All tests are pure Python: in-memory catalogs, no database.

Coverage
--------
- Marking validation (duplicates, negative values, reported once)
- End-to-end pass and fatal scenarios
- Fatal override zeroes the whole category
- Deductions larger than the category weight clamp at zero
- Zero-point catalogs never divide by zero
- Unknown subcategories are ignored
- Idempotence across repeated calls
- Catalog retry and CatalogUnavailableError
- Summary text
"""

from __future__ import annotations

import pytest

from scoring.calculator import ScoringCalculator, generate_scoring_summary, round_half_up
from scoring.catalog import BaseCategoryCatalog, InMemoryCategoryCatalog, legacy_is_fatal
from scoring.errors import CatalogUnavailableError, InputValidationError
from scoring.models import Category, Marking, Subcategory
from scoring.validator import validate_markings


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def categories() -> list[Category]:
    return [
        Category(
            category_id=1,
            name="Formatting",
            total_points=20,
            subcategories=(Subcategory(1, "Typo", 20),),
        ),
        Category(
            category_id=2,
            name="Compliance",
            total_points=100,
            subcategories=(Subcategory(2, "Fatal Error", 100, is_fatal=True),),
        ),
    ]


@pytest.fixture()
def calculator(categories) -> ScoringCalculator:
    return ScoringCalculator(InMemoryCategoryCatalog(categories))


class FlakyCatalog(BaseCategoryCatalog):
    def __init__(self, categories: list[Category], failures: int) -> None:
        self._categories = categories
        self._failures = failures
        self.calls = 0

    def get_categories(self, project_type_id: int) -> list[Category]:
        self.calls += 1
        if self.calls <= self._failures:
            raise ConnectionError("catalog down")
        return list(self._categories)


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class TestValidateMarkings:
    def test_valid_markings(self) -> None:
        result = validate_markings([Marking(1, 1, 2.0), Marking(2, 0, 0.0)])
        assert result.valid is True
        assert result.errors == []

    def test_duplicate_reported_once(self) -> None:
        result = validate_markings([Marking(1), Marking(1), Marking(1)])
        assert result.valid is False
        assert result.errors == ["Duplicate markings for subcategory ID 1 (3 occurrences)"]

    def test_negative_values_each_reported(self) -> None:
        result = validate_markings([Marking(4, error_count=-1, points_deducted=-2.0)])
        assert result.errors == [
            "Negative error count for subcategory ID 4",
            "Negative points deducted for subcategory ID 4",
        ]

    @pytest.mark.parametrize("value", [float("nan"), float("inf"), float("-inf")])
    def test_non_finite_points_rejected(self, value) -> None:
        result = validate_markings([Marking(3, error_count=1, points_deducted=value)])
        assert result.valid is False
        assert result.errors == ["Non-finite points deducted for subcategory ID 3"]

    def test_calculator_rejects_invalid_markings(self, calculator) -> None:
        with pytest.raises(InputValidationError) as exc_info:
            calculator.calculate_score(7, [Marking(1), Marking(1)])
        assert len(exc_info.value.errors) == 1


# ---------------------------------------------------------------------------
# Rollup
# ---------------------------------------------------------------------------


class TestRollup:
    def test_end_to_end_pass(self, calculator) -> None:
        result = calculator.calculate_score(7, [Marking(1, error_count=2, points_deducted=5)])

        formatting, compliance = result.category_scores
        assert formatting.final_score == 15
        assert formatting.percentage == 75.0
        assert compliance.final_score == 100
        assert compliance.percentage == 100.0
        assert result.total_points_earned == 115
        assert result.total_project_points == 120
        assert result.total_percentage == 95.83
        assert result.is_rejected is False
        assert result.rejection_reason is None
        assert result.fatal_errors == []

    def test_end_to_end_fatal(self, calculator) -> None:
        result = calculator.calculate_score(7, [Marking(2, error_count=1, points_deducted=0)])

        compliance = result.category_scores[1]
        assert compliance.final_score == 0
        assert compliance.has_fatal_error is True
        assert result.total_percentage == 16.67
        assert result.is_rejected is True
        assert "Fatal Error" in result.rejection_reason
        assert [event.subcategory_name for event in result.fatal_errors] == ["Fatal Error"]

    def test_fatal_without_errors_is_not_triggered(self, calculator) -> None:
        result = calculator.calculate_score(7, [Marking(2, error_count=0, points_deducted=10)])
        assert result.is_rejected is False
        assert result.category_scores[1].final_score == 90

    def test_fatal_override_zeroes_category_with_other_deductions(self) -> None:
        category = Category(
            category_id=1,
            name="Accuracy",
            total_points=50,
            subcategories=(
                Subcategory(10, "Wrong value", 5),
                Subcategory(11, "Fabricated data", 50, is_fatal=True),
            ),
        )
        result = ScoringCalculator(InMemoryCategoryCatalog([category])).calculate_score(
            1,
            [Marking(10, 1, 5.0), Marking(11, 1, 0.0)],
        )
        score = result.category_scores[0]
        assert score.points_deducted == 50
        assert score.final_score == 0
        assert result.total_percentage == 0.0

    def test_over_deduction_clamps_at_zero(self, calculator) -> None:
        result = calculator.calculate_score(7, [Marking(1, error_count=9, points_deducted=500)])
        assert result.category_scores[0].final_score == 0
        assert result.total_percentage == round_half_up(100 / 120 * 100)

    def test_zero_point_catalog(self) -> None:
        catalog = InMemoryCategoryCatalog(
            [Category(1, "Empty", 0, subcategories=(Subcategory(1, "Anything", 0),))]
        )
        result = ScoringCalculator(catalog).calculate_score(1, [Marking(1, 1, 3.0)])
        assert result.category_scores[0].percentage == 0.0
        assert result.total_percentage == 0.0

    def test_negative_category_points_carry_no_weight(self, caplog) -> None:
        catalog = InMemoryCategoryCatalog(
            [Category(1, "A", 100, subcategories=()), Category(2, "B", -50, subcategories=())]
        )
        with caplog.at_level("WARNING", logger="scoring.calculator"):
            result = ScoringCalculator(catalog).calculate_score(1, [])

        assert result.total_percentage == 100.0
        assert result.category_scores[1].category_points == 0.0
        assert result.category_scores[1].percentage == 0.0
        assert "non-positive total points" in caplog.text

    def test_empty_catalog(self) -> None:
        result = ScoringCalculator(InMemoryCategoryCatalog()).calculate_score(1, [])
        assert result.total_percentage == 0.0
        assert result.category_scores == []
        assert result.is_rejected is False

    def test_unknown_subcategory_ignored(self, calculator) -> None:
        result = calculator.calculate_score(7, [Marking(999, 3, 40.0)])
        assert result.total_percentage == 100.0

    def test_repeated_calls_are_identical(self, calculator) -> None:
        markings = [Marking(1, 2, 5.0)]
        assert calculator.calculate_score(7, markings) == calculator.calculate_score(7, markings)

    def test_subcategory_scores_follow_catalog_order(self, calculator) -> None:
        result = calculator.calculate_score(7, [])
        assert [sub.subcategory_id for sub in result.iter_subcategory_scores()] == [1, 2]

    def test_catalog_per_project_type(self, categories) -> None:
        catalog = InMemoryCategoryCatalog(by_project_type={3: categories[:1]})
        result = ScoringCalculator(catalog).calculate_score(3, [])
        assert [category.category_name for category in result.category_scores] == ["Formatting"]


# ---------------------------------------------------------------------------
# Catalog access
# ---------------------------------------------------------------------------


class TestCatalogAccess:
    def test_retries_then_succeeds(self, categories, monkeypatch) -> None:
        monkeypatch.setattr("scoring.calculator.time.sleep", lambda _seconds: None)
        catalog = FlakyCatalog(categories, failures=1)
        calculator = ScoringCalculator(catalog, catalog_max_retries=2, catalog_backoff_seconds=0)

        result = calculator.calculate_score(7, [])

        assert catalog.calls == 2
        assert result.total_percentage == 100.0

    def test_exhausted_retries_raise_unavailable(self, categories, monkeypatch) -> None:
        monkeypatch.setattr("scoring.calculator.time.sleep", lambda _seconds: None)
        catalog = FlakyCatalog(categories, failures=5)
        calculator = ScoringCalculator(catalog, catalog_max_retries=1)

        with pytest.raises(CatalogUnavailableError) as exc_info:
            calculator.calculate_score(7, [])

        assert catalog.calls == 2
        assert exc_info.value.project_type_id == 7
        assert isinstance(exc_info.value.__cause__, ConnectionError)

    @pytest.mark.parametrize(
        ("name", "points", "expected"),
        [
            ("Fatal Error - Missing data", 100, True),
            ("FATAL ERROR", 100.0, True),
            ("Fatal Error", 50, False),
            ("Typo", 100, False),
            ("Fatal Error", None, False),
        ],
    )
    def test_legacy_is_fatal(self, name, points, expected) -> None:
        assert legacy_is_fatal(name, points) is expected


# ---------------------------------------------------------------------------
# Summary
# ---------------------------------------------------------------------------


class TestSummary:
    def test_passed_summary(self, calculator) -> None:
        result = calculator.calculate_score(7, [Marking(1, error_count=2, points_deducted=5)])
        assert generate_scoring_summary(result) == (
            "QC PASSED: Overall score 95.83%. "
            "Category breakdown: Formatting: 75.0%, Compliance: 100.0%"
        )

    def test_rejected_summary(self, calculator) -> None:
        result = calculator.calculate_score(7, [Marking(2, error_count=1)])
        assert generate_scoring_summary(result) == (
            "QC REJECTED: Fatal error(s) found: Fatal Error. Overall score: 16.67%"
        )

    @pytest.mark.parametrize(
        ("value", "expected"),
        [(95.825, 95.83), (16.666, 16.67), (0.005, 0.01), (12.344, 12.34)],
    )
    def test_round_half_up(self, value, expected) -> None:
        assert round_half_up(value) == expected
