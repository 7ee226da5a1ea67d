"""
tests/test_data_evaluation.py

Pytest unit tests for chunked AI data-quality evaluation.

Coverage
--------
- Chunking
- Problematic record counting (affected_records, text, location, fallback)
- Aggregation (weighted score, caps, de-duplication, summary)
- Evaluator end to end through a pool with scripted adapters
"""

from __future__ import annotations

import json

import pytest

from llm_feedback.settings import TextGenerationSettings
from llm_feedback.adapter import BaseLLMAdapter, MockLLMAdapter
from llm_feedback.data_evaluation import (
    DEFAULT_SUMMARY,
    ChunkEvaluation,
    DataQualityEvaluator,
    aggregate_evaluations,
    chunk_records,
    count_problematic_records,
    normalize_chunk,
)
from llm_feedback.errors import ExternalServiceError, LLMRetryExhaustedError
from llm_feedback.pool import TextGenerationPool
from llm_feedback.schema import CriticalIssue, DataEvaluationOutput


def _output(**values) -> DataEvaluationOutput:
    values.setdefault("quality_score", 80)
    return DataEvaluationOutput(**values)


def _chunk(score: float, records: int, **values) -> ChunkEvaluation:
    values.setdefault("valid_records", records)
    values.setdefault("issues_found", 0)
    values.setdefault("summary", "")
    return ChunkEvaluation(quality_score=score, total_records=records, **values)


@pytest.fixture()
def settings() -> TextGenerationSettings:
    return TextGenerationSettings(
        adapter="mock",
        max_concurrent=2,
        max_queue_depth=10,
        timeout_seconds=5.0,
        max_retries=0,
    )


class TestChunkRecords:
    def test_splits_in_order(self) -> None:
        records = [{"i": i} for i in range(5)]
        chunks = chunk_records(records, 2)
        assert [len(chunk) for chunk in chunks] == [2, 2, 1]
        assert chunks[2][0] == {"i": 4}

    def test_empty(self) -> None:
        assert chunk_records([], 50) == []

    def test_invalid_batch_size(self) -> None:
        with pytest.raises(ValueError):
            chunk_records([{"i": 1}], 0)


class TestCountProblematicRecords:
    def test_affected_records_win(self) -> None:
        output = _output(
            critical_issues=[
                CriticalIssue(issue="Missing emails in 7 records", affected_records=3),
                CriticalIssue(issue="Bad phone", affected_records=2),
            ]
        )
        assert count_problematic_records(output, 50) == 5

    def test_count_read_from_issue_text(self) -> None:
        output = _output(critical_issues=[CriticalIssue(issue="Missing emails in 4 Records")])
        assert count_problematic_records(output, 50) == 4

    def test_count_read_from_location(self) -> None:
        output = _output(critical_issues=[CriticalIssue(issue="Bad date", location="Rows 6")])
        assert count_problematic_records(output, 50) == 6

    def test_one_per_issue_without_hints(self) -> None:
        output = _output(
            critical_issues=[CriticalIssue(issue="Odd casing"), CriticalIssue(issue="Typos")]
        )
        assert count_problematic_records(output, 50) == 2

    def test_falls_back_to_issues_found(self) -> None:
        assert count_problematic_records(_output(issues_found=3), 50) == 3
        assert count_problematic_records(_output(), 50) == 0

    def test_capped_at_batch_size(self) -> None:
        output = _output(critical_issues=[CriticalIssue(issue="x", affected_records=80)])
        assert count_problematic_records(output, 10) == 10

    def test_normalize_chunk(self) -> None:
        chunk = normalize_chunk(_output(quality_score=70, issues_found=4, summary="ok"), 10)
        assert chunk.valid_records == 6
        assert chunk.issues_found == 4
        assert chunk.total_records == 10


class TestAggregateEvaluations:
    def test_none_without_chunks(self) -> None:
        assert aggregate_evaluations([]) is None

    def test_record_weighted_score_rounded_half_up(self) -> None:
        result = aggregate_evaluations([_chunk(90, 3), _chunk(85, 1)])
        # (270 + 85) / 4 = 88.75
        assert result.quality_score == 89.0
        assert result.total_records == 4
        assert result.batches == 2

    def test_exact_half_rounds_up(self) -> None:
        result = aggregate_evaluations([_chunk(80, 1), _chunk(81, 1)])
        assert result.quality_score == 81.0

    def test_suggestions_unique_and_capped(self) -> None:
        chunks = [
            _chunk(90, 1, suggestions=["a", "b", "c"]),
            _chunk(90, 1, suggestions=["b", "d", "e", "f"]),
        ]
        result = aggregate_evaluations(chunks, max_suggestions=5)
        assert result.suggestions == ["a", "b", "c", "d", "e"]

    def test_critical_issues_capped(self) -> None:
        issues = [{"issue": str(i)} for i in range(30)]
        chunks = [_chunk(50, 1, critical_issues=issues), _chunk(50, 1, critical_issues=issues)]
        result = aggregate_evaluations(chunks, max_critical_issues=50)
        assert len(result.critical_issues) == 50

    def test_summary_first_non_empty_truncated(self) -> None:
        chunks = [_chunk(50, 1), _chunk(50, 1, summary="s" * 250)]
        result = aggregate_evaluations(chunks)
        assert result.summary == "s" * 200 + "..."

    def test_default_summary(self) -> None:
        assert aggregate_evaluations([_chunk(50, 1)]).summary == DEFAULT_SUMMARY

    def test_totals_add_up(self) -> None:
        result = aggregate_evaluations(
            [_chunk(50, 10, valid_records=7, issues_found=3), _chunk(50, 5, valid_records=5)]
        )
        assert (result.valid_records, result.issues_found) == (12, 3)


class FailingSecondBatchAdapter(BaseLLMAdapter):
    def generate(self, prompt: str) -> str:
        if '"first_row_number": 4' in prompt:
            return "not json"
        return json.dumps({"quality_score": 100})


class TestDataQualityEvaluator:
    def test_evaluates_every_batch(self, settings) -> None:
        adapter = MockLLMAdapter(
            json.dumps(
                {
                    "quality_score": 90,
                    "summary": "Mostly clean.",
                    "critical_issues": [
                        {"issue": "Missing email", "location": "row 3", "affected_records": 1}
                    ],
                    "suggestions": ["Validate emails"],
                }
            )
        )
        records = [{"Name": f"n{i}", "Email": ""} for i in range(5)]

        with TextGenerationPool(adapter, settings) as pool:
            result = DataQualityEvaluator(pool, batch_size=2).evaluate(records, ["Email"])

        assert result.batches == 3
        assert result.total_records == 5
        assert result.issues_found == 3
        assert result.valid_records == 2
        assert result.quality_score == 90.0
        assert result.suggestions == ["Validate emails"]
        assert len(result.critical_issues) == 3
        assert len(adapter.prompts) == 3
        assert any('"first_row_number": 6' in prompt for prompt in adapter.prompts)

    def test_no_records(self, settings) -> None:
        with TextGenerationPool(MockLLMAdapter(), settings) as pool:
            assert DataQualityEvaluator(pool).evaluate([], ["a"]) is None

    def test_any_failed_batch_fails_evaluation(self, settings) -> None:
        records = [{"a": str(i)} for i in range(4)]
        with TextGenerationPool(FailingSecondBatchAdapter(), settings) as pool:
            with pytest.raises(ExternalServiceError) as exc_info:
                DataQualityEvaluator(pool, batch_size=2).evaluate(records, ["a"])
        assert isinstance(exc_info.value, LLMRetryExhaustedError)

    def test_result_serializes(self, settings) -> None:
        adapter = MockLLMAdapter(json.dumps({"quality_score": 75}))
        with TextGenerationPool(adapter, settings) as pool:
            result = DataQualityEvaluator(pool).evaluate([{"a": "1"}], ["a"])
        payload = result.to_dict()
        assert payload["quality_score"] == 75.0
        assert payload["summary"] == "AI analysis completed"

    def test_batches_cite_sheet_rows(self, settings) -> None:
        adapter = MockLLMAdapter(json.dumps({"quality_score": 80}))
        records = [{"a": str(i)} for i in range(5)]

        with TextGenerationPool(adapter, settings) as pool:
            DataQualityEvaluator(pool, batch_size=2).evaluate(
                records, ["a"], row_numbers=[2, 4, 6, 7, 9]
            )

        firsts = sorted(
            number
            for number in (2, 4, 6, 9)
            if any(f'"first_row_number": {number},' in prompt for prompt in adapter.prompts)
        )
        assert firsts == [2, 6, 9]
        assert all('"row_numbers": [' in prompt for prompt in adapter.prompts)

    def test_row_numbers_must_match_records(self, settings) -> None:
        with TextGenerationPool(MockLLMAdapter(), settings) as pool:
            with pytest.raises(ValueError):
                DataQualityEvaluator(pool).evaluate([{"a": "1"}], ["a"], row_numbers=[2, 3])
