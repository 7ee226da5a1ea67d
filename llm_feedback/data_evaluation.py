"""
llm_feedback/data_evaluation.py

Chunked AI data-quality evaluation of spreadsheet records.

Records are split into fixed-size batches, each batch is evaluated by the
text-generation pool, and per-batch results are merged into one report.
"""

from __future__ import annotations

import logging
import re
from dataclasses import asdict, dataclass, field
from decimal import Decimal
from typing import Any, Mapping, Sequence

from llm_feedback.errors import ExternalServiceError
from llm_feedback.pool import TextGenerationPool
from llm_feedback.prompt_builder import DataEvaluationPromptBuilder
from llm_feedback.schema import CriticalIssue, DataEvaluationOutput
from scoring.calculator import round_half_up

logger = logging.getLogger(__name__)

SUMMARY_MAX_CHARS = 200
DEFAULT_SUMMARY = "Batch analysis completed."

_RECORDS_IN_TEXT = re.compile(r"(\d+)\s+records?", re.IGNORECASE)
_ROWS_IN_LOCATION = re.compile(r"rows?\s+(\d+)", re.IGNORECASE)


@dataclass(frozen=True)
class ChunkEvaluation:
    """
    Normalized result of one evaluated batch.
    """

    quality_score: float
    total_records: int
    valid_records: int
    issues_found: int
    summary: str
    suggestions: list[str] = field(default_factory=list)
    critical_issues: list[dict[str, Any]] = field(default_factory=list)


@dataclass(frozen=True)
class AggregatedEvaluation:
    quality_score: float
    total_records: int
    valid_records: int
    issues_found: int
    summary: str
    batches: int
    suggestions: list[str] = field(default_factory=list)
    critical_issues: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def chunk_records(
    records: Sequence[Mapping[str, Any]],
    batch_size: int,
) -> list[list[Mapping[str, Any]]]:
    if batch_size < 1:
        raise ValueError("batch_size must be >= 1")
    return [list(records[i : i + batch_size]) for i in range(0, len(records), batch_size)]


def _issue_record_count(issue: CriticalIssue) -> int:
    if issue.affected_records:
        return issue.affected_records
    match = _RECORDS_IN_TEXT.search(issue.issue)
    if match:
        return int(match.group(1))
    match = _ROWS_IN_LOCATION.search(issue.location)
    if match:
        return int(match.group(1))
    return 1


def count_problematic_records(output: DataEvaluationOutput, batch_records: int) -> int:
    """
    Estimate how many records of a batch have problems.

    Each critical issue contributes its ``affected_records``, else a count
    read from "N records" in the issue text, else from "row N" in the
    location, else 1. Without critical issues ``issues_found`` is used.
    The result never exceeds the batch size.
    """

    if output.critical_issues:
        count = sum(_issue_record_count(issue) for issue in output.critical_issues)
    else:
        count = output.issues_found or 0
    return max(0, min(count, batch_records))


def normalize_chunk(output: DataEvaluationOutput, batch_records: int) -> ChunkEvaluation:
    problematic = count_problematic_records(output, batch_records)
    return ChunkEvaluation(
        quality_score=output.quality_score,
        total_records=batch_records,
        valid_records=max(0, batch_records - problematic),
        issues_found=problematic,
        summary=output.summary,
        suggestions=list(output.suggestions),
        critical_issues=[issue.model_dump() for issue in output.critical_issues],
    )


def aggregate_evaluations(
    chunks: Sequence[ChunkEvaluation],
    *,
    max_suggestions: int = 5,
    max_critical_issues: int = 50,
) -> AggregatedEvaluation | None:
    """
    Merge batch results; returns None when there is nothing to merge.

    The quality score is the record-weighted mean rounded half-up to a
    whole number. Suggestions are de-duplicated in first-seen order.
    """

    if not chunks:
        return None

    weighted_score = 0.0
    total_records = 0
    valid_records = 0
    issues_found = 0
    suggestions: list[str] = []
    critical_issues: list[dict[str, Any]] = []
    summaries: list[str] = []

    for chunk in chunks:
        weighted_score += chunk.quality_score * chunk.total_records
        total_records += chunk.total_records
        valid_records += chunk.valid_records
        issues_found += chunk.issues_found
        for suggestion in chunk.suggestions:
            if suggestion not in suggestions:
                suggestions.append(suggestion)
        critical_issues.extend(chunk.critical_issues)
        if chunk.summary:
            summaries.append(chunk.summary)

    quality_score = (
        round_half_up(weighted_score / total_records, Decimal("1")) if total_records > 0 else 0.0
    )

    if summaries:
        summary = summaries[0]
        if len(summary) > SUMMARY_MAX_CHARS:
            summary = summary[:SUMMARY_MAX_CHARS] + "..."
    else:
        summary = DEFAULT_SUMMARY

    return AggregatedEvaluation(
        quality_score=quality_score,
        total_records=total_records,
        valid_records=valid_records,
        issues_found=issues_found,
        summary=summary,
        batches=len(chunks),
        suggestions=suggestions[:max_suggestions],
        critical_issues=critical_issues[:max_critical_issues],
    )


class DataQualityEvaluator:
    """
    Evaluates records batch by batch through a TextGenerationPool.

    All batches are submitted together; the evaluation fails as a whole if
    any batch fails.
    """

    def __init__(
        self,
        pool: TextGenerationPool,
        *,
        batch_size: int = 50,
        max_suggestions: int = 5,
        max_critical_issues: int = 50,
        prompt_builder: DataEvaluationPromptBuilder | None = None,
    ) -> None:
        self._pool = pool
        self._batch_size = max(1, batch_size)
        self._max_suggestions = max_suggestions
        self._max_critical_issues = max_critical_issues
        self._prompt_builder = prompt_builder or DataEvaluationPromptBuilder()

    def evaluate(
        self,
        records: Sequence[Mapping[str, Any]],
        important_columns: Sequence[str],
        *,
        first_row_number: int = 2,
        row_numbers: Sequence[int] | None = None,
    ) -> AggregatedEvaluation | None:
        """
        Evaluate ``records`` batch by batch.

        ``row_numbers`` gives the sheet row of each record when rows were
        skipped while reading; otherwise rows count up from ``first_row_number``.
        """

        if row_numbers is not None and len(row_numbers) != len(records):
            raise ValueError(
                f"row_numbers has {len(row_numbers)} entries for {len(records)} records"
            )
        batches = chunk_records(records, self._batch_size)
        if not batches:
            return None

        prompts = []
        for index, batch in enumerate(batches):
            start = index * self._batch_size
            batch_rows = (
                list(row_numbers[start : start + len(batch)]) if row_numbers is not None else None
            )
            prompts.append(
                self._prompt_builder.build_prompt(
                    batch,
                    important_columns,
                    first_row_number=batch_rows[0] if batch_rows else first_row_number + start,
                    row_numbers=batch_rows,
                )
            )
        outputs = self._pool.generate_many(prompts, DataEvaluationOutput)

        chunks: list[ChunkEvaluation] = []
        for index, (batch, output) in enumerate(zip(batches, outputs)):
            if isinstance(output, Exception):
                logger.error(
                    "AI evaluation batch %d/%d failed with %s: %s",
                    index + 1,
                    len(batches),
                    type(output).__name__,
                    output,
                )
                if isinstance(output, ExternalServiceError):
                    raise output
                raise ExternalServiceError(f"AI evaluation batch {index} failed: {output}") from output
            chunks.append(normalize_chunk(output, len(batch)))

        result = aggregate_evaluations(
            chunks,
            max_suggestions=self._max_suggestions,
            max_critical_issues=self._max_critical_issues,
        )
        logger.info(
            "AI evaluation completed records=%d batches=%d quality_score=%s issues_found=%s",
            len(records),
            len(batches),
            result.quality_score if result else None,
            result.issues_found if result else None,
        )
        return result
