"""
app/config.py

Application-level configuration helpers.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from db.config import load_env_files
from llm_feedback.settings import TextGenerationSettings

_DUPLICATE_SCOPES = {"global", "task"}
_DUPLICATE_POLICIES = {"strict", "lenient"}
_LLM_ADAPTERS = {"openai", "mock"}


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading app settings.
    """

    load_env_files()


def _get_int_env(name: str, default: int) -> int:
    """
    Read an integer from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_float_env(name: str, default: float) -> float:
    """
    Read a float from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return float(raw_value)
    except ValueError:
        return default


def _get_str_env(name: str, default: str) -> str:
    """
    Read a string from environment variables with fallback.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return default
    stripped = value.strip()
    return stripped if stripped else default


def _get_optional_str_env(name: str) -> str | None:
    """
    Read an optional string value from environment variables.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return None
    stripped = value.strip()
    return stripped if stripped else None


def _get_choice_env(name: str, default: str, allowed: set[str]) -> str:
    """
    Read a lowercase string restricted to ``allowed``; unknown values fall back.
    """

    value = _get_str_env(name, default).lower()
    return value if value in allowed else default


@dataclass(frozen=True)
class DuplicateCheckSettings:
    """
    Runtime settings for upload duplicate detection.
    """

    scope: str = "task"
    policy: str = "strict"
    report_limit: int = 10
    max_rows: int = 5000


@dataclass(frozen=True)
class ScoringSettings:
    """
    Runtime settings for QC scoring and feedback triggering.
    """

    feedback_score_threshold: float = 95.0
    feedback_max_samples: int = 5
    catalog_max_retries: int = 0
    catalog_backoff_seconds: float = 0.5


@dataclass(frozen=True)
class DataEvaluationSettings:
    """
    Chunking and result caps for AI data-quality evaluation.
    """

    batch_size: int = 50
    max_critical_issues: int = 50
    max_suggestions: int = 5


@dataclass(frozen=True)
class SamplingSettings:
    """
    Review sampling settings.
    """

    fraction: float = 0.1


@lru_cache(maxsize=1)
def get_duplicate_check_settings() -> DuplicateCheckSettings:
    """
    Return cached duplicate-check settings from environment variables.
    """

    return DuplicateCheckSettings(
        scope=_get_choice_env("DUPLICATE_CHECK_SCOPE", "task", _DUPLICATE_SCOPES),
        policy=_get_choice_env("DUPLICATE_CHECK_POLICY", "strict", _DUPLICATE_POLICIES),
        report_limit=max(1, _get_int_env("DUPLICATE_REPORT_LIMIT", 10)),
        max_rows=max(1, _get_int_env("UPLOAD_MAX_ROWS", 5000)),
    )


@lru_cache(maxsize=1)
def get_scoring_settings() -> ScoringSettings:
    """
    Return cached scoring settings from environment variables.
    """

    return ScoringSettings(
        feedback_score_threshold=min(
            100.0, max(0.0, _get_float_env("QC_FEEDBACK_SCORE_THRESHOLD", 95.0))
        ),
        feedback_max_samples=max(0, _get_int_env("QC_FEEDBACK_MAX_SAMPLES", 5)),
        catalog_max_retries=max(0, _get_int_env("QC_CATALOG_MAX_RETRIES", 0)),
        catalog_backoff_seconds=max(0.0, _get_float_env("QC_CATALOG_BACKOFF_SECONDS", 0.5)),
    )


@lru_cache(maxsize=1)
def get_text_generation_settings() -> TextGenerationSettings:
    """
    Return cached text-generation settings from environment variables.
    """

    return TextGenerationSettings(
        adapter=_get_choice_env("LLM_ADAPTER", "openai", _LLM_ADAPTERS),
        model=_get_str_env("LLM_MODEL", "gpt-4o-mini"),
        api_key=_get_optional_str_env("LLM_API_KEY") or _get_optional_str_env("OPENAI_API_KEY"),
        base_url=_get_optional_str_env("LLM_BASE_URL"),
        max_tokens=max(1, _get_int_env("LLM_MAX_TOKENS", 1500)),
        temperature=min(2.0, max(0.0, _get_float_env("LLM_TEMPERATURE", 0.3))),
        max_concurrent=max(1, _get_int_env("LLM_MAX_CONCURRENT", 10)),
        max_queue_depth=max(0, _get_int_env("LLM_MAX_QUEUE_DEPTH", 100)),
        timeout_seconds=max(1.0, _get_float_env("LLM_TIMEOUT_SECONDS", 120.0)),
        max_retries=max(0, _get_int_env("LLM_MAX_RETRIES", 2)),
        backoff_initial_seconds=max(0.0, _get_float_env("LLM_BACKOFF_INITIAL_SECONDS", 1.0)),
        backoff_multiplier=max(1.0, _get_float_env("LLM_BACKOFF_MULTIPLIER", 2.0)),
    )


@lru_cache(maxsize=1)
def get_data_evaluation_settings() -> DataEvaluationSettings:
    """
    Return cached AI data-evaluation settings.
    """

    return DataEvaluationSettings(
        batch_size=max(1, _get_int_env("AI_EVAL_BATCH_SIZE", 50)),
        max_critical_issues=max(1, _get_int_env("AI_EVAL_MAX_CRITICAL_ISSUES", 50)),
        max_suggestions=max(1, _get_int_env("AI_EVAL_MAX_SUGGESTIONS", 5)),
    )


@lru_cache(maxsize=1)
def get_sampling_settings() -> SamplingSettings:
    """
    Return cached review sampling settings.
    """

    return SamplingSettings(
        fraction=min(1.0, max(0.0001, _get_float_env("QC_SAMPLE_FRACTION", 0.1))),
    )
