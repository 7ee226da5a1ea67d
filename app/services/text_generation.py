"""
app/services/text_generation.py

Process-wide text-generation pool and the generators built on it.

The pool is created on first use so scoring endpoints work without an
LLM API key; only feedback and AI evaluation need it.
"""

from __future__ import annotations

import logging
from functools import lru_cache

from app.config import get_data_evaluation_settings, get_text_generation_settings
from llm_feedback.adapter import build_adapter
from llm_feedback.data_evaluation import DataQualityEvaluator
from llm_feedback.feedback import FeedbackGenerator
from llm_feedback.pool import TextGenerationPool

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_text_generation_pool() -> TextGenerationPool:
    settings = get_text_generation_settings()
    logger.info(
        "Starting text generation pool adapter=%s model=%s max_concurrent=%s max_queue_depth=%s",
        settings.adapter,
        settings.model,
        settings.max_concurrent,
        settings.max_queue_depth,
    )
    return TextGenerationPool(build_adapter(settings), settings)


def get_feedback_generator() -> FeedbackGenerator:
    return FeedbackGenerator(get_text_generation_pool())


def get_data_quality_evaluator() -> DataQualityEvaluator:
    settings = get_data_evaluation_settings()
    return DataQualityEvaluator(
        get_text_generation_pool(),
        batch_size=settings.batch_size,
        max_suggestions=settings.max_suggestions,
        max_critical_issues=settings.max_critical_issues,
    )


def shutdown_text_generation_pool() -> None:
    """
    Close the pool if it was ever started.
    """

    if get_text_generation_pool.cache_info().currsize:
        get_text_generation_pool().close(wait=False)
        get_text_generation_pool.cache_clear()
        logger.info("Text generation pool shut down")
