"""Feedback generation for scored QC evaluations."""

import logging
from typing import Optional

from llm_feedback.pool import TextGenerationPool
from llm_feedback.prompt_builder import FeedbackPromptBuilder
from llm_feedback.request_builder import FeedbackRequest
from llm_feedback.schema import FeedbackOutput

logger = logging.getLogger(__name__)


class FeedbackGenerator:
    """Turns a FeedbackRequest into validated FeedbackOutput via the pool.

    Errors from the pool (queue full, timeout, exhausted retries) propagate
    as ExternalServiceError subclasses; the caller decides how to degrade.
    """

    def __init__(
        self,
        pool: TextGenerationPool,
        prompt_builder: Optional[FeedbackPromptBuilder] = None,
    ) -> None:
        self._pool = pool
        self._prompt_builder = prompt_builder or FeedbackPromptBuilder()

    def generate(self, request: FeedbackRequest) -> FeedbackOutput:
        prompt = self._prompt_builder.build_prompt(request)
        output = self._pool.generate(prompt, FeedbackOutput)
        logger.info(
            "QC feedback generated overall_score=%.2f is_rejected=%s subcategories=%d priority_issues=%d",
            request.overall_score,
            request.is_rejected,
            len(request.errors_by_subcategory),
            len(output.priority_issues),
        )
        return output
