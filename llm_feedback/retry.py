"""Retry logic for text-generation calls.

Retries transient adapter failures (network, rate limiting, provider
errors) and malformed output (JSON parse or schema failures) with
exponential backoff. Queue and timeout errors raised by the pool are not
handled here.
"""

import logging
import time
from typing import Callable, List, Type, TypeVar

from pydantic import BaseModel

from llm_feedback.adapter import BaseLLMAdapter
from llm_feedback.errors import LLMOutputValidationError, LLMRetryExhaustedError
from llm_feedback.validator import validate_llm_output

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

_RETRYABLE_STAGES = frozenset({"json_parse", "schema"})


def generate_with_retry(
    adapter: BaseLLMAdapter,
    prompt: str,
    output_model: Type[ModelT],
    max_retries: int = 2,
    backoff_initial_seconds: float = 1.0,
    backoff_multiplier: float = 2.0,
    sleep: Callable[[float], None] = time.sleep,
) -> ModelT:
    """Generate and validate output, retrying transient failures.

    Args:
        adapter: An LLM adapter implementing ``generate(prompt) -> str``.
        prompt: The fully formatted prompt string.
        output_model: Pydantic model the JSON response must satisfy.
        max_retries: Maximum number of *additional* attempts after the
            first failure. Total attempts = 1 + max_retries.
        backoff_initial_seconds: Wait before the first retry.
        backoff_multiplier: Growth factor of the wait between retries.
        sleep: Injected for tests.

    Returns:
        A validated ``output_model`` instance.

    Raises:
        LLMOutputValidationError: If a non-retryable validation error occurs.
        LLMRetryExhaustedError: If every attempt failed.
    """
    errors: List[Exception] = []
    total_attempts = 1 + max(0, max_retries)

    for attempt in range(1, total_attempts + 1):
        try:
            raw = adapter.generate(prompt)
            result = validate_llm_output(raw, output_model)
            if attempt > 1:
                logger.info(
                    "LLM output validated on attempt %d/%d",
                    attempt,
                    total_attempts,
                )
            return result

        except LLMOutputValidationError as exc:
            if exc.stage not in _RETRYABLE_STAGES:
                raise
            errors.append(exc)
            logger.warning(
                "Attempt %d/%d failed at stage '%s': %s",
                attempt,
                total_attempts,
                exc.stage,
                "; ".join(exc.errors),
            )

        except Exception as exc:  # noqa: BLE001
            errors.append(exc)
            logger.warning(
                "Attempt %d/%d failed with %s: %s",
                attempt,
                total_attempts,
                type(exc).__name__,
                exc,
            )

        if attempt < total_attempts:
            sleep(backoff_initial_seconds * (backoff_multiplier ** (attempt - 1)))

    raise LLMRetryExhaustedError(
        attempts=total_attempts,
        last_error=errors[-1] if errors else None,
        history=errors,
    )
