"""Exceptions for calls to the external text-generation service.

Everything here derives from ExternalServiceError so callers can tell
"feedback unavailable" apart from "scoring unavailable".
"""

from typing import List, Optional


class ExternalServiceError(RuntimeError):
    """Raised when an external collaborator (text generation, lookup) fails."""


class GenerationQueueFullError(ExternalServiceError):
    """Raised when the generation pool cannot accept more pending calls."""


class GenerationTimeoutError(ExternalServiceError):
    """Raised when a generation call does not finish within its timeout."""


class LLMOutputValidationError(ExternalServiceError):
    """Raised when LLM output fails parsing or schema validation.

    Attributes:
        stage: Which validation step failed ("json_parse" or "schema").
        errors: List of human-readable error descriptions.
        raw_response: The original string that failed validation.
    """

    def __init__(
        self,
        stage: str,
        errors: List[str],
        raw_response: str,
    ) -> None:
        self.stage = stage
        self.errors = errors
        self.raw_response = raw_response
        message = (
            f"LLM output validation failed at stage '{stage}': "
            + "; ".join(errors)
        )
        super().__init__(message)


class LLMRetryExhaustedError(ExternalServiceError):
    """Raised when every generation attempt failed.

    Attributes:
        attempts: Total number of attempts made (initial + retries).
        last_error: The error from the final attempt.
        history: Errors from every failed attempt.
    """

    def __init__(
        self,
        attempts: int,
        last_error: Optional[Exception],
        history: List[Exception],
    ) -> None:
        self.attempts = attempts
        self.last_error = last_error
        self.history = history
        super().__init__(
            f"Text generation failed after {attempts} attempt(s). "
            f"Last error: {last_error}"
        )
