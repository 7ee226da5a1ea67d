"""LLM adapters for QC feedback generation.

Provides a base interface, an adapter for OpenAI-compatible APIs and a
deterministic mock for testing.
"""

import json
from abc import ABC, abstractmethod
from typing import Optional

from llm_feedback.settings import TextGenerationSettings


class BaseLLMAdapter(ABC):
    """Abstract base for all LLM adapters."""

    @abstractmethod
    def generate(self, prompt: str) -> str:
        """Send a prompt to the LLM and return the raw response text.

        Args:
            prompt: The fully formatted prompt string.

        Returns:
            Raw string response from the model (expected to be JSON).
        """


class OpenAILLMAdapter(BaseLLMAdapter):
    """Adapter for OpenAI-compatible chat completion APIs.

    Non-streaming, low temperature, suitable for structured JSON output.
    """

    def __init__(
        self,
        model: str = "gpt-4o-mini",
        max_tokens: int = 1500,
        temperature: float = 0.3,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
    ) -> None:
        """Initialise the OpenAI adapter.

        Args:
            model: Model identifier.
            max_tokens: Maximum tokens in the completion.
            temperature: Sampling temperature.
            api_key: API key. The client falls back to OPENAI_API_KEY.
            base_url: Optional base URL for OpenAI-compatible endpoints.
            timeout_seconds: Per-request client timeout.
        """
        from openai import OpenAI

        client_kwargs: dict = {}
        if api_key:
            client_kwargs["api_key"] = api_key
        if base_url:
            client_kwargs["base_url"] = base_url
        if timeout_seconds:
            client_kwargs["timeout"] = timeout_seconds
        # Retries are owned by llm_feedback.retry.
        client_kwargs["max_retries"] = 0

        self._client = OpenAI(**client_kwargs)
        self._model = model
        self._max_tokens = max_tokens
        self._temperature = temperature

    def generate(self, prompt: str) -> str:
        """Call the chat completion API and return the message content."""
        response = self._client.chat.completions.create(
            model=self._model,
            messages=[{"role": "user", "content": prompt}],
            temperature=self._temperature,
            max_tokens=self._max_tokens,
            stream=False,
        )
        return response.choices[0].message.content or ""


# ---------------------------------------------------------------------------
# Fixed mock response used for local testing.
# ---------------------------------------------------------------------------
_MOCK_RESPONSE = {
    "summary": "Mock feedback for testing purposes.",
    "overall_score": 90.0,
    "is_rejected": False,
    "category_analysis": [],
    "priority_issues": [],
    "improvement_suggestions": ["Verify integration with the scoring service."],
    "next_steps": ["Replace the mock adapter with a real provider."],
}

_MOCK_RESPONSE_JSON = json.dumps(_MOCK_RESPONSE, indent=2)


class MockLLMAdapter(BaseLLMAdapter):
    """Deterministic adapter that returns a fixed JSON response.

    Used for local runs and CI where no LLM API is available. A custom
    ``response`` replaces the default feedback payload.
    """

    def __init__(self, response: Optional[str] = None) -> None:
        self._response = response if response is not None else _MOCK_RESPONSE_JSON
        self.prompts: list = []

    def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        return self._response


def build_adapter(settings: TextGenerationSettings) -> BaseLLMAdapter:
    """Instantiate the adapter selected by ``LLM_ADAPTER``."""
    if settings.adapter == "mock":
        return MockLLMAdapter()
    return OpenAILLMAdapter(
        model=settings.model,
        max_tokens=settings.max_tokens,
        temperature=settings.temperature,
        api_key=settings.api_key,
        base_url=settings.base_url,
        timeout_seconds=settings.timeout_seconds,
    )
