"""
llm_feedback/settings.py

Adapter, concurrency, timeout and retry settings for text generation.
Populated from the environment by ``app.config.get_text_generation_settings``.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class TextGenerationSettings:
    adapter: str = "openai"
    model: str = "gpt-4o-mini"
    api_key: str | None = None
    base_url: str | None = None
    max_tokens: int = 1500
    temperature: float = 0.3
    max_concurrent: int = 10
    max_queue_depth: int = 100
    timeout_seconds: float = 120.0
    max_retries: int = 2
    backoff_initial_seconds: float = 1.0
    backoff_multiplier: float = 2.0
