"""Bounded worker pool for text-generation calls.

At most ``max_concurrent`` calls run at once and at most
``max_queue_depth`` more may wait. Submissions beyond that are rejected
immediately with GenerationQueueFullError instead of growing the backlog.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Callable, List, Sequence, Type, TypeVar

from pydantic import BaseModel

from llm_feedback.adapter import BaseLLMAdapter
from llm_feedback.errors import GenerationQueueFullError, GenerationTimeoutError
from llm_feedback.retry import generate_with_retry
from llm_feedback.settings import TextGenerationSettings

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class TextGenerationPool:
    """Run adapter calls on a bounded thread pool with retry and timeout."""

    def __init__(
        self,
        adapter: BaseLLMAdapter,
        settings: TextGenerationSettings | None = None,
        *,
        sleep: Callable[[float], None] | None = None,
    ) -> None:
        self._adapter = adapter
        self._settings = settings or TextGenerationSettings()
        self._sleep = sleep
        capacity = self._settings.max_concurrent + self._settings.max_queue_depth
        self._slots = threading.BoundedSemaphore(capacity)
        self._executor = ThreadPoolExecutor(
            max_workers=self._settings.max_concurrent,
            thread_name_prefix="text-generation",
        )
        self._closed = False

    @property
    def settings(self) -> TextGenerationSettings:
        return self._settings

    def submit(self, prompt: str, output_model: Type[ModelT]) -> "Future[ModelT]":
        """Queue one generation call; raises when the pool is saturated."""
        if self._closed:
            raise RuntimeError("TextGenerationPool is closed")
        if not self._slots.acquire(blocking=False):
            logger.warning(
                "Text generation rejected, queue full max_concurrent=%d max_queue_depth=%d",
                self._settings.max_concurrent,
                self._settings.max_queue_depth,
            )
            raise GenerationQueueFullError(
                "Text generation queue is full "
                f"({self._settings.max_concurrent} running, "
                f"{self._settings.max_queue_depth} waiting)"
            )

        try:
            future = self._executor.submit(self._run, prompt, output_model)
        except RuntimeError:
            self._slots.release()
            raise
        future.add_done_callback(lambda _f: self._slots.release())
        return future

    def generate(self, prompt: str, output_model: Type[ModelT]) -> ModelT:
        """Run one call and wait for it, bounded by ``timeout_seconds``."""
        future = self.submit(prompt, output_model)
        return self._wait(future)

    def generate_many(
        self,
        prompts: Sequence[str],
        output_model: Type[ModelT],
    ) -> List[ModelT | Exception]:
        """Run calls concurrently; results follow ``prompts`` order.

        Failed calls appear as the exception instance in their slot so one
        bad chunk does not discard the others.
        """
        futures: List[Future | Exception] = []
        for prompt in prompts:
            try:
                futures.append(self.submit(prompt, output_model))
            except GenerationQueueFullError as exc:
                futures.append(exc)

        results: List[ModelT | Exception] = []
        for future in futures:
            if isinstance(future, Exception):
                results.append(future)
                continue
            try:
                results.append(self._wait(future))
            except Exception as exc:  # noqa: BLE001
                results.append(exc)
        return results

    def close(self, wait: bool = True) -> None:
        self._closed = True
        self._executor.shutdown(wait=wait, cancel_futures=not wait)

    def __enter__(self) -> "TextGenerationPool":
        return self

    def __exit__(self, *_exc_info) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _run(self, prompt: str, output_model: Type[ModelT]) -> ModelT:
        kwargs = {}
        if self._sleep is not None:
            kwargs["sleep"] = self._sleep
        return generate_with_retry(
            self._adapter,
            prompt,
            output_model,
            max_retries=self._settings.max_retries,
            backoff_initial_seconds=self._settings.backoff_initial_seconds,
            backoff_multiplier=self._settings.backoff_multiplier,
            **kwargs,
        )

    def _wait(self, future: "Future[ModelT]") -> ModelT:
        try:
            return future.result(timeout=self._settings.timeout_seconds)
        except FutureTimeoutError as exc:
            future.cancel()
            logger.warning(
                "Text generation timed out after %.1fs", self._settings.timeout_seconds
            )
            raise GenerationTimeoutError(
                f"Text generation did not finish within {self._settings.timeout_seconds}s"
            ) from exc
