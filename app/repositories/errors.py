"""
Repository-layer exceptions for tracker and QC lookups.
"""

from __future__ import annotations

from llm_feedback.errors import ExternalServiceError


class FingerprintLookupError(ExternalServiceError):
    """Raised when persisted fingerprints cannot be read."""


class TaskNotFoundError(LookupError):
    """Raised when a referenced tracker task does not exist."""

    def __init__(self, task_id: int) -> None:
        self.task_id = task_id
        super().__init__(f"Task {task_id} not found")
