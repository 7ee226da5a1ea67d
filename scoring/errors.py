"""
scoring/errors.py

Exceptions raised by the scoring rollup. Both abort the whole calculation;
no partial score is ever returned.
"""

from __future__ import annotations

from typing import Sequence


class ScoringError(Exception):
    """Base exception for scoring failures."""


class InputValidationError(ScoringError, ValueError):
    """
    Raised when submitted markings violate the scoring preconditions.

    Attributes:
        errors: One human-readable entry per violation found.
    """

    def __init__(self, errors: Sequence[str]) -> None:
        self.errors = list(errors)
        super().__init__("Invalid markings: " + "; ".join(self.errors))


class CatalogUnavailableError(ScoringError, RuntimeError):
    """
    Raised when the category catalog for a project type cannot be fetched.
    """

    def __init__(self, project_type_id: int, message: str | None = None) -> None:
        self.project_type_id = project_type_id
        super().__init__(
            message or f"Category catalog for project type {project_type_id} is unavailable."
        )
