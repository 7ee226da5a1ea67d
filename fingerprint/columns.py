"""
fingerprint/columns.py

Parsing of a task's stored important-columns setting.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from typing import Any

logger = logging.getLogger(__name__)


def _clean(values: Sequence[Any]) -> list[str]:
    cleaned: list[str] = []
    for value in values:
        if value is None:
            continue
        text = str(value).strip()
        if text:
            cleaned.append(text)
    return cleaned


def parse_important_columns(raw: Any, fallback_headers: Sequence[str] = ()) -> list[str]:
    """
    Normalize the important-columns setting to a list of column names.

    Accepts a list, a JSON array string, or a comma-separated string.
    Anything else, or a value that yields no names, falls back to
    ``fallback_headers``.
    """

    if isinstance(raw, (list, tuple)):
        columns = _clean(raw)
    elif isinstance(raw, str) and raw.strip():
        text = raw.strip()
        parsed: Any = None
        if text.startswith("["):
            try:
                parsed = json.loads(text)
            except json.JSONDecodeError:
                logger.debug("Important columns are not valid JSON, splitting on commas: %r", text)
        if isinstance(parsed, list):
            columns = _clean(parsed)
        else:
            columns = _clean(text.split(","))
    else:
        columns = []

    if columns:
        return columns
    return _clean(fallback_headers)
