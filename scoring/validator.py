"""
scoring/validator.py

Precondition checks for marking submissions.
"""

from __future__ import annotations

import math
from collections import Counter
from typing import Sequence

from scoring.models import Marking, MarkingValidationResult


def validate_markings(markings: Sequence[Marking]) -> MarkingValidationResult:
    """
    Check a marking list and report every violation found.

    Rules:
        - At most one marking per subcategory_id.
        - error_count >= 0.
        - points_deducted is finite and >= 0.

    Each duplicated subcategory_id is reported once, regardless of how many
    times it repeats.
    """

    errors: list[str] = []
    occurrences = Counter(marking.subcategory_id for marking in markings)
    reported_duplicates: set[int] = set()

    for marking in markings:
        subcategory_id = marking.subcategory_id
        if occurrences[subcategory_id] > 1 and subcategory_id not in reported_duplicates:
            reported_duplicates.add(subcategory_id)
            errors.append(
                f"Duplicate markings for subcategory ID {subcategory_id} "
                f"({occurrences[subcategory_id]} occurrences)"
            )
        if marking.error_count < 0:
            errors.append(f"Negative error count for subcategory ID {subcategory_id}")
        if not math.isfinite(marking.points_deducted):
            errors.append(f"Non-finite points deducted for subcategory ID {subcategory_id}")
        elif marking.points_deducted < 0:
            errors.append(f"Negative points deducted for subcategory ID {subcategory_id}")

    return MarkingValidationResult(valid=not errors, errors=errors)
