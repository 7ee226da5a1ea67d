"""
app/services/sampling.py

Systematic sampling of tracker records for manual QC review.
"""

from __future__ import annotations

import math
import random
from collections.abc import Sequence
from typing import TypeVar

T = TypeVar("T")


def review_sample_size(total: int, fraction: float = 0.1) -> int:
    """
    Number of records to review: ``max(1, ceil(total * fraction))``.
    """

    if total <= 0:
        return 0
    return max(1, math.ceil(total * fraction))


def sample_records(
    records: Sequence[T],
    sample_size: int,
    seed: int | None = None,
) -> list[T]:
    """
    Pick every ``len(records) // sample_size``-th record from a random start.

    Any shortfall is filled with random picks not already chosen. The same
    ``seed`` always yields the same sample. Records keep their input order
    for the systematic part.
    """

    if sample_size <= 0:
        return []
    if len(records) <= sample_size:
        return list(records)

    rng = random.Random(seed)
    step = len(records) // sample_size
    start = rng.randrange(step)

    chosen: list[int] = []
    index = start
    while len(chosen) < sample_size and index < len(records):
        chosen.append(index)
        index += step

    taken = set(chosen)
    while len(chosen) < sample_size:
        candidate = rng.randrange(len(records))
        if candidate not in taken:
            taken.add(candidate)
            chosen.append(candidate)

    return [records[i] for i in chosen]
