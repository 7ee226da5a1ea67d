"""
fingerprint/store.py

Read interface over fingerprints that were already ingested.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable
from dataclasses import dataclass


@dataclass(frozen=True)
class FingerprintScope:
    """
    Narrows the persisted fingerprint lookup.

    All fields ``None`` means a global lookup. ``candidates`` limits the
    lookup to fingerprints of the current batch.
    """

    project_id: int | None = None
    task_id: int | None = None
    candidates: tuple[str, ...] | None = None

    @property
    def is_global(self) -> bool:
        return self.project_id is None and self.task_id is None


class BaseFingerprintStore(ABC):
    """
    Source of persisted fingerprints for duplicate classification.

    The returned set is a snapshot; the classifier never queries the store
    again while a batch is being classified.
    """

    @abstractmethod
    def get_persisted_fingerprints(self, scope: FingerprintScope) -> frozenset[str]:
        """
        Return persisted fingerprints visible in ``scope``.

        Raises:
            FingerprintLookupError: If the store cannot be read.
        """


class InMemoryFingerprintStore(BaseFingerprintStore):
    """
    Store backed by ``(project_id, task_id, fingerprint)`` triples.
    """

    def __init__(self, entries: Iterable[tuple[int, int, str]] = ()) -> None:
        self._entries = list(entries)

    def add(self, project_id: int, task_id: int, fingerprint: str) -> None:
        self._entries.append((project_id, task_id, fingerprint))

    def get_persisted_fingerprints(self, scope: FingerprintScope) -> frozenset[str]:
        candidates = set(scope.candidates) if scope.candidates is not None else None
        found: set[str] = set()
        for project_id, task_id, fingerprint in self._entries:
            if scope.project_id is not None and project_id != scope.project_id:
                continue
            if scope.task_id is not None and task_id != scope.task_id:
                continue
            if candidates is not None and fingerprint not in candidates:
                continue
            found.add(fingerprint)
        return frozenset(found)
