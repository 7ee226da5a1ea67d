"""
app/repositories/tracker_record_repository.py

Persistence of ingested tracker rows and lookup of their fingerprints.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from sqlalchemy import insert, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.domain.qc_records import FingerprintScope, TrackerRowInput
from app.repositories.errors import FingerprintLookupError
from db.models.tracker_record import TrackerRecord
from fingerprint.store import BaseFingerprintStore

logger = logging.getLogger(__name__)

_DEFAULT_BATCH_SIZE = 1000


class TrackerRecordRepository(BaseFingerprintStore):
    """
    Repository for tracker rows. Never commits; the caller owns the transaction.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def get_persisted_fingerprints(self, scope: FingerprintScope) -> frozenset[str]:
        """
        Distinct stored fingerprints in ``scope``.

        When ``scope.candidates`` is set only those fingerprints are looked
        up, in chunks, instead of scanning the whole scope.
        """

        base = select(TrackerRecord.hash_value).distinct()
        if scope.project_id is not None:
            base = base.where(TrackerRecord.project_id == scope.project_id)
        if scope.task_id is not None:
            base = base.where(TrackerRecord.task_id == scope.task_id)

        try:
            if scope.candidates is None:
                return frozenset(self._session.execute(base).scalars().all())

            candidates = sorted(set(scope.candidates))
            found: set[str] = set()
            for start in range(0, len(candidates), _DEFAULT_BATCH_SIZE):
                chunk = candidates[start : start + _DEFAULT_BATCH_SIZE]
                stmt = base.where(TrackerRecord.hash_value.in_(chunk))
                found.update(self._session.execute(stmt).scalars().all())
            return frozenset(found)
        except SQLAlchemyError as exc:
            logger.error(
                "Fingerprint lookup failed project_id=%s task_id=%s error=%s",
                scope.project_id,
                scope.task_id,
                exc,
            )
            raise FingerprintLookupError("Persisted fingerprints could not be read.") from exc

    def bulk_insert(
        self,
        rows: Sequence[TrackerRowInput],
        *,
        batch_size: int = _DEFAULT_BATCH_SIZE,
    ) -> int:
        """
        Insert tracker rows in batches and return the number inserted.
        """

        if not rows:
            return 0

        payloads: list[dict[str, Any]] = [
            {
                "user_id": row.user_id,
                "project_id": row.project_id,
                "task_id": row.task_id,
                "record_data": row.record_data,
                "hash_value": row.hash_value,
                "status": row.status,
            }
            for row in rows
        ]

        size = max(1, batch_size)
        inserted = 0
        for start in range(0, len(payloads), size):
            chunk = payloads[start : start + size]
            stmt = insert(TrackerRecord).values(chunk).returning(TrackerRecord.id)
            inserted += len(self._session.scalars(stmt).all())
        return inserted

    def list_for_task(self, task_id: int, *, limit: int | None = None) -> list[TrackerRecord]:
        stmt = (
            select(TrackerRecord)
            .where(TrackerRecord.task_id == task_id)
            .order_by(TrackerRecord.id)
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        return list(self._session.execute(stmt).scalars().all())
