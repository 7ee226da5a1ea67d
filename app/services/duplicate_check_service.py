"""
app/services/duplicate_check_service.py

Duplicate detection and policy-driven ingestion of tracker uploads.

Flow for one upload:

    1. Read the CSV into header-keyed records.
    2. Resolve the important columns (explicit, task setting, or headers).
    3. Fingerprint every row.
    4. Load a snapshot of persisted fingerprints for the batch's candidates.
    5. Classify rows in sheet order.
    6. Apply the duplicate policy: strict rejects the whole upload on any
       duplicate, lenient inserts unique rows and reports the rest.

Repositories never commit; this service commits once per ingestion.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from functools import lru_cache
from typing import BinaryIO

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import DuplicateCheckSettings, get_duplicate_check_settings
from app.domain.qc_records import (
    DuplicateCheckResult,
    FingerprintScope,
    IngestionOutcome,
    TrackerRowInput,
)
from app.logging_utils import log_event
from app.repositories.task_repository import TaskRepository
from app.repositories.tracker_record_repository import TrackerRecordRepository
from app.services.csv_reader import CSVUpload, read_csv_upload
from fingerprint.classifier import (
    DuplicateKind,
    DuplicatePolicy,
    classify_batch,
    describe_rejection,
)
from fingerprint.columns import parse_important_columns
from fingerprint.generator import Record, fingerprint_rows

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class DuplicateRecordsRejectedError(ValueError):
    """
    Raised when the strict policy rejects an upload that contains duplicates.
    """

    def __init__(self, message: str, check: DuplicateCheckResult) -> None:
        super().__init__(message)
        self.check = check


class TrackerPersistenceError(RuntimeError):
    """
    Raised when unique rows cannot be persisted.
    """


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class DuplicateCheckService:
    """
    Coordinates CSV parsing, fingerprinting, classification and persistence.
    """

    def __init__(
        self,
        settings: DuplicateCheckSettings,
        *,
        tracker_repository_factory: Callable[[Session], TrackerRecordRepository] = TrackerRecordRepository,
        task_repository_factory: Callable[[Session], TaskRepository] = TaskRepository,
    ) -> None:
        self._settings = settings
        self._tracker_repository_factory = tracker_repository_factory
        self._task_repository_factory = task_repository_factory

    @property
    def settings(self) -> DuplicateCheckSettings:
        return self._settings

    def read_upload(self, raw_file: BinaryIO) -> CSVUpload:
        return read_csv_upload(raw_file, max_rows=self._settings.max_rows)

    def resolve_columns(
        self,
        db: Session,
        *,
        headers: Sequence[str],
        task_id: int | None = None,
        columns: Sequence[str] | str | None = None,
    ) -> list[str]:
        """
        Explicit columns win; otherwise the task's stored setting; otherwise
        every header.
        """

        if columns:
            return parse_important_columns(columns, headers)
        if task_id is None:
            return list(headers)
        task = self._task_repository_factory(db).get_or_raise(task_id)
        return parse_important_columns(task.important_columns, headers)

    def scope_for(self, *, project_id: int | None, task_id: int | None) -> FingerprintScope:
        if self._settings.scope == "global":
            return FingerprintScope()
        return FingerprintScope(project_id=project_id, task_id=task_id)

    def check_records(
        self,
        db: Session,
        records: Sequence[Record],
        columns: Sequence[str],
        *,
        scope: FingerprintScope,
        row_numbers: Sequence[int] | None = None,
    ) -> DuplicateCheckResult:
        """
        Fingerprint and classify records against in-batch and stored rows.

        Raises:
            FingerprintLookupError: If stored fingerprints cannot be read.
        """

        batch = fingerprint_rows(records, columns, row_numbers=row_numbers)
        candidates = tuple(sorted({row.fingerprint for row in batch.rows}))
        lookup_scope = FingerprintScope(
            project_id=scope.project_id,
            task_id=scope.task_id,
            candidates=candidates,
        )
        persisted = (
            self._tracker_repository_factory(db).get_persisted_fingerprints(lookup_scope)
            if candidates
            else frozenset()
        )
        report = classify_batch(batch.rows, persisted, batch.columns)

        log_event(
            logger,
            logging.INFO,
            "duplicate_check_completed",
            rows=report.total_rows,
            duplicates=report.duplicate_count,
            by_kind=report.count_by_kind(),
            scope="global" if scope.is_global else "scoped",
            project_id=scope.project_id,
            task_id=scope.task_id,
        )

        return DuplicateCheckResult(
            total_rows=len(records),
            columns=batch.columns,
            report=report,
            row_errors=list(batch.row_errors),
        )

    def check_upload(
        self,
        db: Session,
        raw_file: BinaryIO,
        *,
        project_id: int | None = None,
        task_id: int | None = None,
        columns: Sequence[str] | str | None = None,
    ) -> DuplicateCheckResult:
        upload = self.read_upload(raw_file)
        selected = self.resolve_columns(db, headers=upload.headers, task_id=task_id, columns=columns)
        result = self.check_records(
            db,
            upload.records,
            selected,
            scope=self.scope_for(project_id=project_id, task_id=task_id),
            row_numbers=upload.row_numbers,
        )
        return _with_reader_errors(result, upload)

    def ingest_upload(
        self,
        db: Session,
        raw_file: BinaryIO,
        *,
        user_id: int,
        project_id: int,
        task_id: int,
        policy: str | None = None,
        validate_only: bool = False,
    ) -> IngestionOutcome:
        """
        Check an upload and persist it under the duplicate policy.

        Raises:
            DuplicateRecordsRejectedError: Strict policy and any duplicate.
            TrackerPersistenceError: If inserting unique rows fails.
            FingerprintLookupError: If stored fingerprints cannot be read.
        """

        effective_policy = (policy or self._settings.policy).strip().lower()
        if effective_policy not in DuplicatePolicy.ALL:
            raise ValueError(
                f"Unknown duplicate policy '{policy}'. Allowed: {list(DuplicatePolicy.ALL)}"
            )

        upload = self.read_upload(raw_file)
        columns = self.resolve_columns(db, headers=upload.headers, task_id=task_id)
        check = _with_reader_errors(
            self.check_records(
                db,
                upload.records,
                columns,
                scope=self.scope_for(project_id=project_id, task_id=task_id),
                row_numbers=upload.row_numbers,
            ),
            upload,
        )
        report = check.report

        if effective_policy == DuplicatePolicy.STRICT and report.has_duplicates:
            message = describe_rejection(report)
            log_event(
                logger,
                logging.WARNING,
                "tracker_upload_rejected",
                task_id=task_id,
                duplicates=report.duplicate_count,
            )
            raise DuplicateRecordsRejectedError(message, check)

        skipped_rows = report.rows_of_kind(
            DuplicateKind.IN_BATCH,
            DuplicateKind.PERSISTED,
            DuplicateKind.BOTH,
        )
        unique_rows = set(report.unique_row_numbers)
        to_insert = [
            TrackerRowInput(
                user_id=user_id,
                project_id=project_id,
                task_id=task_id,
                record_data=dict(record),
                hash_value=classification.fingerprint,
            )
            for record, row_number, classification in _zip_classified(upload, report)
            if row_number in unique_rows
        ]

        inserted = 0
        if not validate_only and to_insert:
            inserted = self._persist(db, to_insert)

        if validate_only:
            message = f"Validation complete: {len(to_insert)} unique rows, {len(skipped_rows)} duplicates."
        elif skipped_rows:
            message = f"Inserted {inserted} rows; skipped {len(skipped_rows)} duplicate rows."
        else:
            message = f"Inserted {inserted} rows."

        log_event(
            logger,
            logging.INFO,
            "tracker_upload_completed",
            task_id=task_id,
            policy=effective_policy,
            validate_only=validate_only,
            inserted=inserted,
            skipped=len(skipped_rows),
        )

        return IngestionOutcome(
            policy=effective_policy,
            validate_only=validate_only,
            inserted=inserted,
            skipped_rows=skipped_rows,
            message=message,
            check=check,
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _persist(self, db: Session, rows: list[TrackerRowInput]) -> int:
        repository = self._tracker_repository_factory(db)
        try:
            inserted = repository.bulk_insert(rows)
            db.commit()
            return inserted
        except SQLAlchemyError as exc:
            db.rollback()
            raise TrackerPersistenceError("Failed to persist tracker rows.") from exc


# ---------------------------------------------------------------------------
# Module-level helpers
# ---------------------------------------------------------------------------


def _with_reader_errors(result: DuplicateCheckResult, upload: CSVUpload) -> DuplicateCheckResult:
    if not upload.row_errors:
        return result
    return DuplicateCheckResult(
        total_rows=result.total_rows,
        columns=result.columns,
        report=result.report,
        row_errors=sorted(
            [*upload.row_errors, *result.row_errors],
            key=lambda error: error.row_number,
        ),
    )


def _zip_classified(upload: CSVUpload, report):
    by_row = {classification.row_number: classification for classification in report.rows}
    for record, row_number in zip(upload.records, upload.row_numbers):
        classification = by_row.get(row_number)
        if classification is not None:
            yield record, row_number, classification


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


@lru_cache(maxsize=1)
def get_duplicate_check_service() -> DuplicateCheckService:
    """
    Build and cache the duplicate-check service with env-driven settings.
    """
    return DuplicateCheckService(get_duplicate_check_settings())
