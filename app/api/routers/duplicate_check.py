"""
app/api/routers/duplicate_check.py

Duplicate check and tracker upload HTTP endpoints.
"""

from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query, UploadFile, status
from sqlalchemy.orm import Session

from app.api.dependencies import get_csv_upload
from app.domain.qc_records import DuplicateCheckResult, IngestionOutcome
from app.repositories.errors import FingerprintLookupError, TaskNotFoundError
from app.schemas.duplicate_check import (
    DuplicateCheckResponse,
    DuplicateRejectionResponse,
    DuplicateRowResponse,
    RowErrorResponse,
    TrackerUploadResponse,
)
from app.services.csv_reader import CSVUploadError
from app.services.duplicate_check_service import (
    DuplicateCheckService,
    DuplicateRecordsRejectedError,
    TrackerPersistenceError,
    get_duplicate_check_service,
)
from db.session import get_db

router = APIRouter(tags=["duplicates"])


def build_check_response(check: DuplicateCheckResult, *, report_limit: int) -> DuplicateCheckResponse:
    report = check.report
    shown = report.duplicates[:report_limit]
    return DuplicateCheckResponse(
        total_rows=check.total_rows,
        unique_rows=report.unique_count,
        duplicate_count=report.duplicate_count,
        has_duplicates=report.has_duplicates,
        columns=list(check.columns),
        counts_by_kind=report.count_by_kind(),
        duplicates=[
            DuplicateRowResponse(
                row_number=duplicate.row_number,
                fingerprint=duplicate.fingerprint,
                kind=duplicate.kind,
                first_occurrence_row=duplicate.first_occurrence_row,
                matched_values=dict(duplicate.matched_values),
                record=dict(duplicate.record),
            )
            for duplicate in shown
        ],
        duplicates_truncated=len(report.duplicates) > len(shown),
        row_errors=[
            RowErrorResponse(
                row_number=error.row_number,
                message=error.message,
                column=error.column,
                value=error.value,
            )
            for error in check.row_errors
        ],
    )


def _upload_response(outcome: IngestionOutcome, *, report_limit: int) -> TrackerUploadResponse:
    return TrackerUploadResponse(
        policy=outcome.policy,
        validate_only=outcome.validate_only,
        inserted=outcome.inserted,
        skipped_rows=outcome.skipped_rows,
        message=outcome.message,
        check=build_check_response(outcome.check, report_limit=report_limit),
    )


@router.post("/duplicates/check", response_model=DuplicateCheckResponse)
def check_duplicates(
    file: UploadFile = Depends(get_csv_upload),
    project_id: int | None = Query(default=None, description="Project scope for stored fingerprints"),
    task_id: int | None = Query(default=None, description="Task whose important columns and records apply"),
    columns: str | None = Query(default=None, description="Comma-separated or JSON list of columns"),
    db: Session = Depends(get_db),
    service: DuplicateCheckService = Depends(get_duplicate_check_service),
) -> DuplicateCheckResponse:
    """
    Report in-file and stored duplicates of a CSV upload without inserting.
    """

    try:
        check = service.check_upload(
            db,
            file.file,
            project_id=project_id,
            task_id=task_id,
            columns=columns,
        )
    except CSVUploadError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except TaskNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except FingerprintLookupError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Duplicate check could not be completed.",
        ) from exc
    finally:
        file.file.close()

    return build_check_response(check, report_limit=service.settings.report_limit)


@router.post("/tracker/upload", response_model=TrackerUploadResponse)
def upload_tracker(
    file: UploadFile = Depends(get_csv_upload),
    user_id: int = Query(..., description="Uploading user"),
    project_id: int = Query(...),
    task_id: int = Query(...),
    policy: Literal["strict", "lenient"] | None = Query(
        default=None,
        description="Duplicate policy; defaults to DUPLICATE_CHECK_POLICY",
    ),
    validate_only: bool = Query(default=False, description="Check without inserting"),
    db: Session = Depends(get_db),
    service: DuplicateCheckService = Depends(get_duplicate_check_service),
) -> TrackerUploadResponse:
    """
    Ingest a tracker CSV under the strict or lenient duplicate policy.
    """

    report_limit = service.settings.report_limit
    try:
        outcome = service.ingest_upload(
            db,
            file.file,
            user_id=user_id,
            project_id=project_id,
            task_id=task_id,
            policy=policy,
            validate_only=validate_only,
        )
    except CSVUploadError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except TaskNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except DuplicateRecordsRejectedError as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=DuplicateRejectionResponse(
                message=str(exc),
                check=build_check_response(exc.check, report_limit=report_limit),
            ).model_dump(),
        ) from exc
    except FingerprintLookupError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Duplicate check could not be completed.",
        ) from exc
    except TrackerPersistenceError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Unable to persist tracker rows.",
        ) from exc
    finally:
        file.file.close()

    return _upload_response(outcome, report_limit=report_limit)
