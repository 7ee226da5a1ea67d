"""
app/api/routers/qc_scoring.py

QC catalog, marking validation, scoring and evaluation endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from app.domain.qc_records import QCEvaluationSubmission, RecordEvaluation, RecordMarking
from app.repositories.errors import TaskNotFoundError
from app.schemas.qc_scoring import (
    CategoryCatalogResponse,
    CategoryResponse,
    MarkingRequest,
    MarkingValidationRequest,
    MarkingValidationResponse,
    QCEvaluationRequest,
    QCEvaluationResponse,
    ReviewSampleResponse,
    ScoreRequest,
    ScoreResponse,
    ScoreResultResponse,
    SubcategoryResponse,
)
from app.services.qc_evaluation_service import QCEvaluationService, get_qc_evaluation_service
from db.session import get_db
from scoring.errors import CatalogUnavailableError, InputValidationError
from scoring.models import Marking, ScoreResult
from scoring.validator import validate_markings

router = APIRouter(prefix="/qc", tags=["qc"])

_UNAVAILABLE_DETAIL = "Evaluation could not be completed."


def _to_markings(requests: list[MarkingRequest]) -> list[Marking]:
    return [
        Marking(
            subcategory_id=item.subcategory_id,
            error_count=item.error_count,
            points_deducted=item.points_deducted,
        )
        for item in requests
    ]


def _score_response(result: ScoreResult) -> ScoreResultResponse:
    return ScoreResultResponse.model_validate(result.to_dict())


def _validation_exception(exc: InputValidationError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        detail={"message": "Invalid markings.", "errors": list(exc.errors)},
    )


def _unavailable_exception() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=_UNAVAILABLE_DETAIL,
    )


@router.get("/categories/{project_type_id}", response_model=CategoryCatalogResponse)
def get_categories(
    project_type_id: int,
    db: Session = Depends(get_db),
    service: QCEvaluationService = Depends(get_qc_evaluation_service),
) -> CategoryCatalogResponse:
    try:
        categories = service.get_categories(db, project_type_id)
    except CatalogUnavailableError as exc:
        raise _unavailable_exception() from exc

    return CategoryCatalogResponse(
        project_type_id=project_type_id,
        categories=[
            CategoryResponse(
                category_id=category.category_id,
                name=category.name,
                total_points=category.total_points,
                subcategories=[
                    SubcategoryResponse(
                        subcategory_id=sub.subcategory_id,
                        name=sub.name,
                        point_value=sub.point_value,
                        is_fatal=sub.is_fatal,
                    )
                    for sub in category.subcategories
                ],
            )
            for category in categories
        ],
    )


@router.post("/markings/validate", response_model=MarkingValidationResponse)
def validate_marking_submission(payload: MarkingValidationRequest) -> MarkingValidationResponse:
    result = validate_markings(_to_markings(payload.markings))
    return MarkingValidationResponse(valid=result.valid, errors=list(result.errors))


@router.post("/score", response_model=ScoreResponse)
def score_markings(
    payload: ScoreRequest,
    db: Session = Depends(get_db),
    service: QCEvaluationService = Depends(get_qc_evaluation_service),
) -> ScoreResponse:
    """
    Score markings against the project type's catalog without storing them.
    """

    try:
        scored = service.score(db, payload.project_type_id, _to_markings(payload.markings))
    except InputValidationError as exc:
        raise _validation_exception(exc) from exc
    except CatalogUnavailableError as exc:
        raise _unavailable_exception() from exc

    return ScoreResponse(result=_score_response(scored.score_result), summary=scored.summary)


@router.post("/evaluations", response_model=QCEvaluationResponse, status_code=status.HTTP_201_CREATED)
def submit_evaluation(
    payload: QCEvaluationRequest,
    db: Session = Depends(get_db),
    service: QCEvaluationService = Depends(get_qc_evaluation_service),
) -> QCEvaluationResponse:
    """
    Store a reviewer evaluation built from per-record markings.
    """

    submission = QCEvaluationSubmission(
        project_id=payload.project_id,
        project_type_id=payload.project_type_id,
        task_id=payload.task_id,
        qc_agent_id=payload.qc_agent_id,
        total_records=payload.total_records,
        overall_notes=payload.overall_notes,
        records=[
            RecordEvaluation(
                record_id=record.record_id,
                record_data=dict(record.record_data),
                markings=[
                    RecordMarking(
                        subcategory_id=marking.subcategory_id,
                        has_error=marking.has_error,
                        error_count=marking.error_count,
                        points_deducted=marking.points_deducted,
                        subcategory_name=marking.subcategory_name,
                        notes=marking.notes,
                    )
                    for marking in record.afd_markings
                ],
            )
            for record in payload.records
        ],
    )

    try:
        outcome = service.evaluate(db, submission)
    except InputValidationError as exc:
        raise _validation_exception(exc) from exc
    except CatalogUnavailableError as exc:
        raise _unavailable_exception() from exc

    return QCEvaluationResponse(
        evaluation_id=outcome.evaluation_id,
        result=_score_response(outcome.score_result),
        summary=outcome.summary,
        total_records=outcome.total_records,
        feedback_status=outcome.feedback_status,
        feedback=outcome.feedback,
        feedback_error=outcome.feedback_error,
    )


@router.get("/tasks/{task_id}/sample", response_model=ReviewSampleResponse)
def get_review_sample(
    task_id: int,
    seed: int | None = Query(default=None, description="Seed for a reproducible sample"),
    db: Session = Depends(get_db),
    service: QCEvaluationService = Depends(get_qc_evaluation_service),
) -> ReviewSampleResponse:
    try:
        sample = service.review_sample(db, task_id, seed=seed)
    except TaskNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc

    return ReviewSampleResponse.model_validate(
        {
            "task_id": sample.task_id,
            "total_records": sample.total_records,
            "sample_size": sample.sample_size,
            "seed": sample.seed,
            "records": sample.records,
        }
    )
