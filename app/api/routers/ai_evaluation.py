"""
app/api/routers/ai_evaluation.py

Batched AI data-quality evaluation endpoint.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, UploadFile, status
from sqlalchemy.orm import Session

from app.api.dependencies import get_csv_upload
from app.repositories.errors import TaskNotFoundError
from app.schemas.ai_evaluation import AIEvaluationResponse
from app.services.ai_evaluation_service import (
    AIEvaluationService,
    EmptyUploadError,
    get_ai_evaluation_service,
)
from app.services.csv_reader import CSVUploadError
from db.session import get_db
from llm_feedback.errors import ExternalServiceError

router = APIRouter(prefix="/qc", tags=["qc"])


@router.post("/ai-evaluation", response_model=AIEvaluationResponse)
def evaluate_upload(
    file: UploadFile = Depends(get_csv_upload),
    task_id: int | None = Query(default=None, description="Task whose important columns apply"),
    columns: str | None = Query(default=None, description="Comma-separated or JSON list of columns"),
    db: Session = Depends(get_db),
    service: AIEvaluationService = Depends(get_ai_evaluation_service),
) -> AIEvaluationResponse:
    try:
        result = service.evaluate_upload(db, file.file, task_id=task_id, columns=columns)
    except (CSVUploadError, EmptyUploadError) as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except TaskNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except ExternalServiceError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="AI evaluation could not be completed.",
        ) from exc
    finally:
        file.file.close()

    return AIEvaluationResponse(**result.to_dict())
