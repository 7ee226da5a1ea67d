"""
app/schemas package marker.
"""

from app.schemas.ai_evaluation import AIEvaluationResponse
from app.schemas.duplicate_check import (
    DuplicateCheckResponse,
    DuplicateRejectionResponse,
    TrackerUploadResponse,
)
from app.schemas.qc_scoring import (
    CategoryCatalogResponse,
    MarkingValidationResponse,
    QCEvaluationRequest,
    QCEvaluationResponse,
    ScoreRequest,
    ScoreResponse,
)

__all__ = [
    "AIEvaluationResponse",
    "CategoryCatalogResponse",
    "DuplicateCheckResponse",
    "DuplicateRejectionResponse",
    "MarkingValidationResponse",
    "QCEvaluationRequest",
    "QCEvaluationResponse",
    "ScoreRequest",
    "ScoreResponse",
    "TrackerUploadResponse",
]
