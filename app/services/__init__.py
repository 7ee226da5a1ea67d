"""
app/services package marker.
"""

from app.services.ai_evaluation_service import AIEvaluationService, get_ai_evaluation_service
from app.services.duplicate_check_service import (
    DuplicateCheckService,
    DuplicateRecordsRejectedError,
    TrackerPersistenceError,
    get_duplicate_check_service,
)
from app.services.qc_evaluation_service import (
    QCEvaluationService,
    aggregate_record_markings,
    get_qc_evaluation_service,
)

__all__ = [
    "AIEvaluationService",
    "get_ai_evaluation_service",
    "DuplicateCheckService",
    "DuplicateRecordsRejectedError",
    "TrackerPersistenceError",
    "get_duplicate_check_service",
    "QCEvaluationService",
    "aggregate_record_markings",
    "get_qc_evaluation_service",
]
