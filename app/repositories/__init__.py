"""
app/repositories package marker.
"""

from app.repositories.category_catalog_repository import CategoryCatalogRepository
from app.repositories.errors import FingerprintLookupError, TaskNotFoundError
from app.repositories.qc_evaluation_repository import QCEvaluationRepository
from app.repositories.task_repository import TaskRepository
from app.repositories.tracker_record_repository import TrackerRecordRepository

__all__ = [
    "CategoryCatalogRepository",
    "FingerprintLookupError",
    "QCEvaluationRepository",
    "TaskNotFoundError",
    "TaskRepository",
    "TrackerRecordRepository",
]
