"""
Model package exports.

Import all SQLAlchemy models here so metadata registration and Alembic
autogeneration work without extra imports.
"""

from db.models.qc_afd import QCAfd
from db.models.qc_evaluation import FeedbackStatus, QCEvaluation
from db.models.task import Task
from db.models.tracker_record import TrackerRecord, TrackerRecordStatus

__all__ = [
    "FeedbackStatus",
    "QCAfd",
    "QCEvaluation",
    "Task",
    "TrackerRecord",
    "TrackerRecordStatus",
]
