"""
app/api/routers package marker.
"""

from app.api.routers.ai_evaluation import router as ai_evaluation_router
from app.api.routers.duplicate_check import router as duplicate_check_router
from app.api.routers.qc_scoring import router as qc_scoring_router

__all__ = [
    "ai_evaluation_router",
    "duplicate_check_router",
    "qc_scoring_router",
]
