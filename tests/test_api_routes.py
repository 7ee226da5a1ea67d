"""
tests/test_api_routes.py

HTTP contract tests for the duplicate, scoring and AI evaluation routers.

Routers are mounted on a bare FastAPI app; the database session and the
services are swapped through dependency overrides.
"""

from __future__ import annotations

import json

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.api.routers import ai_evaluation_router, duplicate_check_router, qc_scoring_router
from app.config import (
    DuplicateCheckSettings,
    SamplingSettings,
    ScoringSettings,
    TextGenerationSettings,
)
from app.services.ai_evaluation_service import AIEvaluationService, get_ai_evaluation_service
from app.services.duplicate_check_service import DuplicateCheckService, get_duplicate_check_service
from app.services.qc_evaluation_service import QCEvaluationService, get_qc_evaluation_service
from db.session import get_db
from llm_feedback.adapter import MockLLMAdapter
from llm_feedback.data_evaluation import DataQualityEvaluator
from llm_feedback.pool import TextGenerationPool
from scoring.catalog import BaseCategoryCatalog
from scoring.errors import CatalogUnavailableError

CSV_BYTES = b"Name,Email\nAlice,a@x.io\nBob,b@x.io\nalice,A@X.IO\n"


class DownCatalog(BaseCategoryCatalog):
    def get_categories(self, project_type_id: int):
        raise CatalogUnavailableError(project_type_id)


@pytest.fixture()
def evaluation_adapter() -> MockLLMAdapter:
    return MockLLMAdapter(
        json.dumps(
            {
                "quality_score": 72,
                "summary": "Several emails are missing.",
                "critical_issues": [{"issue": "Missing email in 2 records", "location": "Email"}],
                "suggestions": ["Require the email column"],
            }
        )
    )


@pytest.fixture()
def pool(evaluation_adapter):
    settings = TextGenerationSettings(adapter="mock", max_concurrent=2, max_retries=0)
    with TextGenerationPool(evaluation_adapter, settings) as generation_pool:
        yield generation_pool


@pytest.fixture()
def app(fake_session, tracker_repository, task_repository, evaluation_repository, qc_catalog, pool):
    application = FastAPI()
    application.include_router(duplicate_check_router)
    application.include_router(qc_scoring_router)
    application.include_router(ai_evaluation_router)

    duplicate_service = DuplicateCheckService(
        DuplicateCheckSettings(report_limit=1),
        tracker_repository_factory=lambda _db: tracker_repository,
        task_repository_factory=lambda _db: task_repository,
    )
    qc_service = QCEvaluationService(
        ScoringSettings(),
        SamplingSettings(),
        catalog_factory=lambda _db: qc_catalog,
        evaluation_repository_factory=lambda _db: evaluation_repository,
        tracker_repository_factory=lambda _db: tracker_repository,
        task_repository_factory=lambda _db: task_repository,
    )
    ai_service = AIEvaluationService(
        DuplicateCheckSettings(),
        evaluator_factory=lambda: DataQualityEvaluator(pool, batch_size=2),
        task_repository_factory=lambda _db: task_repository,
    )

    application.dependency_overrides[get_db] = lambda: fake_session
    application.dependency_overrides[get_duplicate_check_service] = lambda: duplicate_service
    application.dependency_overrides[get_qc_evaluation_service] = lambda: qc_service
    application.dependency_overrides[get_ai_evaluation_service] = lambda: ai_service
    return application


@pytest.fixture()
def client(app) -> TestClient:
    return TestClient(app)


def _csv(content: bytes = CSV_BYTES, name: str = "tracker.csv", content_type: str = "text/csv"):
    return {"file": (name, content, content_type)}


# ---------------------------------------------------------------------------
# Duplicates
# ---------------------------------------------------------------------------


class TestDuplicateRoutes:
    def test_check_reports_duplicates(self, client) -> None:
        response = client.post("/duplicates/check", params={"task_id": 10}, files=_csv())

        assert response.status_code == 200
        body = response.json()
        assert body["total_rows"] == 3
        assert body["duplicate_count"] == 1
        assert body["counts_by_kind"]["in_batch"] == 1
        assert body["duplicates"][0]["row_number"] == 4
        assert body["duplicates"][0]["first_occurrence_row"] == 2
        assert body["duplicates_truncated"] is False

    def test_report_is_capped(self, client) -> None:
        content = b"Name\nA\nA\nA\n"
        response = client.post("/duplicates/check", files=_csv(content))
        body = response.json()
        assert body["duplicate_count"] == 2
        assert len(body["duplicates"]) == 1
        assert body["duplicates_truncated"] is True

    def test_non_csv_rejected(self, client) -> None:
        response = client.post(
            "/duplicates/check",
            files=_csv(name="tracker.xlsx", content_type="application/octet-stream"),
        )
        assert response.status_code == 400

    def test_unreadable_csv(self, client) -> None:
        response = client.post("/duplicates/check", files=_csv(b""))
        assert response.status_code == 400
        assert "header" in response.json()["detail"]

    def test_unknown_task(self, client) -> None:
        response = client.post("/duplicates/check", params={"task_id": 99}, files=_csv())
        assert response.status_code == 404

    def test_strict_upload_conflict(self, client, tracker_repository) -> None:
        response = client.post(
            "/tracker/upload",
            params={"user_id": 3, "project_id": 1, "task_id": 10},
            files=_csv(),
        )

        assert response.status_code == 409
        detail = response.json()["detail"]
        assert detail["message"].startswith("File upload rejected")
        assert detail["check"]["duplicate_count"] == 1
        assert tracker_repository.inserted == []

    def test_lenient_upload(self, client, tracker_repository, fake_session) -> None:
        response = client.post(
            "/tracker/upload",
            params={"user_id": 3, "project_id": 1, "task_id": 10, "policy": "lenient"},
            files=_csv(),
        )

        assert response.status_code == 200
        body = response.json()
        assert body["inserted"] == 2
        assert body["skipped_rows"] == [4]
        assert len(tracker_repository.inserted) == 2
        assert fake_session.commits == 1

    def test_unknown_policy_is_validation_error(self, client) -> None:
        response = client.post(
            "/tracker/upload",
            params={"user_id": 3, "project_id": 1, "task_id": 10, "policy": "merge"},
            files=_csv(),
        )
        assert response.status_code == 422


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------


class TestScoringRoutes:
    def test_categories(self, client) -> None:
        response = client.get("/qc/categories/7")
        assert response.status_code == 200
        categories = response.json()["categories"]
        assert [category["name"] for category in categories] == ["Formatting", "Compliance"]
        assert categories[1]["subcategories"][0]["is_fatal"] is True

    def test_catalog_unavailable(self, app, client, evaluation_repository, tracker_repository, task_repository) -> None:
        app.dependency_overrides[get_qc_evaluation_service] = lambda: QCEvaluationService(
            ScoringSettings(),
            SamplingSettings(),
            catalog_factory=lambda _db: DownCatalog(),
            evaluation_repository_factory=lambda _db: evaluation_repository,
            tracker_repository_factory=lambda _db: tracker_repository,
            task_repository_factory=lambda _db: task_repository,
        )
        response = client.post("/qc/score", json={"project_type_id": 7, "markings": []})
        assert response.status_code == 503

    def test_validate_markings(self, client) -> None:
        response = client.post(
            "/qc/markings/validate",
            json={"markings": [{"subcategory_id": 1}, {"subcategory_id": 1, "error_count": -1}]},
        )
        body = response.json()
        assert body["valid"] is False
        assert len(body["errors"]) == 2

    def test_score(self, client) -> None:
        response = client.post(
            "/qc/score",
            json={
                "project_type_id": 7,
                "markings": [{"subcategory_id": 1, "error_count": 2, "points_deducted": 5}],
            },
        )

        assert response.status_code == 200
        body = response.json()
        assert body["result"]["total_percentage"] == 95.83
        assert body["result"]["is_rejected"] is False
        assert body["summary"].startswith("QC PASSED: Overall score 95.83%")

    def test_score_invalid_markings(self, client) -> None:
        response = client.post(
            "/qc/score",
            json={"project_type_id": 7, "markings": [{"subcategory_id": 1, "points_deducted": -1}]},
        )
        assert response.status_code == 422
        assert response.json()["detail"]["errors"] == [
            "Negative points deducted for subcategory ID 1"
        ]

    @pytest.mark.parametrize("literal", ["NaN", "Infinity"])
    def test_score_rejects_non_finite_points(self, client, literal) -> None:
        body = (
            '{"project_type_id": 7, "markings": '
            '[{"subcategory_id": 1, "error_count": 1, "points_deducted": %s}]}' % literal
        )
        response = client.post(
            "/qc/score", content=body, headers={"Content-Type": "application/json"}
        )
        assert response.status_code == 422

    def test_score_rejects_unknown_fields(self, client) -> None:
        response = client.post(
            "/qc/score",
            json={"project_type_id": 7, "markings": [], "bonus": 10},
        )
        assert response.status_code == 422

    def test_submit_evaluation(self, client, evaluation_repository) -> None:
        response = client.post(
            "/qc/evaluations",
            json={
                "project_id": 1,
                "project_type_id": 7,
                "task_id": 10,
                "records": [
                    {
                        "record_id": "r1",
                        "record_data": {"Name": "Alice"},
                        "afd_markings": [
                            {"subcategory_id": 2, "error_count": 1, "notes": "missing consent"}
                        ],
                    }
                ],
            },
        )

        assert response.status_code == 201
        body = response.json()
        assert body["result"]["is_rejected"] is True
        assert body["result"]["total_percentage"] == 16.67
        assert body["feedback_status"] == "unavailable"
        assert body["evaluation_id"] == str(evaluation_repository.created[0].id)

    def test_review_sample(self, client) -> None:
        upload = client.post(
            "/tracker/upload",
            params={"user_id": 3, "project_id": 1, "task_id": 10, "policy": "lenient"},
            files=_csv(),
        )
        assert upload.status_code == 200

        response = client.get("/qc/tasks/10/sample", params={"seed": 5})

        assert response.status_code == 200
        body = response.json()
        assert body["total_records"] == 2
        assert body["sample_size"] == 1
        assert body["seed"] == 5

    def test_review_sample_unknown_task(self, client) -> None:
        assert client.get("/qc/tasks/404/sample").status_code == 404


# ---------------------------------------------------------------------------
# AI evaluation
# ---------------------------------------------------------------------------


class TestAIEvaluationRoute:
    def test_evaluates_upload(self, client, pool) -> None:
        response = client.post("/qc/ai-evaluation", params={"columns": "Email"}, files=_csv())

        assert response.status_code == 200
        body = response.json()
        assert body["batches"] == 2
        assert body["total_records"] == 3
        assert body["quality_score"] == 72.0
        assert body["suggestions"] == ["Require the email column"]

    def test_prompts_cite_sheet_rows_after_blank_rows(self, client, evaluation_adapter) -> None:
        content = b"Name,Email\nAlice,a@x.io\n,\nBob,b@x.io\nCara,c@x.io\n"
        response = client.post("/qc/ai-evaluation", files=_csv(content))

        assert response.status_code == 200
        prompts = evaluation_adapter.prompts
        assert len(prompts) == 2
        assert any('"first_row_number": 5,' in prompt for prompt in prompts)
        assert not any('"first_row_number": 4,' in prompt for prompt in prompts)

    def test_empty_upload(self, client) -> None:
        response = client.post("/qc/ai-evaluation", files=_csv(b"Name,Email\n"))
        assert response.status_code == 400

    def test_generation_failure(self, app, client, task_repository) -> None:
        broken = TextGenerationPool(
            MockLLMAdapter("not json"),
            TextGenerationSettings(adapter="mock", max_retries=0),
        )
        app.dependency_overrides[get_ai_evaluation_service] = lambda: AIEvaluationService(
            DuplicateCheckSettings(),
            evaluator_factory=lambda: DataQualityEvaluator(broken),
            task_repository_factory=lambda _db: task_repository,
        )
        try:
            response = client.post("/qc/ai-evaluation", files=_csv())
        finally:
            broken.close()

        assert response.status_code == 503
