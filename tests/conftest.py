"""
Shared in-memory fakes for service and router tests.

No database is touched; repositories are replaced through the factory
arguments every service accepts.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from types import SimpleNamespace

import pytest

from app.domain.qc_records import FingerprintScope, TrackerRowInput
from app.repositories.errors import TaskNotFoundError
from fingerprint.store import InMemoryFingerprintStore
from scoring.catalog import InMemoryCategoryCatalog
from scoring.models import Category, Subcategory


class FakeSession:
    def __init__(self) -> None:
        self.commits = 0
        self.rollbacks = 0

    def commit(self) -> None:
        self.commits += 1

    def rollback(self) -> None:
        self.rollbacks += 1

    def close(self) -> None:
        pass


class FakeTrackerRepository(InMemoryFingerprintStore):
    def __init__(self, entries=()) -> None:
        super().__init__(entries)
        self.inserted: list[TrackerRowInput] = []
        self.lookups: list[FingerprintScope] = []
        self.fail_insert: Exception | None = None

    def get_persisted_fingerprints(self, scope: FingerprintScope) -> frozenset[str]:
        self.lookups.append(scope)
        return super().get_persisted_fingerprints(scope)

    def bulk_insert(self, rows, batch_size: int = 500) -> int:
        if self.fail_insert is not None:
            raise self.fail_insert
        self.inserted.extend(rows)
        return len(rows)

    def list_for_task(self, task_id: int, *, limit: int | None = None):
        created_at = datetime(2026, 10, 1, tzinfo=timezone.utc)
        records = [
            SimpleNamespace(
                id=index + 1,
                hash_value=row.hash_value,
                record_data=row.record_data,
                created_at=created_at,
            )
            for index, row in enumerate(self.inserted)
            if row.task_id == task_id
        ]
        return records[:limit] if limit is not None else records


class FakeTaskRepository:
    def __init__(self, tasks: dict[int, str | None] | None = None) -> None:
        self._tasks = tasks or {}

    def get(self, task_id: int):
        if task_id not in self._tasks:
            return None
        return SimpleNamespace(task_id=task_id, important_columns=self._tasks[task_id])

    def get_or_raise(self, task_id: int):
        task = self.get(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)
        return task


class FakeEvaluationRepository:
    def __init__(self) -> None:
        self.created: list[SimpleNamespace] = []

    def create(self, **fields) -> SimpleNamespace:
        evaluation = SimpleNamespace(id=uuid.uuid4(), feedback_status="not_requested", **fields)
        self.created.append(evaluation)
        return evaluation

    def record_feedback(self, evaluation, *, status, feedback=None, error=None) -> None:
        evaluation.feedback_status = status
        evaluation.feedback_json = feedback
        evaluation.feedback_error = error


@pytest.fixture()
def fake_session() -> FakeSession:
    return FakeSession()


@pytest.fixture()
def tracker_repository() -> FakeTrackerRepository:
    return FakeTrackerRepository()


@pytest.fixture()
def task_repository() -> FakeTaskRepository:
    return FakeTaskRepository({10: '["Name", "Email"]', 11: None})


@pytest.fixture()
def evaluation_repository() -> FakeEvaluationRepository:
    return FakeEvaluationRepository()


@pytest.fixture()
def qc_catalog() -> InMemoryCategoryCatalog:
    return InMemoryCategoryCatalog(
        [
            Category(
                category_id=1,
                name="Formatting",
                total_points=20,
                subcategories=(Subcategory(1, "Typo", 20),),
            ),
            Category(
                category_id=2,
                name="Compliance",
                total_points=100,
                subcategories=(Subcategory(2, "Fatal Error", 100, is_fatal=True),),
            ),
        ]
    )
