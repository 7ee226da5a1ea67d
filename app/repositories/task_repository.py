"""
app/repositories/task_repository.py

Lookup of tracker tasks.
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.repositories.errors import TaskNotFoundError
from db.models.task import Task


class TaskRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def get(self, task_id: int) -> Task | None:
        stmt = select(Task).where(Task.task_id == task_id)
        return self._session.execute(stmt).scalars().first()

    def get_or_raise(self, task_id: int) -> Task:
        task = self.get(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)
        return task
