"""
db/models/task.py

Tracker task with the columns that identify a duplicate record.
"""

from __future__ import annotations

from sqlalchemy import BigInteger, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin


class Task(TimestampMixin, Base):
    __tablename__ = "tasks"

    task_id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    project_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    task_name: Mapped[str] = mapped_column(String(255), nullable=False)
    important_columns: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
        comment="JSON array or comma-separated list of fingerprint columns",
    )

    __table_args__ = (Index("ix_tasks_project_id", "project_id"),)
