"""
db/models/tracker_record.py

One ingested spreadsheet row and its content fingerprint.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import BigInteger, Index, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, CreatedAtMixin


class TrackerRecordStatus:
    READY = "ready"
    EVALUATED = "evaluated"


class TrackerRecord(CreatedAtMixin, Base):
    __tablename__ = "tracker_records"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    project_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    task_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    record_data: Mapped[dict[str, Any]] = mapped_column(
        JSONB,
        nullable=False,
        comment="Row as uploaded, keyed by original header",
    )
    hash_value: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        comment="SHA-256 hex fingerprint over the task's important columns",
    )
    status: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        default=TrackerRecordStatus.READY,
        server_default=TrackerRecordStatus.READY,
    )

    __table_args__ = (
        Index("ix_tracker_records_hash_value", "hash_value"),
        Index("ix_tracker_records_task_hash", "task_id", "hash_value"),
        Index("ix_tracker_records_project_hash", "project_id", "hash_value"),
    )
