"""create tracker and QC tables

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19 09:00:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "tasks",
        sa.Column("task_id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("project_id", sa.BigInteger(), nullable=False),
        sa.Column("task_name", sa.String(length=255), nullable=False),
        sa.Column("important_columns", sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("task_id"),
    )
    op.create_index("ix_tasks_project_id", "tasks", ["project_id"], unique=False)

    op.create_table(
        "tracker_records",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.BigInteger(), nullable=False),
        sa.Column("project_id", sa.BigInteger(), nullable=False),
        sa.Column("task_id", sa.BigInteger(), nullable=False),
        sa.Column("record_data", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("hash_value", sa.String(length=64), nullable=False),
        sa.Column("status", sa.String(length=32), server_default="ready", nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_tracker_records_hash_value", "tracker_records", ["hash_value"], unique=False)
    op.create_index("ix_tracker_records_task_hash", "tracker_records", ["task_id", "hash_value"], unique=False)
    op.create_index(
        "ix_tracker_records_project_hash",
        "tracker_records",
        ["project_id", "hash_value"],
        unique=False,
    )

    op.create_table(
        "qc_afd",
        sa.Column("qc_afd_id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("project_category_id", sa.BigInteger(), nullable=True),
        sa.Column("afd_name", sa.String(length=255), nullable=False),
        sa.Column("afd_points", sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column("afd_category_id", sa.BigInteger(), server_default="0", nullable=False),
        sa.Column("is_fatal", sa.Boolean(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("qc_afd_id"),
    )
    op.create_index("ix_qc_afd_afd_category_id", "qc_afd", ["afd_category_id"], unique=False)
    op.create_index("ix_qc_afd_project_category_id", "qc_afd", ["project_category_id"], unique=False)

    op.create_table(
        "qc_evaluations",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("project_id", sa.BigInteger(), nullable=False),
        sa.Column("project_type_id", sa.BigInteger(), nullable=False),
        sa.Column("task_id", sa.BigInteger(), nullable=True),
        sa.Column("qc_agent_id", sa.BigInteger(), nullable=True),
        sa.Column("total_records", sa.BigInteger(), nullable=False),
        sa.Column("total_points_earned", sa.Float(), nullable=False),
        sa.Column("total_project_points", sa.Float(), nullable=False),
        sa.Column("total_percentage", sa.Float(), nullable=False),
        sa.Column("is_rejected", sa.Boolean(), nullable=False),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("overall_notes", sa.Text(), nullable=True),
        sa.Column("score_json", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("feedback_status", sa.String(length=32), server_default="not_requested", nullable=False),
        sa.Column("feedback_json", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("feedback_error", sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_qc_evaluations_project_id", "qc_evaluations", ["project_id"], unique=False)
    op.create_index("ix_qc_evaluations_task_id", "qc_evaluations", ["task_id"], unique=False)
    op.create_index("ix_qc_evaluations_is_rejected", "qc_evaluations", ["is_rejected"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_qc_evaluations_is_rejected", table_name="qc_evaluations")
    op.drop_index("ix_qc_evaluations_task_id", table_name="qc_evaluations")
    op.drop_index("ix_qc_evaluations_project_id", table_name="qc_evaluations")
    op.drop_table("qc_evaluations")
    op.drop_index("ix_qc_afd_project_category_id", table_name="qc_afd")
    op.drop_index("ix_qc_afd_afd_category_id", table_name="qc_afd")
    op.drop_table("qc_afd")
    op.drop_index("ix_tracker_records_project_hash", table_name="tracker_records")
    op.drop_index("ix_tracker_records_task_hash", table_name="tracker_records")
    op.drop_index("ix_tracker_records_hash_value", table_name="tracker_records")
    op.drop_table("tracker_records")
    op.drop_index("ix_tasks_project_id", table_name="tasks")
    op.drop_table("tasks")
