"""
db/models/qc_afd.py

QC scoring catalog. Category rows have ``afd_category_id = 0``;
subcategory rows point at their category's ``qc_afd_id``.
"""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import BigInteger, Boolean, Index, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin

ROOT_CATEGORY_ID = 0


class QCAfd(TimestampMixin, Base):
    __tablename__ = "qc_afd"

    qc_afd_id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    project_category_id: Mapped[int | None] = mapped_column(
        BigInteger,
        nullable=True,
        comment="Project type; NULL rows apply to every project type",
    )
    afd_name: Mapped[str] = mapped_column(String(255), nullable=False)
    afd_points: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    afd_category_id: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        default=ROOT_CATEGORY_ID,
        server_default="0",
    )
    is_fatal: Mapped[bool | None] = mapped_column(
        Boolean,
        nullable=True,
        comment="NULL falls back to the legacy name/points rule",
    )

    __table_args__ = (
        Index("ix_qc_afd_afd_category_id", "afd_category_id"),
        Index("ix_qc_afd_project_category_id", "project_category_id"),
    )
