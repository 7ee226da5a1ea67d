"""
app/repositories/category_catalog_repository.py

SQL-backed scoring catalog over the ``qc_afd`` table.
"""

from __future__ import annotations

import logging
from collections import defaultdict

from sqlalchemy import or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from db.models.qc_afd import ROOT_CATEGORY_ID, QCAfd
from scoring.catalog import BaseCategoryCatalog, legacy_is_fatal
from scoring.errors import CatalogUnavailableError
from scoring.models import Category, Subcategory

logger = logging.getLogger(__name__)


def _subcategory_from_row(row: QCAfd) -> Subcategory:
    name = (row.afd_name or "").strip()
    points = float(row.afd_points or 0)
    is_fatal = row.is_fatal if row.is_fatal is not None else legacy_is_fatal(name, points)
    return Subcategory(
        subcategory_id=row.qc_afd_id,
        name=name,
        point_value=points,
        is_fatal=is_fatal,
    )


class CategoryCatalogRepository(BaseCategoryCatalog):
    """
    Reads categories (``afd_category_id = 0``) and their subcategories.

    Rows with a NULL ``project_category_id`` are shared by every project type.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def get_categories(self, project_type_id: int) -> list[Category]:
        stmt = (
            select(QCAfd)
            .where(
                or_(
                    QCAfd.project_category_id == project_type_id,
                    QCAfd.project_category_id.is_(None),
                )
            )
            .order_by(QCAfd.qc_afd_id)
        )
        try:
            rows = list(self._session.execute(stmt).scalars().all())
        except SQLAlchemyError as exc:
            logger.error("Catalog query failed project_type_id=%s error=%s", project_type_id, exc)
            raise CatalogUnavailableError(project_type_id) from exc

        roots = [row for row in rows if row.afd_category_id == ROOT_CATEGORY_ID]
        children: dict[int, list[QCAfd]] = defaultdict(list)
        for row in rows:
            if row.afd_category_id != ROOT_CATEGORY_ID:
                children[row.afd_category_id].append(row)

        return [
            Category(
                category_id=root.qc_afd_id,
                name=(root.afd_name or "").strip(),
                total_points=float(root.afd_points or 0),
                subcategories=tuple(
                    _subcategory_from_row(child) for child in children.get(root.qc_afd_id, [])
                ),
            )
            for root in roots
        ]
