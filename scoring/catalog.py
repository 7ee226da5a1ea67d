"""
scoring/catalog.py

Category catalog interface consumed by the scoring rollup.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Mapping, Optional, Sequence

from scoring.models import Category

LEGACY_FATAL_POINT_VALUE = 100
LEGACY_FATAL_NAME_MARKER = "fatal error"


def legacy_is_fatal(name: str, point_value: Optional[float]) -> bool:
    """Fatal-error detection for catalog rows that predate the ``is_fatal`` flag.

    Older catalogs encoded fatality in the display name: a subcategory
    weighted at the maximum category value whose name contains
    "fatal error" (any case). Only consulted when the stored flag is NULL.

    Args:
        name: Subcategory display name.
        point_value: Stored subcategory weight.

    Returns:
        True if the row follows the legacy fatal naming convention.
    """
    if point_value is None:
        return False
    return (
        float(point_value) == LEGACY_FATAL_POINT_VALUE
        and LEGACY_FATAL_NAME_MARKER in (name or "").lower()
    )


class BaseCategoryCatalog(ABC):
    """Source of the two-level weighted scoring schema for a project type.

    Implementations are read-only. The calculator calls
    :meth:`get_categories` once per scoring operation.
    """

    @abstractmethod
    def get_categories(self, project_type_id: int) -> List[Category]:
        """Return the ordered categories for a project type.

        Args:
            project_type_id: Project category identifier.

        Returns:
            Categories in display order, each with its subcategories.

        Raises:
            CatalogUnavailableError: If the catalog cannot be read.
        """


class InMemoryCategoryCatalog(BaseCategoryCatalog):
    """Catalog backed by a prebuilt mapping.

    A single list passed as ``categories`` applies to every project type.
    """

    def __init__(
        self,
        categories: Sequence[Category] = (),
        by_project_type: Optional[Mapping[int, Sequence[Category]]] = None,
    ) -> None:
        self._default = list(categories)
        self._by_project_type: Dict[int, List[Category]] = {
            key: list(value) for key, value in (by_project_type or {}).items()
        }

    def get_categories(self, project_type_id: int) -> List[Category]:
        return list(self._by_project_type.get(project_type_id, self._default))
