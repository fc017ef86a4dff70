"""
Repository-wide constants.

Column wildcards, default page sizes and sort directions shared by the
models and repositories.
"""

from enum import Enum
from typing import Union


# ========================================
# Query Defaults
# ========================================

ALL_COLUMNS = "*"
"""Column wildcard: select every mapped column."""

DEFAULT_LIMIT = 10000
"""Row cap applied by find_where when no limit is given."""

TRASHED_FIELD = "trashed"
"""Record key added for soft-deletable models."""


# ========================================
# Sort Directions
# ========================================

class SortDirection(str, Enum):
    """
    Ordering directions accepted by the ``order`` argument of repositories.

    Usage:
        repo.all(order={"name": SortDirection.DESC})
        repo.all(order={"name": "desc"})  # same thing
    """

    ASC = "asc"
    DESC = "desc"

    @classmethod
    def parse(cls, value: Union[str, "SortDirection"]) -> "SortDirection":
        """
        Convert a user-supplied direction to a SortDirection.

        Raises:
            ValueError: If the value is not "asc" or "desc" (any case)
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        raise ValueError(f"Invalid sort direction: {value!r}")
