"""Constants, exceptions and logging shared across the package."""

from baserepo.core.constants import ALL_COLUMNS, DEFAULT_LIMIT, TRASHED_FIELD, SortDirection
from baserepo.core.exceptions import (
    RepositoryError,
    NotFoundError,
    ValidationError,
    UnknownRelationError,
    InvalidQueryError,
)

__all__ = [
    "ALL_COLUMNS",
    "DEFAULT_LIMIT",
    "TRASHED_FIELD",
    "SortDirection",
    "RepositoryError",
    "NotFoundError",
    "ValidationError",
    "UnknownRelationError",
    "InvalidQueryError",
]
