"""
Repository exceptions.

Only failures detected by this layer get their own type. Errors raised by
SQLAlchemy or the database (IntegrityError, OperationalError, ...) are never
wrapped and reach the caller unchanged.
"""

from typing import Any, Iterable, Optional


class RepositoryError(Exception):
    """Base class for every error raised by the repository layer."""


class NotFoundError(RepositoryError):
    """
    An id lookup that must succeed found nothing.

    Raised by update, attach and detach. ``find`` returns None instead.
    """

    def __init__(self, model: str, id: Any):
        self.model = model
        self.id = id
        super().__init__(f"{model} not found: id={id!r}")


class ValidationError(RepositoryError):
    """Data was rejected by a model's mass-assignment guard."""

    def __init__(self, model: str, fields: Iterable[str], message: Optional[str] = None):
        self.model = model
        self.fields = sorted(fields)
        super().__init__(
            message or f"{model} rejected fields: {', '.join(self.fields)}"
        )


class UnknownRelationError(RepositoryError):
    """The model does not register a relation under the requested name."""

    def __init__(self, model: str, relation: str):
        self.model = model
        self.relation = relation
        super().__init__(f"{model} has no many-to-many relation named {relation!r}")


class InvalidQueryError(RepositoryError):
    """A column name or sort direction does not apply to the model."""
