"""
Base Model
==========

Provides common functionality for all database models.
"""

from datetime import datetime, UTC
from typing import Any, Dict, Iterable, Mapping, Optional, TYPE_CHECKING

from sqlalchemy import DateTime, inspect
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.sql import func

from baserepo.core.exceptions import UnknownRelationError, ValidationError

if TYPE_CHECKING:
    from baserepo.models.relations import BelongsToMany


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


class TimestampMixin:
    """Mixin that adds created_at and updated_at timestamps."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False
    )


class SerializationMixin:
    """Mixin that adds to_dict() serialization method."""

    def to_dict(self, exclude: Optional[Iterable[str]] = None,
                only: Optional[Iterable[str]] = None) -> Dict[str, Any]:
        """
        Convert model instance to dictionary.

        Attributes that are not loaded (deferred by a column projection, or
        expired) are skipped rather than fetched.

        Args:
            exclude: Column keys to leave out
            only: If given, the only column keys to include
        """
        exclude = set(exclude or ())
        only = set(only) if only is not None else None
        state = inspect(self)
        result = {}
        for attr in state.mapper.column_attrs:
            key = attr.key
            if key in exclude or key in state.unloaded:
                continue
            if only is not None and key not in only:
                continue
            value = getattr(self, key)
            if isinstance(value, datetime):
                result[key] = value.isoformat()
            else:
                result[key] = value
        return result


class FillableMixin:
    """
    Mass-assignment guard and change tracking.

    ``__fillable__`` lists the column keys that create/update may assign.
    None (the default) allows every mapped column.
    """

    __fillable__ = None

    @classmethod
    def fillable_fields(cls) -> frozenset:
        columns = frozenset(attr.key for attr in inspect(cls).column_attrs)
        if cls.__fillable__ is None:
            return columns
        return columns & frozenset(cls.__fillable__)

    @classmethod
    def validate_fillable(cls, data: Mapping[str, Any]) -> None:
        """
        Raises:
            ValidationError: If data has keys that cannot be mass-assigned
        """
        rejected = set(data) - cls.fillable_fields()
        if rejected:
            raise ValidationError(cls.__name__, rejected)

    def is_dirty(self) -> bool:
        """True if any column differs from the value loaded from the database."""
        state = inspect(self)
        return any(
            state.attrs[attr.key].history.has_changes()
            for attr in state.mapper.column_attrs
        )


class RelationsMixin:
    """
    Named many-to-many relations.

    Models register them statically:

        class Post(BaseModel, Base):
            __relations__ = {"tags": BelongsToMany(post_tags, "post_id", "tag_id")}
    """

    __relations__ = {}

    @classmethod
    def relation(cls, name: str) -> "BelongsToMany":
        try:
            return cls.__relations__[name]
        except KeyError:
            raise UnknownRelationError(cls.__name__, name) from None


class SoftDeletable:
    """
    Soft-delete capability.

    Rows are flagged with ``deleted_at`` instead of being removed. Whether a
    model supports this is answered by ``issubclass(model, SoftDeletable)``.
    """

    deleted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        default=None,
        index=True
    )

    def trashed(self) -> bool:
        return self.deleted_at is not None

    def soft_delete(self) -> None:
        self.deleted_at = datetime.now(UTC)

    def restore(self) -> None:
        self.deleted_at = None


class BaseModel(TimestampMixin, SerializationMixin, FillableMixin, RelationsMixin):
    """Base model combining timestamp, serialization, fillable and relation mixins."""
    pass


def supports_soft_delete(model_or_entity: Any) -> bool:
    """Check a model class or instance for the SoftDeletable capability."""
    if isinstance(model_or_entity, type):
        return issubclass(model_or_entity, SoftDeletable)
    return isinstance(model_or_entity, SoftDeletable)
