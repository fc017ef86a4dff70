"""
Base repository.

Generic CRUD and many-to-many helpers for one SQLAlchemy model, returning
plain dict records instead of live ORM objects.

Usage:
    class PostRepository(BaseRepository[Post]):
        model = Post

    with get_db_context() as db:
        posts = PostRepository(db)
        post = posts.create({"title": "Hello"})
        posts.attach(post["id"], "tags", 3, {"added_by": "editor"})
        posts.find_where({"author_id": 1}, order={"created_at": "desc"}, limit=20)

Soft-deleted rows are visible to every read unless ``with_trashed=False``.
update, delete, attach and detach only act on rows that are not trashed.
"""

from collections import abc
from typing import (
    Any, Dict, Generic, Iterable, List, Mapping, Optional, Sequence, Type, TypeVar, Union,
)

from sqlalchemy import Select, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import InstrumentedAttribute, Session, load_only

from baserepo.config import settings
from baserepo.core.constants import ALL_COLUMNS, TRASHED_FIELD, SortDirection
from baserepo.core.exceptions import InvalidQueryError, NotFoundError
from baserepo.core.logging import get_logger
from baserepo.models.base import BaseModel, supports_soft_delete

ModelT = TypeVar("ModelT", bound=BaseModel)

Record = Dict[str, Any]
Collection = List[Record]
Columns = Sequence[str]
Order = Mapping[str, Union[str, SortDirection]]

logger = get_logger(__name__)


class BaseRepository(Generic[ModelT]):
    """
    Repository bound to a single model type.

    Attributes:
        model: Model class the repository operates on (set by subclasses)
        session: SQLAlchemy session used for every query
        autocommit: Commit after each write (True) or only flush (False)
    """

    model: Type[ModelT]

    def __init__(self, session: Session, autocommit: Optional[bool] = None):
        if getattr(self, "model", None) is None:
            raise TypeError(f"{type(self).__name__} must set a model class")
        self.session = session
        self.autocommit = settings.repository_autocommit if autocommit is None else autocommit

    # ========================================
    # Reads
    # ========================================

    def all(self, columns: Columns = (ALL_COLUMNS,), order: Optional[Order] = None,
            *, with_trashed: bool = True) -> Collection:
        """
        Retrieve every record.

        Args:
            columns: Column keys to retrieve (a single key is allowed), or ["*"]
            order: Field -> "asc"/"desc", applied in mapping order
            with_trashed: Include soft-deleted rows
        """
        columns = self._columns(columns)
        stmt = self._select(columns, with_trashed)
        stmt = self._apply_order(stmt, order)
        entities = self.session.scalars(stmt).all()
        logger.debug(
            "Listed %s count=%s", self.model.__name__, len(entities),
            extra=self._log_extra("all", count=len(entities)),
        )
        return self.convert_collection(entities, columns)

    def find(self, id: Any, columns: Columns = (ALL_COLUMNS,),
             *, with_trashed: bool = True) -> Optional[Record]:
        """
        Retrieve one record by primary key.

        Returns:
            The record, or None when no row has that id
        """
        columns = self._columns(columns)
        stmt = self._select(columns, with_trashed).where(self._primary_key() == id)
        entity = self.session.scalars(stmt).first()
        logger.debug(
            "Fetched %s id=%s found=%s", self.model.__name__, id, entity is not None,
            extra=self._log_extra("find", record_id=id),
        )
        return self.convert_model(entity, columns)

    def find_where(self, filters: Optional[Mapping[str, Any]] = None,
                   columns: Columns = (ALL_COLUMNS,), order: Optional[Order] = None,
                   offset: int = 0, limit: Optional[int] = None,
                   *, with_trashed: bool = True) -> Collection:
        """
        Retrieve records whose fields equal the given values.

        Args:
            filters: Field -> value; all must match. None matches NULL
            columns: Column keys to retrieve (a single key is allowed), or ["*"]
            order: Field -> "asc"/"desc", applied in mapping order
            offset: Rows to skip (ignored unless > 0)
            limit: Maximum rows; defaults to settings.default_limit
            with_trashed: Include soft-deleted rows
        """
        limit = settings.default_limit if limit is None else limit
        columns = self._columns(columns)
        stmt = self._select(columns, with_trashed)
        for field, value in (filters or {}).items():
            stmt = stmt.where(self._column(field) == value)
        stmt = self._apply_order(stmt, order)
        if offset > 0:
            stmt = stmt.offset(offset)
        stmt = stmt.limit(limit)

        entities = self.session.scalars(stmt).all()
        logger.debug(
            "Listed %s filters=%s offset=%s limit=%s count=%s",
            self.model.__name__, dict(filters or {}), offset, limit, len(entities),
            extra=self._log_extra("find_where", count=len(entities)),
        )
        return self.convert_collection(entities, columns)

    # ========================================
    # Writes
    # ========================================

    def create(self, data: Mapping[str, Any]) -> Record:
        """
        Persist a new record.

        Raises:
            ValidationError: If data has keys the model does not accept
        """
        self.model.validate_fillable(data)
        entity = self.model(**data)
        self.session.add(entity)
        self._persist()
        self.session.refresh(entity)

        record_id = self._identity(entity)
        logger.info(
            "Created %s id=%s", self.model.__name__, record_id,
            extra=self._log_extra("create", record_id=record_id),
        )
        return self.convert_model(entity)

    def update(self, id: Any, data: Mapping[str, Any]) -> bool:
        """
        Apply data to an existing record.

        Nothing is written when every value already matches.

        Returns:
            True once the record holds the given values

        Raises:
            NotFoundError: If no (non-trashed) row has that id
            ValidationError: If data has keys the model does not accept
        """
        entity = self._find_or_fail(id)
        self.model.validate_fillable(data)
        for key, value in data.items():
            setattr(entity, key, value)

        if not entity.is_dirty():
            logger.debug(
                "Update of %s id=%s is a no-op", self.model.__name__, id,
                extra=self._log_extra("update", record_id=id),
            )
            return True

        self._persist()
        logger.info(
            "Updated %s id=%s fields=%s", self.model.__name__, id, sorted(data),
            extra=self._log_extra("update", record_id=id),
        )
        return True

    def delete(self, ids: Union[Any, Iterable[Any]]) -> int:
        """
        Delete one record or a batch of records.

        Soft-deletable models are trashed instead of removed; rows already
        trashed are not counted.

        Args:
            ids: One id, or any iterable of ids. A string is a single id

        Returns:
            Number of records deleted (0 if none matched)
        """
        if isinstance(ids, abc.Iterable) and not isinstance(ids, (str, bytes)):
            ids = list(ids)
        else:
            ids = [ids]
        if not ids:
            return 0

        soft = supports_soft_delete(self.model)
        stmt = select(self.model).where(self._primary_key().in_(ids))
        if soft:
            stmt = stmt.where(self.model.deleted_at.is_(None))
        entities = self.session.scalars(stmt).all()

        for entity in entities:
            if soft:
                entity.soft_delete()
            else:
                self.session.delete(entity)
        if entities:
            self._persist()

        logger.info(
            "Deleted %s ids=%s count=%s soft=%s", self.model.__name__, ids, len(entities), soft,
            extra=self._log_extra("delete", count=len(entities)),
        )
        return len(entities)

    # ========================================
    # Many-to-many
    # ========================================

    def attach(self, id: Any, relation: str, related_id: Any,
               additional: Optional[Mapping[str, Any]] = None) -> None:
        """
        Link a record to a related record through a named relation.

        Args:
            id: Primary key of the record
            relation: Name registered in the model's __relations__
            related_id: Primary key of the related record
            additional: Extra pivot columns to store with the link

        Raises:
            NotFoundError: If no (non-trashed) row has that id
            UnknownRelationError: If the model has no such relation
        """
        entity = self._find_or_fail(id)
        pivot = self.model.relation(relation)
        try:
            pivot.attach(self.session, self._identity(entity), related_id, additional)
        except SQLAlchemyError:
            self._abort()
            raise
        self.session.expire(entity)
        self._persist()
        logger.info(
            "Attached %s id=%s %s=%s", self.model.__name__, id, relation, related_id,
            extra=self._log_extra("attach", record_id=id),
        )

    def detach(self, id: Any, relation: str, related_id: Any) -> None:
        """
        Remove the link between a record and a related record.

        Raises:
            NotFoundError: If no (non-trashed) row has that id
            UnknownRelationError: If the model has no such relation
        """
        entity = self._find_or_fail(id)
        pivot = self.model.relation(relation)
        try:
            removed = pivot.detach(self.session, self._identity(entity), related_id)
        except SQLAlchemyError:
            self._abort()
            raise
        self.session.expire(entity)
        self._persist()
        logger.info(
            "Detached %s id=%s %s=%s removed=%s", self.model.__name__, id, relation,
            related_id, removed,
            extra=self._log_extra("detach", record_id=id, count=removed),
        )

    # ========================================
    # Normalization
    # ========================================

    def convert_collection(self, collection: Iterable[Any],
                           columns: Optional[Columns] = None) -> Collection:
        """Convert each entity to a record; mappings pass through unchanged."""
        records = []
        for item in collection:
            if not isinstance(item, Mapping):
                item = self.convert_model(item, columns)
            records.append(item)
        return records

    def convert_model(self, entity: Optional[BaseModel],
                      columns: Optional[Columns] = None) -> Optional[Record]:
        """
        Convert an entity to a plain dict.

        Soft-deletable entities get a boolean ``trashed`` key. The capability
        is checked on the entity's own class each time.
        """
        if entity is None:
            return None

        record = entity.to_dict(only=self._columns(columns))
        if supports_soft_delete(entity):
            record[TRASHED_FIELD] = bool(entity.trashed())
        return record

    # ========================================
    # Helpers
    # ========================================

    def _select(self, columns: Optional[Columns], with_trashed: bool) -> Select:
        stmt = select(self.model)
        if columns is not None:
            attrs = [self._column(name) for name in columns]
            if supports_soft_delete(self.model):
                attrs.append(self.model.deleted_at)
            stmt = stmt.options(load_only(*attrs))
        if not with_trashed and supports_soft_delete(self.model):
            stmt = stmt.where(self.model.deleted_at.is_(None))
        return stmt

    def _apply_order(self, stmt: Select, order: Optional[Order]) -> Select:
        for field, direction in (order or {}).items():
            column = self._column(field)
            try:
                direction = SortDirection.parse(direction)
            except ValueError as e:
                raise InvalidQueryError(str(e)) from None
            stmt = stmt.order_by(column.asc() if direction is SortDirection.ASC else column.desc())
        return stmt

    def _find_or_fail(self, id: Any) -> ModelT:
        stmt = select(self.model).where(self._primary_key() == id)
        if supports_soft_delete(self.model):
            stmt = stmt.where(self.model.deleted_at.is_(None))
        entity = self.session.scalars(stmt).first()
        if entity is None:
            raise NotFoundError(self.model.__name__, id)
        return entity

    def _persist(self) -> None:
        if not self.autocommit:
            self.session.flush()
            return
        try:
            self.session.commit()
        except SQLAlchemyError:
            self.session.rollback()
            raise

    def _abort(self) -> None:
        if self.autocommit:
            self.session.rollback()

    def _column(self, name: str) -> InstrumentedAttribute:
        if name not in self.model.__mapper__.column_attrs:
            raise InvalidQueryError(f"{self.model.__name__} has no column {name!r}")
        return getattr(self.model, name)

    def _primary_key(self) -> InstrumentedAttribute:
        return getattr(self.model, self._primary_key_name())

    def _primary_key_name(self) -> str:
        mapper = self.model.__mapper__
        return mapper.get_property_by_column(mapper.primary_key[0]).key

    def _identity(self, entity: ModelT) -> Any:
        return getattr(entity, self._primary_key_name())

    @staticmethod
    def _columns(columns: Union[str, Columns, None]) -> Optional[List[str]]:
        """Column list to project, or None for every column."""
        if isinstance(columns, str):
            columns = [columns]
        if not columns or ALL_COLUMNS in columns:
            return None
        return list(columns)

    def _log_extra(self, operation: str, **fields: Any) -> Dict[str, Any]:
        return {"model": self.model.__name__, "operation": operation, **fields}
