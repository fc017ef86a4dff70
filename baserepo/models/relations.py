"""
Many-to-many relations over an association (pivot) table.

A BelongsToMany writes pivot rows directly so that extra pivot columns
(e.g. who linked two records, and when) can be stored alongside the pair.
"""

from typing import Any, Dict, Mapping, Optional

from sqlalchemy import Table, delete, insert
from sqlalchemy.orm import Session

from baserepo.core.exceptions import ValidationError


class BelongsToMany:
    """
    Pivot-table relation between a parent model and a related model.

    Attributes:
        table: Association table
        parent_key: Pivot column holding the parent's primary key
        related_key: Pivot column holding the related record's primary key

    Example:
        post_tags = Table(
            "post_tags", Base.metadata,
            Column("post_id", ForeignKey("posts.id"), primary_key=True),
            Column("tag_id", ForeignKey("tags.id"), primary_key=True),
            Column("added_by", String(50)),
        )
        tags = BelongsToMany(post_tags, "post_id", "tag_id")
    """

    def __init__(self, table: Table, parent_key: str, related_key: str):
        for key in (parent_key, related_key):
            if key not in table.c:
                raise ValueError(f"{table.name} has no column {key!r}")
        self.table = table
        self.parent_key = parent_key
        self.related_key = related_key

    def attach(self, session: Session, parent_id: Any, related_id: Any,
               additional: Optional[Mapping[str, Any]] = None) -> None:
        """
        Insert a pivot row linking parent_id to related_id.

        Raises:
            ValidationError: If additional names columns the pivot lacks
        """
        values: Dict[str, Any] = dict(additional or {})
        unknown = set(values) - set(self.table.c.keys())
        if unknown:
            raise ValidationError(self.table.name, unknown)
        values[self.parent_key] = parent_id
        values[self.related_key] = related_id
        session.execute(insert(self.table).values(**values))

    def detach(self, session: Session, parent_id: Any, related_id: Any) -> int:
        """Delete the pivot row(s) for the pair. Returns rows removed."""
        result = session.execute(
            delete(self.table).where(
                self.table.c[self.parent_key] == parent_id,
                self.table.c[self.related_key] == related_id,
            )
        )
        return result.rowcount

    def __repr__(self) -> str:
        return (
            f"<BelongsToMany(table='{self.table.name}', "
            f"parent_key='{self.parent_key}', related_key='{self.related_key}')>"
        )
