"""
Model building blocks.

Application models derive from ``BaseModel`` and ``Base``, optionally mix in
``SoftDeletable``, and register many-to-many relations as ``BelongsToMany``.
"""

from baserepo.models.base import (
    Base,
    BaseModel,
    SoftDeletable,
    supports_soft_delete,
)
from baserepo.models.relations import BelongsToMany

__all__ = [
    "Base",
    "BaseModel",
    "SoftDeletable",
    "BelongsToMany",
    "supports_soft_delete",
]
