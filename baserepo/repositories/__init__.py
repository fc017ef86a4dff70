"""
Data access layer (Repository pattern).

Repositories handle all database queries,
isolating business logic from SQL.
"""

from baserepo.repositories.base import BaseRepository, Collection, Record

__all__ = [
    "BaseRepository",
    "Collection",
    "Record",
]
