"""Database package."""

from baserepo.database.session import (
    create_db_engine,
    get_engine,
    get_session_factory,
    dispose_engine,
    get_db,
    get_db_context,
    create_all_tables,
    drop_all_tables,
)

__all__ = [
    "create_db_engine",
    "get_engine",
    "get_session_factory",
    "dispose_engine",
    "get_db",
    "get_db_context",
    "create_all_tables",
    "drop_all_tables",
]
