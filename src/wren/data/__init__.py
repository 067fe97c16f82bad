"""Typed async database access backing the durable session store.

SQL in, dataclasses out. Not an ORM.

SQLite works out of the box; PostgreSQL needs ``asyncpg``::

    pip install wren[data-pg]
"""

from wren.data.database import Database, DatabaseConfig
from wren.data.errors import DataError, DriverNotInstalledError, QueryError

__all__ = [
    "DataError",
    "Database",
    "DatabaseConfig",
    "DriverNotInstalledError",
    "QueryError",
]
