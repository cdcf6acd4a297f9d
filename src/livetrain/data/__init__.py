"""Typed async database access for livetrain.

SQL in, frozen dataclasses out. Not an ORM::

    from livetrain.data import Database

    db = Database("sqlite:///livetrain.db")
    session = await db.fetch_one(Session, "SELECT * FROM sessions WHERE id = ?", 42)

SQLite only, through stdlib ``sqlite3`` run in ``anyio`` worker threads.
"""

from livetrain.data.database import Database, get_db
from livetrain.data.errors import DataError, DriverNotInstalledError, MigrationError, QueryError
from livetrain.data.migrate import MigrationResult, migrate

__all__ = [
    "DataError",
    "Database",
    "DriverNotInstalledError",
    "MigrationError",
    "MigrationResult",
    "QueryError",
    "get_db",
    "migrate",
]
