"""Typed async database access over SQLite.

SQL in, frozen dataclasses out.

Connection URL format::

    sqlite:///path/to/db.sqlite    # SQLite file
    sqlite:///:memory:             # In-memory SQLite

A single connection is shared per ``Database`` and serialized with an
``anyio.Lock``. ``transaction()`` holds the lock for its whole block and
publishes its connection through a ContextVar, so queries issued inside
the block reuse it instead of waiting on the lock.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Any, TypeVar

import anyio

from livetrain.data._mapping import map_row, map_rows
from livetrain.data._sqlite import AsyncConnection
from livetrain.data._sqlite import connect as sqlite_connect
from livetrain.data.errors import DataError, DriverNotInstalledError, QueryError

logger = logging.getLogger("livetrain.data")

T = TypeVar("T")

# Set inside transaction(); query methods reuse the transaction's connection
_current_conn: ContextVar[AsyncConnection] = ContextVar("livetrain_db_conn")

# App-level database accessor, set by App during lifespan and per request
_db_var: ContextVar[Database] = ContextVar("livetrain_db")


def get_db() -> Database:
    """Return the app-level database instance.

    Raises ``LookupError`` if no database is configured or the app
    has not started yet.
    """
    return _db_var.get()


@dataclass(frozen=True, slots=True)
class DatabaseConfig:
    """Database connection configuration."""

    url: str
    echo: bool = False


class Database:
    """Typed async database access.

    Usage::

        db = Database("sqlite:///livetrain.db")

        sessions = await db.fetch(Session, "SELECT * FROM sessions WHERE is_published = 1")
        session = await db.fetch_one(Session, "SELECT * FROM sessions WHERE id = ?", 42)
        count = await db.fetch_val("SELECT COUNT(*) FROM enrollments WHERE session_id = ?", 42)

        async with db.transaction():
            await db.execute("DELETE FROM enrollments WHERE id = ?", 7)
            await db.execute("UPDATE ...")
    """

    __slots__ = ("_async_lock", "_config", "_conn", "_lock", "_path")

    def __init__(self, url: str, /, *, echo: bool = False) -> None:
        self._config = DatabaseConfig(url=url, echo=echo)
        self._path = _parse_sqlite_path(url)
        self._lock = threading.Lock()
        self._async_lock: anyio.Lock | None = None  # created on first use, inside a loop
        self._conn: AsyncConnection | None = None

    @property
    def url(self) -> str:
        return self._config.url

    # -- Connection management --

    def _get_async_lock(self) -> anyio.Lock:
        if self._async_lock is None:
            self._async_lock = anyio.Lock()
        return self._async_lock

    @asynccontextmanager
    async def _connection(self) -> AsyncIterator[AsyncConnection]:
        """Yield the connection, serialized against other tasks."""
        try:
            conn = _current_conn.get()
        except LookupError:
            pass
        else:
            yield conn
            return

        if self._conn is None:
            await self.connect()
        assert self._conn is not None
        async with self._get_async_lock():
            yield self._conn

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        """Execute multiple statements atomically.

        Commits on clean exit, rolls back on exception. A nested
        ``transaction()`` joins the outer one.
        """
        try:
            _current_conn.get()
        except LookupError:
            pass
        else:
            yield
            return

        if self._conn is None:
            await self.connect()
        assert self._conn is not None
        async with self._get_async_lock():
            conn = self._conn
            token = _current_conn.set(conn)
            try:
                conn.autocommit = False
                yield
                await conn.commit()
            except BaseException:
                await conn.rollback()
                raise
            finally:
                conn.autocommit = True
                _current_conn.reset(token)

    def _log_query(self, sql: str, params: Sequence[Any], started: float) -> None:
        if not self._config.echo:
            return
        ms = (time.perf_counter() - started) * 1000
        logger.debug("%6.1fms  %s  params=%r", ms, " ".join(sql.split()), tuple(params))

    # -- Public query API --

    async def fetch(self, cls: type[T], sql: str, /, *params: Any) -> list[T]:
        """Execute a query and return all rows as dataclasses."""
        started = time.perf_counter()
        async with self._connection() as conn:
            try:
                cursor = await conn.execute(sql, params)
                rows = await cursor.fetchall()
                columns = [desc[0] for desc in cursor.description]
                return map_rows(cls, [dict(zip(columns, row, strict=True)) for row in rows])
            except Exception as exc:
                raise QueryError(str(exc)) from exc
            finally:
                self._log_query(sql, params, started)

    async def fetch_one(self, cls: type[T], sql: str, /, *params: Any) -> T | None:
        """Execute a query and return the first row, or ``None``."""
        row = await self._fetch_row(sql, params)
        if row is None:
            return None
        return map_row(cls, row)

    async def fetch_val(self, sql: str, /, *params: Any) -> Any:
        """Return the first column of the first row (COUNT, MAX, ...)."""
        row = await self._fetch_row(sql, params)
        if row is None:
            return None
        return next(iter(row.values()))

    async def _fetch_row(self, sql: str, params: tuple[Any, ...]) -> dict[str, Any] | None:
        started = time.perf_counter()
        async with self._connection() as conn:
            try:
                cursor = await conn.execute(sql, params)
                row = await cursor.fetchone()
                if row is None:
                    return None
                columns = [desc[0] for desc in cursor.description]
                return dict(zip(columns, row, strict=True))
            except Exception as exc:
                raise QueryError(str(exc)) from exc
            finally:
                self._log_query(sql, params, started)

    async def execute(self, sql: str, /, *params: Any) -> int:
        """Execute a statement (INSERT/UPDATE/DELETE) and return rows affected."""
        started = time.perf_counter()
        async with self._connection() as conn:
            try:
                cursor = await conn.execute(sql, params)
                return cursor.rowcount
            except Exception as exc:
                raise QueryError(str(exc)) from exc
            finally:
                self._log_query(sql, params, started)

    async def insert(self, sql: str, /, *params: Any) -> int:
        """Execute an INSERT and return the new row's id."""
        started = time.perf_counter()
        async with self._connection() as conn:
            try:
                cursor = await conn.execute(sql, params)
            except Exception as exc:
                raise QueryError(str(exc)) from exc
            finally:
                self._log_query(sql, params, started)
        if cursor.lastrowid is None:
            msg = f"Statement did not insert a row: {sql}"
            raise QueryError(msg)
        return cursor.lastrowid

    async def execute_script(self, sql: str, /) -> None:
        """Execute several SQL statements at once (migrations, fixtures)."""
        started = time.perf_counter()
        async with self._connection() as conn:
            try:
                await conn.executescript(sql)
            except Exception as exc:
                raise QueryError(str(exc)) from exc
            finally:
                self._log_query(sql, (), started)

    # -- Lifecycle --

    async def connect(self) -> None:
        """Open the connection. Called automatically on first query."""
        if self._conn is not None:
            return
        conn = await sqlite_connect(self._path)
        with self._lock:
            if self._conn is None:
                self._conn = conn
                logger.info("Connected to %s", self._config.url)
                return
        await conn.close()

    async def disconnect(self) -> None:
        """Close the connection."""
        with self._lock:
            conn, self._conn = self._conn, None
        if conn is not None:
            await conn.close()
            logger.info("Disconnected from %s", self._config.url)

    async def __aenter__(self) -> Database:
        await self.connect()
        return self

    async def __aexit__(self, *_: Any) -> None:
        await self.disconnect()


def _parse_sqlite_path(url: str) -> str:
    """Extract the file path from a sqlite:// URL."""
    # sqlite:///path/to/db  ->  path/to/db
    # sqlite:///:memory:    ->  :memory:
    if not url.startswith("sqlite"):
        msg = f"Unsupported database URL scheme: {url!r}. Only sqlite:///path is supported."
        raise DriverNotInstalledError(msg)
    for prefix in ("sqlite:///", "sqlite://"):
        if url.startswith(prefix):
            return url[len(prefix) :]
    msg = f"Invalid SQLite URL: {url!r}"
    raise DataError(msg)
