"""Tests for livetrain.data — typed async SQLite access."""

from dataclasses import dataclass

import pytest

from livetrain.data import Database, DataError, DriverNotInstalledError, QueryError
from livetrain.data._mapping import map_row, map_rows


@dataclass(frozen=True, slots=True)
class Trainer:
    id: int
    name: str
    active: bool = True
    rating: float | None = None


@pytest.fixture
async def db(tmp_path):
    database = Database(f"sqlite:///{tmp_path / 'data.db'}")
    await database.connect()
    await database.execute(
        "CREATE TABLE trainers ("
        "  id INTEGER PRIMARY KEY,"
        "  name TEXT NOT NULL UNIQUE,"
        "  active INTEGER NOT NULL DEFAULT 1,"
        "  rating REAL"
        ")"
    )
    yield database
    await database.disconnect()


class TestURLs:
    def test_memory_url(self) -> None:
        assert Database("sqlite:///:memory:")._path == ":memory:"

    def test_file_url(self) -> None:
        assert Database("sqlite:////var/lib/livetrain.db")._path == "/var/lib/livetrain.db"

    def test_unsupported_scheme(self) -> None:
        with pytest.raises(DriverNotInstalledError, match="Only sqlite"):
            Database("postgresql://localhost/livetrain")

    def test_driver_error_is_data_error(self) -> None:
        assert issubclass(DriverNotInstalledError, DataError)


class TestMapping:
    def test_coerces_sqlite_integers_to_bool(self) -> None:
        trainer = map_row(Trainer, {"id": 1, "name": "tina", "active": 0, "rating": None})
        assert trainer.active is False
        assert trainer.rating is None

    def test_coerces_strings(self) -> None:
        trainer = map_row(Trainer, {"id": "3", "name": "otto", "active": "1", "rating": "4.5"})
        assert trainer == Trainer(3, "otto", True, 4.5)

    def test_ignores_extra_columns(self) -> None:
        assert map_row(Trainer, {"id": 1, "name": "tina", "course_count": 3}).name == "tina"

    def test_rows(self) -> None:
        rows = [{"id": 1, "name": "a"}, {"id": 2, "name": "b"}]
        assert [t.id for t in map_rows(Trainer, rows)] == [1, 2]

    def test_rejects_non_dataclass(self) -> None:
        with pytest.raises(TypeError, match="not a dataclass"):
            map_row(dict, {"id": 1})


class TestQueries:
    async def test_insert_and_fetch(self, db: Database) -> None:
        trainer_id = await db.insert("INSERT INTO trainers (name, active) VALUES (?, ?)", "tina", False)
        assert trainer_id == 1
        trainers = await db.fetch(Trainer, "SELECT * FROM trainers")
        assert trainers == [Trainer(1, "tina", False, None)]

    async def test_fetch_one_missing(self, db: Database) -> None:
        assert await db.fetch_one(Trainer, "SELECT * FROM trainers WHERE id = ?", 99) is None

    async def test_fetch_val(self, db: Database) -> None:
        await db.insert("INSERT INTO trainers (name) VALUES (?)", "a")
        await db.insert("INSERT INTO trainers (name) VALUES (?)", "b")
        assert await db.fetch_val("SELECT COUNT(*) FROM trainers") == 2

    async def test_execute_returns_rowcount(self, db: Database) -> None:
        await db.insert("INSERT INTO trainers (name) VALUES (?)", "a")
        await db.insert("INSERT INTO trainers (name) VALUES (?)", "b")
        assert await db.execute("UPDATE trainers SET active = 0") == 2
        assert await db.execute("DELETE FROM trainers WHERE name = ?", "zzz") == 0

    async def test_sql_error_becomes_query_error(self, db: Database) -> None:
        with pytest.raises(QueryError, match="no such table"):
            await db.fetch(Trainer, "SELECT * FROM missing")

    async def test_constraint_violation_becomes_query_error(self, db: Database) -> None:
        await db.insert("INSERT INTO trainers (name) VALUES (?)", "tina")
        with pytest.raises(QueryError, match="UNIQUE"):
            await db.insert("INSERT INTO trainers (name) VALUES (?)", "tina")

    async def test_connects_lazily(self, tmp_path) -> None:
        database = Database(f"sqlite:///{tmp_path / 'lazy.db'}")
        try:
            assert await database.fetch_val("SELECT 1 + 1") == 2
        finally:
            await database.disconnect()


class TestTransactions:
    async def test_commit(self, db: Database) -> None:
        async with db.transaction():
            await db.insert("INSERT INTO trainers (name) VALUES (?)", "a")
            await db.insert("INSERT INTO trainers (name) VALUES (?)", "b")
        assert await db.fetch_val("SELECT COUNT(*) FROM trainers") == 2

    async def test_rollback_on_error(self, db: Database) -> None:
        with pytest.raises(RuntimeError):
            async with db.transaction():
                await db.insert("INSERT INTO trainers (name) VALUES (?)", "a")
                raise RuntimeError("abort")
        assert await db.fetch_val("SELECT COUNT(*) FROM trainers") == 0

    async def test_nested_transaction_joins_outer(self, db: Database) -> None:
        with pytest.raises(QueryError):
            async with db.transaction():
                await db.insert("INSERT INTO trainers (name) VALUES (?)", "a")
                async with db.transaction():
                    await db.insert("INSERT INTO trainers (name) VALUES (?)", "b")
                await db.insert("INSERT INTO trainers (name) VALUES (?)", "a")
        assert await db.fetch_val("SELECT COUNT(*) FROM trainers") == 0

    async def test_autocommit_restored(self, db: Database) -> None:
        async with db.transaction():
            pass
        await db.insert("INSERT INTO trainers (name) VALUES (?)", "after")
        assert await db.fetch_val("SELECT COUNT(*) FROM trainers") == 1
