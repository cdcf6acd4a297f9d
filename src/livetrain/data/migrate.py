"""Forward-only SQL migration runner.

Migrations are numbered ``.sql`` files in a directory::

    migrations/
        001_create_schema.sql
        002_add_course_level.sql

Applied migrations are recorded in a ``_livetrain_migrations`` table.
Each pending migration runs inside a transaction with its tracking
row; a failure rolls both back and stops the run.
"""

import logging
import re
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path

from livetrain.data.database import Database
from livetrain.data.errors import MigrationError

logger = logging.getLogger("livetrain.data")

_TRACKING_TABLE = "_livetrain_migrations"

_CREATE_TRACKING_SQL = f"""
CREATE TABLE IF NOT EXISTS {_TRACKING_TABLE} (
    version    INTEGER PRIMARY KEY,
    name       TEXT    NOT NULL,
    applied_at TEXT    NOT NULL
)
"""

_FILENAME = re.compile(r"^(\d+)_\w+$")


@dataclass(frozen=True, slots=True)
class Migration:
    """A single migration file."""

    version: int
    name: str
    sql: str


@dataclass(frozen=True, slots=True)
class MigrationResult:
    """Result of running migrations."""

    applied: list[str]
    already_applied: int
    total_available: int

    @property
    def summary(self) -> str:
        if not self.applied:
            return f"Already up to date ({self.already_applied} migrations applied)"
        return f"Applied {len(self.applied)} migration(s): {', '.join(self.applied)}"


@dataclass(frozen=True, slots=True)
class _Version:
    version: int


def discover_migrations(directory: str | Path) -> list[Migration]:
    """Parse ``NNN_description.sql`` files from *directory*, sorted by version."""
    path = Path(directory)
    if not path.is_dir():
        msg = f"Migration directory does not exist: {path}"
        raise MigrationError(msg)

    migrations: list[Migration] = []
    for sql_file in path.glob("*.sql"):
        match = _FILENAME.match(sql_file.stem)
        if match is None:
            msg = f"Invalid migration filename: {sql_file.name} (expected NNN_description.sql)"
            raise MigrationError(msg)
        sql = sql_file.read_text(encoding="utf-8").strip()
        if not sql:
            msg = f"Empty migration file: {sql_file.name}"
            raise MigrationError(msg)
        migrations.append(Migration(version=int(match.group(1)), name=sql_file.stem, sql=sql))

    migrations.sort(key=lambda m: m.version)
    versions = [m.version for m in migrations]
    if len(versions) != len(set(versions)):
        msg = f"Duplicate migration version numbers in {path}"
        raise MigrationError(msg)
    return migrations


async def _apply_migration(db: Database, migration: Migration) -> None:
    # executescript commits on its own, so run statements one by one
    # to keep the migration and its tracking row in one transaction
    async with db.transaction():
        for statement in _split_statements(migration.sql):
            await db.execute(statement)
        await db.execute(
            f"INSERT INTO {_TRACKING_TABLE} (version, name, applied_at) VALUES (?, ?, ?)",
            migration.version,
            migration.name,
            datetime.now(UTC).isoformat(),
        )


def _split_statements(sql: str) -> list[str]:
    lines = [line for line in sql.splitlines() if not line.strip().startswith("--")]
    return [stmt.strip() for stmt in "\n".join(lines).split(";") if stmt.strip()]


async def migrate(db: Database, directory: str | Path) -> MigrationResult:
    """Apply pending migrations from *directory* in version order.

    Raises:
        MigrationError: If a migration fails or the directory is invalid.
    """
    migrations = discover_migrations(directory)
    await db.execute(_CREATE_TRACKING_SQL)
    applied_versions = {
        row.version for row in await db.fetch(_Version, f"SELECT version FROM {_TRACKING_TABLE}")
    }

    applied: list[str] = []
    for migration in migrations:
        if migration.version in applied_versions:
            continue
        try:
            await _apply_migration(db, migration)
        except Exception as exc:
            msg = f"Migration {migration.name} failed: {exc}"
            raise MigrationError(msg) from exc
        applied.append(migration.name)

    result = MigrationResult(
        applied=applied,
        already_applied=len(applied_versions),
        total_available=len(migrations),
    )
    logger.info(result.summary)
    return result
