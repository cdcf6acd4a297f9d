"""Shared fixtures: a migrated SQLite database seeded with marketplace data."""

import pytest

from livetrain.config import AppConfig
from livetrain.data import Database, migrate
from livetrain.marketplace import MIGRATIONS_DIR, MarketplaceStore, create_app
from livetrain.testing import TestClient

FUTURE_START = "2999-01-01T10:00:00+00:00"
FUTURE_END = "2999-01-01T12:00:00+00:00"
MEETING_LINK = "https://meet.example.com/j/42?pwd=AbC%2Fx"

TRAINER_TOKEN = "tok-trainer"
OTHER_TRAINER_TOKEN = "tok-other-trainer"
ADMIN_TOKEN = "tok-admin"
STUDENT_TOKEN = "tok-student"
UNSUBSCRIBED_TOKEN = "tok-unsubscribed"

_SEED_SQL = f"""
INSERT INTO users (id, username, role, is_subscribed, api_token) VALUES
    (1, 'tina', 'trainer', 0, '{TRAINER_TOKEN}'),
    (2, 'ada', 'admin', 0, '{ADMIN_TOKEN}'),
    (3, 'otto', 'trainer', 0, '{OTHER_TRAINER_TOKEN}'),
    (7, 'sam', 'student', 1, '{STUDENT_TOKEN}'),
    (8, 'uma', 'student', 0, '{UNSUBSCRIBED_TOKEN}'),
    (9, 'eve', 'enterprise', 1, NULL);

INSERT INTO courses (id, title, trainer_id, max_students) VALUES
    (1, 'Async Python', 1, 2),
    (2, 'Data Pipelines', 3, 10);

INSERT INTO sessions (id, course_id, starts_at, ends_at, meeting_link, is_published) VALUES
    (41, 1, '2000-01-01T10:00:00+00:00', '2000-01-01T12:00:00+00:00', 'https://meet.example.com/j/41', 1),
    (42, 1, '{FUTURE_START}', '{FUTURE_END}', '{MEETING_LINK}', 1),
    (43, 1, '2999-02-01T10:00:00+00:00', '2999-02-01T12:00:00+00:00', 'https://meet.example.com/j/43', 0),
    (44, 2, '2999-03-01T10:00:00+00:00', '2999-03-01T12:00:00+00:00', '', 1);
"""


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def db(tmp_path):
    """A migrated, empty database."""
    database = Database(f"sqlite:///{tmp_path / 'livetrain.db'}")
    await database.connect()
    await migrate(database, MIGRATIONS_DIR)
    yield database
    await database.disconnect()


@pytest.fixture
async def store(db):
    """A store over a database seeded with users, courses and sessions."""
    await db.execute_script(_SEED_SQL)
    return MarketplaceStore(db)


@pytest.fixture
def config() -> AppConfig:
    return AppConfig(secret_key="test-secret")


@pytest.fixture
async def client(store, config):
    """A TestClient over the marketplace app sharing the seeded database."""
    app = create_app(config, db=store.db)
    async with TestClient(app) as test_client:
        yield test_client
