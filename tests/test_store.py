"""Tests for MarketplaceStore queries over the seeded database."""

import anyio
import pytest

from livetrain.data import QueryError
from livetrain.marketplace import Enrollment, EnrollmentRefusal, MarketplaceStore
from livetrain.marketplace.models import utc_timestamp

from conftest import FUTURE_START, MEETING_LINK, STUDENT_TOKEN


class TestUsers:
    async def test_verify_token(self, store: MarketplaceStore) -> None:
        account = await store.verify_token(STUDENT_TOKEN)
        assert account is not None
        assert account.id == 7
        assert account.is_subscribed is True
        assert account.permissions == frozenset()

    async def test_unknown_token(self, store: MarketplaceStore) -> None:
        assert await store.verify_token("nope") is None

    async def test_load_user_from_session_value(self, store: MarketplaceStore) -> None:
        account = await store.load_user("1")
        assert account is not None
        assert account.username == "tina"
        assert "trainer" in account.permissions

    async def test_load_user_rejects_non_numeric(self, store: MarketplaceStore) -> None:
        assert await store.load_user("abc") is None

    async def test_create_user(self, store: MarketplaceStore) -> None:
        account = await store.create_user("new", role="trainer", api_token="tok-new")
        assert await store.verify_token("tok-new") == account

    async def test_unknown_role_is_rejected(self, store: MarketplaceStore) -> None:
        with pytest.raises(QueryError, match="CHECK"):
            await store.create_user("mallory", role="root")


class TestSessions:
    async def test_get_session_includes_course_title(self, store: MarketplaceStore) -> None:
        session = await store.get_session(42)
        assert session is not None
        assert session.course_title == "Async Python"
        assert session.meeting_link == MEETING_LINK
        assert session.starts_at == FUTURE_START

    async def test_get_unpublished_session(self, store: MarketplaceStore) -> None:
        session = await store.get_session(43)
        assert session is not None
        assert session.is_published is False

    async def test_list_published(self, store: MarketplaceStore) -> None:
        assert [s.id for s in await store.list_published()] == [41, 42, 44]

    async def test_upcoming_excludes_past_and_unpublished(self, store: MarketplaceStore) -> None:
        assert [s.id for s in await store.upcoming()] == [42, 44]

    async def test_upcoming_relative_to_now(self, store: MarketplaceStore) -> None:
        sessions = await store.upcoming("2999-02-15T00:00:00+00:00")
        assert [s.id for s in sessions] == [44]

    async def test_by_trainer(self, store: MarketplaceStore) -> None:
        assert [s.id for s in await store.by_trainer(1)] == [41, 42, 43]
        assert [s.id for s in await store.by_trainer(3)] == [44]

    async def test_create_session_normalizes_times(self, store: MarketplaceStore) -> None:
        session = await store.create_session(
            2, "2999-05-01T12:00:00+02:00", "2999-05-01T14:00:00+02:00", "https://m.example/x"
        )
        assert session.starts_at == "2999-05-01T10:00:00+00:00"
        assert session.course_title == "Data Pipelines"

    async def test_create_session_rejects_inverted_times(self, store: MarketplaceStore) -> None:
        with pytest.raises(ValueError, match="must end after it starts"):
            await store.create_session(2, "2999-05-01T14:00:00", "2999-05-01T12:00:00")


class TestEnrollments:
    async def test_enroll_and_lookup(self, store: MarketplaceStore) -> None:
        enrollment = await store.create_enrollment(7, 42)
        assert isinstance(enrollment, Enrollment)
        assert await store.get_enrollment(7, 42) == enrollment
        assert await store.enrolled_session_ids(7) == {42}
        assert await store.count_enrollments(42) == 1

    async def test_capacity(self, store: MarketplaceStore) -> None:
        assert isinstance(await store.create_enrollment(7, 42, capacity=2), Enrollment)
        assert isinstance(await store.create_enrollment(8, 42, capacity=2), Enrollment)
        assert await store.create_enrollment(9, 42, capacity=2) is EnrollmentRefusal.FULL
        assert await store.count_enrollments(42) == 2

    async def test_duplicate_enrollment(self, store: MarketplaceStore) -> None:
        await store.create_enrollment(7, 42)
        assert await store.create_enrollment(7, 42) is EnrollmentRefusal.ALREADY_ENROLLED
        assert await store.count_enrollments(42) == 1

    async def test_concurrent_duplicate_enrollment(self, store: MarketplaceStore) -> None:
        results: list[Enrollment | EnrollmentRefusal] = []

        async def enroll() -> None:
            results.append(await store.create_enrollment(7, 42, capacity=10))

        async with anyio.create_task_group() as tg:
            tg.start_soon(enroll)
            tg.start_soon(enroll)

        assert sorted(isinstance(r, Enrollment) for r in results) == [False, True]
        assert EnrollmentRefusal.ALREADY_ENROLLED in results
        assert await store.count_enrollments(42) == 1

    async def test_delete(self, store: MarketplaceStore) -> None:
        await store.create_enrollment(7, 42)
        assert await store.delete_enrollment(7, 42) is True
        assert await store.delete_enrollment(7, 42) is False
        assert await store.get_enrollment(7, 42) is None

    async def test_enrolled_sessions_ordered(self, store: MarketplaceStore) -> None:
        await store.create_enrollment(7, 44)
        await store.create_enrollment(7, 42)
        assert [s.id for s in await store.enrolled_sessions(7)] == [42, 44]


class TestTimestamps:
    def test_naive_taken_as_utc(self) -> None:
        assert utc_timestamp("2999-01-01T10:00:00") == "2999-01-01T10:00:00+00:00"

    def test_offset_converted(self) -> None:
        assert utc_timestamp("2999-01-01T10:00:00-05:00") == "2999-01-01T15:00:00+00:00"

    def test_invalid(self) -> None:
        with pytest.raises(ValueError):
            utc_timestamp("next tuesday")
