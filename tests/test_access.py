"""Tests for the enrollment-gated join redirect."""

import pytest

from livetrain.errors import AuthenticationRequired, TransientLookupError
from livetrain.marketplace import (
    AccessRequest,
    AccessState,
    DestinationUrls,
    MarketplaceStore,
    StoreEnrollmentChecker,
    decide_access,
    resolve_session_access,
)
from livetrain.marketplace.models import Session

from conftest import MEETING_LINK

URLS = DestinationUrls(login="/auth", session_detail="/session/{session_id}", not_found="/catalog")

PUBLISHED = Session(42, 1, "2999-01-01T10:00:00+00:00", "2999-01-01T12:00:00+00:00", MEETING_LINK)
UNPUBLISHED = Session(43, 1, "2999-01-01T10:00:00+00:00", "2999-01-01T12:00:00+00:00", "x", False)
NO_LINK = Session(44, 2, "2999-01-01T10:00:00+00:00", "2999-01-01T12:00:00+00:00", "")


class FixedChecker:
    """Checker returning a canned answer, or raising a canned error."""

    def __init__(self, answer: bool | Exception) -> None:
        self.answer = answer
        self.calls: list[tuple[int, int]] = []

    async def is_enrolled(self, user_id: int, session_id: int) -> bool:
        self.calls.append((user_id, session_id))
        if isinstance(self.answer, Exception):
            raise self.answer
        return self.answer


class Reports:
    def __init__(self) -> None:
        self.errors: list[Exception] = []

    def __call__(self, exc: Exception) -> None:
        self.errors.append(exc)


class TestDecideAccess:
    def test_unauthenticated(self) -> None:
        destination = decide_access(AccessRequest(42, None, PUBLISHED, True), URLS)
        assert destination.url == "/auth"
        assert destination.state is AccessState.UNAUTHENTICATED

    def test_unknown_session(self) -> None:
        destination = decide_access(AccessRequest(42, 7, None), URLS)
        assert (destination.url, destination.state) == ("/catalog", AccessState.UNKNOWN)

    def test_unpublished_session_is_unknown(self) -> None:
        destination = decide_access(AccessRequest(43, 7, UNPUBLISHED, True), URLS)
        assert destination.state is AccessState.UNKNOWN

    def test_not_enrolled(self) -> None:
        destination = decide_access(AccessRequest(42, 7, PUBLISHED, False), URLS)
        assert destination.url == "/session/42"
        assert destination.state is AccessState.NOT_ENROLLED
        assert destination.failed_closed is False

    def test_enrolled_goes_to_meeting_link_verbatim(self) -> None:
        destination = decide_access(AccessRequest(42, 7, PUBLISHED, True), URLS)
        assert destination.url == MEETING_LINK
        assert destination.state is AccessState.ENROLLED
        assert destination.external is True

    def test_enrolled_without_link_goes_to_detail(self) -> None:
        destination = decide_access(AccessRequest(44, 7, NO_LINK, True), URLS)
        assert destination.url == "/session/44"
        assert destination.state is AccessState.ENROLLED
        assert destination.external is False

    def test_failed_lookup_fails_closed(self) -> None:
        destination = decide_access(AccessRequest(42, 7, PUBLISHED, None), URLS)
        assert destination.url == "/session/42"
        assert destination.state is AccessState.NOT_ENROLLED
        assert destination.failed_closed is True

    def test_idempotent(self) -> None:
        request = AccessRequest(42, 7, PUBLISHED, True)
        assert decide_access(request, URLS) == decide_access(request, URLS)

    def test_urls_from_config(self, config) -> None:
        urls = DestinationUrls.from_config(config)
        assert urls.detail_for(5) == "/session/5"
        assert urls.login == config.login_url


class TestResolveSessionAccess:
    async def test_enrolled_student(self, store: MarketplaceStore) -> None:
        await store.create_enrollment(7, 42)
        destination = await resolve_session_access(
            42, 7, sessions=store, checker=StoreEnrollmentChecker(store), urls=URLS
        )
        assert destination.url == MEETING_LINK

    async def test_not_enrolled_student(self, store: MarketplaceStore) -> None:
        destination = await resolve_session_access(
            42, 7, sessions=store, checker=StoreEnrollmentChecker(store), urls=URLS
        )
        assert destination.url == "/session/42"

    async def test_repeated_resolution_is_stable(self, store: MarketplaceStore) -> None:
        await store.create_enrollment(7, 42)
        checker = StoreEnrollmentChecker(store)
        first = await resolve_session_access(42, 7, sessions=store, checker=checker, urls=URLS)
        second = await resolve_session_access(42, 7, sessions=store, checker=checker, urls=URLS)
        assert first == second

    async def test_anonymous_skips_lookups(self, store: MarketplaceStore) -> None:
        checker = FixedChecker(True)
        destination = await resolve_session_access(
            42, None, sessions=store, checker=checker, urls=URLS
        )
        assert destination.state is AccessState.UNAUTHENTICATED
        assert checker.calls == []

    @pytest.mark.parametrize("session_id", [43, 999])
    async def test_unknown_or_unpublished_skips_enrollment(
        self, store: MarketplaceStore, session_id: int
    ) -> None:
        checker = FixedChecker(True)
        destination = await resolve_session_access(
            session_id, 7, sessions=store, checker=checker, urls=URLS
        )
        assert destination.state is AccessState.UNKNOWN
        assert checker.calls == []

    async def test_backend_without_identity_means_login(self, store: MarketplaceStore) -> None:
        destination = await resolve_session_access(
            42, 7, sessions=store, checker=FixedChecker(AuthenticationRequired()), urls=URLS
        )
        assert destination.url == "/auth"
        assert destination.state is AccessState.UNAUTHENTICATED

    async def test_transient_failure_reported_once(self, store: MarketplaceStore) -> None:
        error = TransientLookupError("timeout")
        checker = FixedChecker(error)
        reports = Reports()
        destination = await resolve_session_access(
            42, 7, sessions=store, checker=checker, urls=URLS, report=reports
        )
        assert destination.url == "/session/42"
        assert destination.failed_closed is True
        assert reports.errors == [error]
        assert len(checker.calls) == 1

    async def test_default_report_logs_warning(self, store: MarketplaceStore, caplog) -> None:
        with caplog.at_level("WARNING", logger="livetrain.access"):
            await resolve_session_access(
                42,
                7,
                sessions=store,
                checker=FixedChecker(TransientLookupError("timeout")),
                urls=URLS,
            )
        assert len(caplog.records) == 1
        assert "Enrollment lookup failed" in caplog.records[0].getMessage()
