"""HTTP endpoints of the marketplace.

Registration order matters: literal paths come before parameterized
siblings, and ``register_routes()`` records sample paths that the app
dispatches at freeze time to prove it.
"""

import logging
from typing import Any

from livetrain.app import App
from livetrain.config import AppConfig
from livetrain.errors import AuthenticationRequired, BadRequest, Forbidden, NotFoundError
from livetrain.http.request import Request
from livetrain.http.response import Redirect
from livetrain.marketplace.access import AccessState, DestinationUrls, resolve_session_access
from livetrain.marketplace.enrollment import EnrollmentChecker
from livetrain.marketplace.models import Account, Session
from livetrain.marketplace.store import EnrollmentRefusal, MarketplaceStore
from livetrain.middleware.auth import get_user
from livetrain.routing.params import parse_positive_id
from livetrain.security import login_required, requires

logger = logging.getLogger("livetrain.server")

_ALREADY_ENROLLED = "Already enrolled in this session"


def _positive_id(raw: str, what: str) -> int:
    value = parse_positive_id(raw)
    if value is None:
        raise NotFoundError(f"{what} not found")
    return value


def _current_account() -> Account | None:
    user = get_user()
    return user if isinstance(user, Account) else None


def _link_visible(account: Account, session: Session, enrolled: set[int]) -> bool:
    return (
        session.id in enrolled
        or session.trainer_id == account.id
        or "admin" in account.permissions
    )


async def _render(
    store: MarketplaceStore, sessions: list[Session], *, mark_enrolled: bool = True
) -> list[dict[str, Any]]:
    """Serialize *sessions* for the caller.

    The meeting link is only shown to enrolled students, the course's
    trainer and admins.
    """
    account = _current_account()
    if account is None:
        return [session.as_json() for session in sessions]
    enrolled = await store.enrolled_session_ids(account.id)
    return [
        session.as_json(
            is_enrolled=(session.id in enrolled) if mark_enrolled else None,
            include_link=_link_visible(account, session, enrolled),
        )
        for session in sessions
    ]


async def _json_object(request: Request) -> dict[str, Any]:
    payload = await request.json()
    if not isinstance(payload, dict):
        raise BadRequest("Expected a JSON object")
    return payload


def _require_int(payload: dict[str, Any], key: str) -> int:
    value = payload.get(key)
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise BadRequest(f"{key!r} must be a positive integer")
    return value


def _require_str(payload: dict[str, Any], key: str, *, required: bool = True) -> str:
    value = payload.get(key, None if required else "")
    if not isinstance(value, str) or (required and not value):
        raise BadRequest(f"{key!r} must be a non-empty string")
    return value


# -- Sessions --


async def list_sessions(store: MarketplaceStore) -> list[dict[str, Any]]:
    return await _render(store, await store.list_published(), mark_enrolled=False)


async def upcoming_sessions(store: MarketplaceStore) -> list[dict[str, Any]]:
    return await _render(store, await store.upcoming())


async def trainer_sessions(trainer_id: str, store: MarketplaceStore) -> list[dict[str, Any]]:
    sessions = await store.by_trainer(_positive_id(trainer_id, "Trainer"))
    return await _render(store, sessions, mark_enrolled=False)


async def session_detail(id: str, store: MarketplaceStore) -> dict[str, Any]:
    session = await store.get_session(_positive_id(id, "Session"))
    if session is None or not session.is_published:
        raise NotFoundError("Session not found")
    (body,) = await _render(store, [session])
    return body


@requires("trainer")
async def create_session(request: Request, store: MarketplaceStore) -> tuple[dict[str, Any], int]:
    payload = await _json_object(request)
    course_id = _require_int(payload, "courseId")
    starts_at = _require_str(payload, "startsAt")
    ends_at = _require_str(payload, "endsAt")
    meeting_link = _require_str(payload, "meetingLink", required=False)
    is_published = payload.get("isPublished", True)
    if not isinstance(is_published, bool):
        raise BadRequest("'isPublished' must be a boolean")

    course = await store.get_course(course_id)
    if course is None:
        raise NotFoundError("Course not found")
    user = get_user()
    if course.trainer_id != user.id and "admin" not in user.permissions:
        raise Forbidden("You can only create sessions for your own courses")

    try:
        session = await store.create_session(
            course_id, starts_at, ends_at, meeting_link, is_published=is_published
        )
    except ValueError as exc:
        raise BadRequest(str(exc)) from None
    return session.as_json(include_link=True), 201


# -- Enrollments --


async def check_enrollment(session_id: str, store: MarketplaceStore) -> dict[str, Any]:
    account = _current_account()
    if account is None:
        raise AuthenticationRequired()
    enrollment = await store.get_enrollment(account.id, _positive_id(session_id, "Session"))
    return {
        "isEnrolled": enrollment is not None,
        "enrollment": enrollment.as_json() if enrollment is not None else None,
    }


@login_required
async def my_enrollments(store: MarketplaceStore) -> list[dict[str, Any]]:
    account = _current_account()
    assert account is not None
    sessions = await store.enrolled_sessions(account.id)
    return [session.as_json(is_enrolled=True, include_link=True) for session in sessions]


@login_required
async def enroll(request: Request, store: MarketplaceStore) -> tuple[dict[str, Any], int]:
    account = _current_account()
    assert account is not None
    session_id = _require_int(await _json_object(request), "sessionId")

    session = await store.get_session(session_id)
    if session is None or not session.is_published:
        raise NotFoundError("Session not found")
    if await store.get_enrollment(account.id, session_id) is not None:
        raise BadRequest(_ALREADY_ENROLLED)
    if not account.is_subscribed:
        raise Forbidden("You need an active subscription to enroll in sessions")

    course = await store.get_course(session.course_id)
    capacity = course.max_students if course is not None else None
    enrollment = await store.create_enrollment(account.id, session_id, capacity=capacity)
    if enrollment is EnrollmentRefusal.ALREADY_ENROLLED:
        raise BadRequest(_ALREADY_ENROLLED)
    if enrollment is EnrollmentRefusal.FULL:
        raise BadRequest("Session is full")
    return enrollment.as_json(), 201


@login_required
async def cancel_enrollment(session_id: str, store: MarketplaceStore) -> None:
    account = _current_account()
    assert account is not None
    if not await store.delete_enrollment(account.id, _positive_id(session_id, "Enrollment")):
        raise NotFoundError("Enrollment not found")
    logger.info("User %d cancelled enrollment in session %s", account.id, session_id)


# -- Navigation --


async def join_session(
    id: str,
    store: MarketplaceStore,
    checker: EnrollmentChecker,
    urls: DestinationUrls,
) -> Redirect:
    account = _current_account()
    destination = await resolve_session_access(
        _positive_id(id, "Session"),
        account.id if account is not None else None,
        sessions=store,
        checker=checker,
        urls=urls,
    )
    if destination.state is AccessState.UNKNOWN:
        raise NotFoundError("Session not found")
    return Redirect(destination.url)


async def legacy_upcoming(config: AppConfig) -> Redirect:
    return Redirect(config.upcoming_sessions_url)


def register_routes(app: App) -> None:
    """Register every marketplace endpoint on *app*, literal paths first."""
    app.route("/api/sessions")(list_sessions)
    app.route("/api/sessions/upcoming")(upcoming_sessions)
    app.route("/api/sessions/trainer/{trainer_id}")(trainer_sessions)
    app.route("/api/sessions/{id}")(session_detail)
    app.route("/api/sessions", methods=["POST"])(create_session)

    app.route("/api/enrollments/check/{session_id}")(check_enrollment)
    app.route("/api/enrollments/user")(my_enrollments)
    app.route("/api/enrollments", methods=["POST"])(enroll)
    app.route("/api/enrollments/{session_id}", methods=["DELETE"])(cancel_enrollment)

    app.route("/sessions/{id}/join")(join_session)
    app.route("/session/upcoming")(legacy_upcoming)

    app.expect("/api/sessions/upcoming", "/api/sessions/upcoming")
    app.expect("/api/sessions/trainer/3", "/api/sessions/trainer/{trainer_id}")
    app.expect("/api/sessions/42", "/api/sessions/{id}")
    app.expect("/api/enrollments/user", "/api/enrollments/user")
    app.expect("/api/enrollments/check/42", "/api/enrollments/check/{session_id}")
    app.expect("/api/enrollments/42", "/api/enrollments/{session_id}", method="DELETE")
    app.expect("/sessions/42/join", "/sessions/{id}/join")
    app.expect("/session/upcoming", "/session/upcoming")
