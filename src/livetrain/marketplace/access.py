"""Enrollment-gated redirect for a session's live meeting.

A request to join session ``N`` ends in one of four places:

======================  ================================================
State                   Destination
======================  ================================================
``UNAUTHENTICATED``     login entry point
``UNKNOWN``             "not found" view (absent or unpublished session)
``NOT_ENROLLED``        session detail view
``ENROLLED``            the stored meeting link, untransformed
======================  ================================================

``decide_access()`` is the pure decision over explicit inputs.
``resolve_session_access()`` performs the lookups, then decides. When the
enrollment lookup fails, the result is the session detail view (fail
closed) and the failure is reported once; nothing is retried.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Protocol

from livetrain.errors import AuthenticationRequired, TransientLookupError

if TYPE_CHECKING:
    from livetrain.config import AppConfig
    from livetrain.marketplace.enrollment import EnrollmentChecker
    from livetrain.marketplace.models import Session

logger = logging.getLogger("livetrain.access")


class AccessState(StrEnum):
    UNAUTHENTICATED = "unauthenticated"
    UNKNOWN = "unknown"
    NOT_ENROLLED = "not_enrolled"
    ENROLLED = "enrolled"


@dataclass(frozen=True, slots=True)
class AccessRequest:
    """Everything the decision depends on.

    Attributes:
        session_id: The requested session.
        user_id: The caller, or ``None`` when unauthenticated.
        session: The session record, or ``None`` when it does not exist.
        enrolled: Lookup outcome. ``None`` means the lookup failed.
    """

    session_id: int
    user_id: int | None
    session: Session | None = None
    enrolled: bool | None = False


@dataclass(frozen=True, slots=True)
class DestinationUrls:
    """Internal navigation targets. ``session_detail`` takes ``{session_id}``."""

    login: str = "/auth"
    session_detail: str = "/session/{session_id}"
    not_found: str = "/catalog"

    @classmethod
    def from_config(cls, config: AppConfig) -> DestinationUrls:
        return cls(
            login=config.login_url,
            session_detail=config.session_detail_url,
            not_found=config.not_found_url,
        )

    def detail_for(self, session_id: int) -> str:
        return self.session_detail.format(session_id=session_id)


@dataclass(frozen=True, slots=True)
class Destination:
    """Where to navigate. ``external`` marks the meeting link."""

    url: str
    state: AccessState
    external: bool = False
    failed_closed: bool = False


def decide_access(request: AccessRequest, urls: DestinationUrls) -> Destination:
    """Map an ``AccessRequest`` to its ``Destination``. Pure and idempotent."""
    if request.user_id is None:
        return Destination(urls.login, AccessState.UNAUTHENTICATED)

    session = request.session
    if session is None or not session.is_published:
        return Destination(urls.not_found, AccessState.UNKNOWN)

    detail = urls.detail_for(request.session_id)
    if request.enrolled is None:
        return Destination(detail, AccessState.NOT_ENROLLED, failed_closed=True)
    if not request.enrolled:
        return Destination(detail, AccessState.NOT_ENROLLED)
    if not session.meeting_link:
        # Enrolled, but the trainer has not published a link yet
        return Destination(detail, AccessState.ENROLLED)
    return Destination(session.meeting_link, AccessState.ENROLLED, external=True)


class SessionSource(Protocol):
    async def get_session(self, session_id: int) -> Session | None: ...


def _report_lookup_failure(exc: Exception) -> None:
    logger.warning("Enrollment lookup failed, sending caller to session detail: %s", exc)


async def resolve_session_access(
    session_id: int,
    user_id: int | None,
    *,
    sessions: SessionSource,
    checker: EnrollmentChecker,
    urls: DestinationUrls,
    report: Callable[[Exception], None] = _report_lookup_failure,
) -> Destination:
    """Look up the session and enrollment for *user_id*, then decide.

    ``AuthenticationRequired`` from the checker resolves as
    unauthenticated. ``TransientLookupError`` fails closed and is passed
    to *report* exactly once.
    """
    if user_id is None:
        return decide_access(AccessRequest(session_id, None), urls)

    session = await sessions.get_session(session_id)
    if session is None or not session.is_published:
        return decide_access(AccessRequest(session_id, user_id, session), urls)

    enrolled: bool | None
    try:
        enrolled = await checker.is_enrolled(user_id, session_id)
    except AuthenticationRequired:
        return decide_access(AccessRequest(session_id, None, session), urls)
    except TransientLookupError as exc:
        report(exc)
        enrolled = None

    return decide_access(AccessRequest(session_id, user_id, session, enrolled), urls)
