"""Marketplace records. Rows map onto these through ``livetrain.data``.

``as_json()`` renders the camelCase shape the front end consumes.
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

ROLE_PERMISSIONS: dict[str, frozenset[str]] = {
    "student": frozenset(),
    "enterprise": frozenset(),
    "trainer": frozenset({"trainer"}),
    "admin": frozenset({"admin", "trainer"}),
}


def utc_timestamp(value: str | datetime | None = None) -> str:
    """Normalize *value* (default: now) to a UTC ISO-8601 string.

    Naive values are taken as UTC. Raises ``ValueError`` for strings
    ``datetime.fromisoformat`` cannot parse.
    """
    if value is None:
        moment = datetime.now(UTC)
    elif isinstance(value, datetime):
        moment = value
    else:
        moment = datetime.fromisoformat(value)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    return moment.astimezone(UTC).isoformat(timespec="seconds")


@dataclass(frozen=True, slots=True)
class Account:
    """A marketplace user. Satisfies the ``User`` protocol."""

    id: int
    username: str
    role: str = "student"
    is_subscribed: bool = False
    api_token: str | None = None

    @property
    def is_authenticated(self) -> bool:
        return True

    @property
    def permissions(self) -> frozenset[str]:
        return ROLE_PERMISSIONS.get(self.role, frozenset())

    def as_json(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "username": self.username,
            "role": self.role,
            "isSubscribed": self.is_subscribed,
        }


@dataclass(frozen=True, slots=True)
class Course:
    id: int
    title: str
    trainer_id: int
    max_students: int = 20

    def as_json(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "trainerId": self.trainer_id,
            "maxStudents": self.max_students,
        }


@dataclass(frozen=True, slots=True)
class Session:
    """A scheduled live meeting of a course.

    ``course_title`` and ``trainer_id`` are filled when the query joins
    ``courses``.
    """

    id: int
    course_id: int
    starts_at: str
    ends_at: str
    meeting_link: str = ""
    is_published: bool = True
    course_title: str | None = None
    trainer_id: int | None = None

    def as_json(
        self, *, is_enrolled: bool | None = None, include_link: bool = False
    ) -> dict[str, Any]:
        """Render for the API. ``meetingLink`` only appears with *include_link*."""
        data: dict[str, Any] = {
            "id": self.id,
            "courseId": self.course_id,
            "startsAt": self.starts_at,
            "endsAt": self.ends_at,
            "isPublished": self.is_published,
        }
        if include_link:
            data["meetingLink"] = self.meeting_link
        if self.course_title is not None:
            data["courseTitle"] = self.course_title
        if is_enrolled is not None:
            data["isEnrolled"] = is_enrolled
        return data


@dataclass(frozen=True, slots=True)
class Enrollment:
    id: int
    user_id: int
    session_id: int
    enrolled_at: str

    def as_json(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "userId": self.user_id,
            "sessionId": self.session_id,
            "enrolledAt": self.enrolled_at,
        }
