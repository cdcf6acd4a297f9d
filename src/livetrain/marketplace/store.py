"""SQL access for the marketplace tables."""

import logging
from enum import StrEnum

from livetrain.data import Database, QueryError
from livetrain.marketplace.models import Account, Course, Enrollment, Session, utc_timestamp

logger = logging.getLogger("livetrain.data")

_SESSION_COLUMNS = """
    s.id, s.course_id, s.starts_at, s.ends_at, s.meeting_link, s.is_published,
    c.title AS course_title, c.trainer_id
"""
_SESSION_FROM = "FROM sessions AS s JOIN courses AS c ON c.id = s.course_id"


class EnrollmentRefusal(StrEnum):
    """Why ``create_enrollment`` did not insert a row."""

    ALREADY_ENROLLED = "already_enrolled"
    FULL = "full"


class MarketplaceStore:
    """Typed queries over users, courses, sessions and enrollments.

    Every method raises ``QueryError`` when the database fails.
    """

    __slots__ = ("db",)

    def __init__(self, db: Database) -> None:
        self.db = db

    # -- Users --

    async def create_user(
        self,
        username: str,
        *,
        role: str = "student",
        is_subscribed: bool = False,
        api_token: str | None = None,
    ) -> Account:
        user_id = await self.db.insert(
            "INSERT INTO users (username, role, is_subscribed, api_token) VALUES (?, ?, ?, ?)",
            username,
            role,
            is_subscribed,
            api_token,
        )
        return Account(user_id, username, role, is_subscribed, api_token)

    async def get_user(self, user_id: int) -> Account | None:
        return await self.db.fetch_one(Account, "SELECT * FROM users WHERE id = ?", user_id)

    async def load_user(self, user_id: str) -> Account | None:
        """Session auth callback: resolve the id stored in the session cookie."""
        if not str(user_id).isdigit():
            return None
        return await self.get_user(int(user_id))

    async def verify_token(self, token: str) -> Account | None:
        """Bearer auth callback."""
        return await self.db.fetch_one(Account, "SELECT * FROM users WHERE api_token = ?", token)

    # -- Courses --

    async def create_course(self, title: str, trainer_id: int, *, max_students: int = 20) -> Course:
        course_id = await self.db.insert(
            "INSERT INTO courses (title, trainer_id, max_students) VALUES (?, ?, ?)",
            title,
            trainer_id,
            max_students,
        )
        return Course(course_id, title, trainer_id, max_students)

    async def get_course(self, course_id: int) -> Course | None:
        return await self.db.fetch_one(Course, "SELECT * FROM courses WHERE id = ?", course_id)

    # -- Sessions --

    async def get_session(self, session_id: int) -> Session | None:
        """Fetch a session whatever its published state."""
        return await self.db.fetch_one(
            Session, f"SELECT {_SESSION_COLUMNS} {_SESSION_FROM} WHERE s.id = ?", session_id
        )

    async def list_published(self) -> list[Session]:
        return await self.db.fetch(
            Session,
            f"SELECT {_SESSION_COLUMNS} {_SESSION_FROM} WHERE s.is_published = 1 "
            "ORDER BY s.starts_at, s.id",
        )

    async def upcoming(self, now: str | None = None) -> list[Session]:
        """Published sessions starting after *now* (default: the current time)."""
        return await self.db.fetch(
            Session,
            f"SELECT {_SESSION_COLUMNS} {_SESSION_FROM} "
            "WHERE s.is_published = 1 AND s.starts_at > ? ORDER BY s.starts_at, s.id",
            utc_timestamp(now),
        )

    async def by_trainer(self, trainer_id: int) -> list[Session]:
        return await self.db.fetch(
            Session,
            f"SELECT {_SESSION_COLUMNS} {_SESSION_FROM} WHERE c.trainer_id = ? "
            "ORDER BY s.starts_at, s.id",
            trainer_id,
        )

    async def create_session(
        self,
        course_id: int,
        starts_at: str,
        ends_at: str,
        meeting_link: str = "",
        *,
        is_published: bool = True,
    ) -> Session:
        """Insert a session. Raises ``ValueError`` for unparsable or inverted times."""
        start, end = utc_timestamp(starts_at), utc_timestamp(ends_at)
        if end <= start:
            msg = "Session must end after it starts"
            raise ValueError(msg)
        session_id = await self.db.insert(
            "INSERT INTO sessions (course_id, starts_at, ends_at, meeting_link, is_published) "
            "VALUES (?, ?, ?, ?, ?)",
            course_id,
            start,
            end,
            meeting_link,
            is_published,
        )
        logger.info("Created session %d for course %d", session_id, course_id)
        session = await self.get_session(session_id)
        assert session is not None
        return session

    # -- Enrollments --

    async def get_enrollment(self, user_id: int, session_id: int) -> Enrollment | None:
        return await self.db.fetch_one(
            Enrollment,
            "SELECT * FROM enrollments WHERE user_id = ? AND session_id = ?",
            user_id,
            session_id,
        )

    async def count_enrollments(self, session_id: int) -> int:
        count = await self.db.fetch_val(
            "SELECT COUNT(*) FROM enrollments WHERE session_id = ?", session_id
        )
        return int(count or 0)

    async def enrolled_session_ids(self, user_id: int) -> set[int]:
        sessions = await self.enrolled_sessions(user_id)
        return {session.id for session in sessions}

    async def enrolled_sessions(self, user_id: int) -> list[Session]:
        return await self.db.fetch(
            Session,
            f"SELECT {_SESSION_COLUMNS} {_SESSION_FROM} "
            "JOIN enrollments AS e ON e.session_id = s.id "
            "WHERE e.user_id = ? ORDER BY s.starts_at, s.id",
            user_id,
        )

    async def create_enrollment(
        self, user_id: int, session_id: int, *, capacity: int | None = None
    ) -> Enrollment | EnrollmentRefusal:
        """Enroll *user_id* in *session_id*, or say why not.

        The duplicate check, the seat count and the insert share one
        transaction. A UNIQUE violation from a concurrent writer is
        reported as ``ALREADY_ENROLLED`` too.
        """
        async with self.db.transaction():
            if await self.get_enrollment(user_id, session_id) is not None:
                return EnrollmentRefusal.ALREADY_ENROLLED
            if capacity is not None and await self.count_enrollments(session_id) >= capacity:
                return EnrollmentRefusal.FULL
            enrolled_at = utc_timestamp()
            try:
                enrollment_id = await self.db.insert(
                    "INSERT INTO enrollments (user_id, session_id, enrolled_at) VALUES (?, ?, ?)",
                    user_id,
                    session_id,
                    enrolled_at,
                )
            except QueryError as exc:
                if "UNIQUE" not in str(exc):
                    raise
                return EnrollmentRefusal.ALREADY_ENROLLED
        logger.info("User %d enrolled in session %d", user_id, session_id)
        return Enrollment(enrollment_id, user_id, session_id, enrolled_at)

    async def delete_enrollment(self, user_id: int, session_id: int) -> bool:
        deleted = await self.db.execute(
            "DELETE FROM enrollments WHERE user_id = ? AND session_id = ?", user_id, session_id
        )
        return deleted > 0
