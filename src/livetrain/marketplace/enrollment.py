"""Enrollment lookups used by the join redirect.

Two implementations of ``EnrollmentChecker``:

- ``StoreEnrollmentChecker`` reads the enrollments table directly.
- ``HttpEnrollmentChecker`` asks a running service through
  ``GET /api/enrollments/check/{session_id}`` with the caller's
  credentials.

Both report an unavailable backend as ``TransientLookupError`` so the
resolver can fail closed.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

import httpx

from livetrain.data import QueryError
from livetrain.errors import AuthenticationRequired, TransientLookupError

if TYPE_CHECKING:
    from livetrain.config import AppConfig
    from livetrain.marketplace.store import MarketplaceStore


class EnrollmentChecker(Protocol):
    """Answers whether a user holds an enrollment for a session.

    Raises ``AuthenticationRequired`` when the backend has no identity
    for the caller, ``TransientLookupError`` when it cannot answer.
    """

    async def is_enrolled(self, user_id: int, session_id: int) -> bool: ...


class StoreEnrollmentChecker:
    """Server-side checker over ``MarketplaceStore``."""

    __slots__ = ("_store",)

    def __init__(self, store: MarketplaceStore) -> None:
        self._store = store

    async def is_enrolled(self, user_id: int, session_id: int) -> bool:
        try:
            enrollment = await self._store.get_enrollment(user_id, session_id)
        except QueryError as exc:
            raise TransientLookupError(f"Enrollment lookup failed: {exc}") from exc
        return enrollment is not None


class HttpEnrollmentChecker:
    """Client-side checker over the enrollment-check endpoint.

    Usage::

        checker = HttpEnrollmentChecker("https://livetrain.example", token="abc")
        if await checker.is_enrolled(7, 42):
            ...

    ``user_id`` is not sent: the service answers for whoever the
    credentials identify. Pass ``transport`` (e.g. ``httpx.MockTransport``)
    or a ready ``client`` to control the connection.
    """

    __slots__ = ("_base_url", "_client", "_headers", "_timeout", "_transport")

    def __init__(
        self,
        base_url: str,
        *,
        token: str | None = None,
        cookies: dict[str, str] | None = None,
        timeout: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        if cookies:
            headers["Cookie"] = "; ".join(f"{name}={value}" for name, value in cookies.items())
        self._base_url = base_url.rstrip("/")
        self._headers = headers
        self._timeout = timeout
        self._transport = transport
        self._client = client

    @classmethod
    def from_config(cls, config: AppConfig, **kwargs: Any) -> HttpEnrollmentChecker:
        """Build a checker pointed at ``config.enrollment_check_base_url``."""
        kwargs.setdefault("timeout", config.enrollment_check_timeout)
        return cls(config.enrollment_check_base_url, **kwargs)

    async def _get(self, path: str) -> httpx.Response:
        if self._client is not None:
            return await self._client.get(
                f"{self._base_url}{path}", headers=self._headers, timeout=self._timeout
            )
        async with httpx.AsyncClient(
            base_url=self._base_url,
            headers=self._headers,
            timeout=self._timeout,
            transport=self._transport,
        ) as client:
            return await client.get(path)

    async def is_enrolled(self, user_id: int, session_id: int) -> bool:
        path = f"/api/enrollments/check/{session_id}"
        try:
            response = await self._get(path)
        except httpx.HTTPError as exc:
            raise TransientLookupError(f"Enrollment check failed: {exc!r}") from exc

        if response.status_code == 401:
            raise AuthenticationRequired()
        if response.status_code != 200:
            raise TransientLookupError(
                f"Enrollment check returned HTTP {response.status_code} for session {session_id}"
            )
        try:
            value = response.json()["isEnrolled"]
        except (ValueError, KeyError, TypeError) as exc:
            raise TransientLookupError(f"Malformed enrollment check response: {exc}") from exc
        if not isinstance(value, bool):
            raise TransientLookupError(
                f"Malformed enrollment check response: isEnrolled is {value!r}"
            )
        return value
