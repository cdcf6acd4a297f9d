"""Livetrain exception hierarchy.

Shared across Router, App, handler, middleware and the marketplace so
every module raises and catches the same types.
"""

from dataclasses import dataclass


class LivetrainError(Exception):
    """Base for all livetrain-specific errors."""


class ConfigurationError(LivetrainError):
    """Raised when app configuration is invalid.

    Covers duplicate or shadowed routes and failed route expectations.
    Raised during ``App._freeze()`` and fatal at startup.
    """


@dataclass(frozen=True, slots=True)
class HTTPError(LivetrainError):
    """An error that maps directly to an HTTP status code.

    Raised by the router, middleware, or handlers. The ASGI handler
    catches these and dispatches to the matching ``@app.error()`` handler.
    """

    status: int
    detail: str = ""
    headers: tuple[tuple[str, str], ...] = ()

    def __str__(self) -> str:
        if self.detail:
            return f"{self.status}: {self.detail}"
        return str(self.status)


class BadRequest(HTTPError):  # noqa: N818
    """400 — the request payload is invalid."""

    def __init__(self, detail: str = "Bad Request") -> None:
        super().__init__(status=400, detail=detail)


class AuthenticationRequired(HTTPError):  # noqa: N818
    """401 — no active identity for a route that needs one."""

    def __init__(self, detail: str = "Authentication required") -> None:
        super().__init__(status=401, detail=detail)


class Forbidden(HTTPError):  # noqa: N818
    """403 — authenticated, but not allowed."""

    def __init__(self, detail: str = "Forbidden") -> None:
        super().__init__(status=403, detail=detail)


class NotFoundError(HTTPError):
    """404 — no route matched, or the session/course does not exist."""

    def __init__(self, detail: str = "Not Found") -> None:
        super().__init__(status=404, detail=detail)


class MethodNotAllowed(HTTPError):  # noqa: N818
    """405 — route exists but not for this HTTP method.

    Includes an ``Allow`` header listing the valid methods.
    """

    def __init__(self, allowed: frozenset[str], detail: str = "") -> None:
        allow_value = ", ".join(sorted(allowed))
        default_detail = f"Method not allowed. Allowed methods: {allow_value}"
        super().__init__(
            status=405,
            detail=detail or default_detail,
            headers=(("Allow", allow_value),),
        )


class TransientLookupError(HTTPError):
    """503 — an external dependency failed while looking something up.

    The redirect resolver recovers from this by failing closed. Anywhere
    else it surfaces as a 503.
    """

    def __init__(self, detail: str = "Lookup temporarily unavailable") -> None:
        super().__init__(status=503, detail=detail)
