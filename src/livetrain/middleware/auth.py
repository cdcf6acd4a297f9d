"""Authentication middleware — bearer token or session cookie.

The authenticated user is stored in a ContextVar, reachable through
``get_user()`` from any handler, decorator, or middleware further down
the chain. Session auth requires ``SessionMiddleware`` ahead of this one.

Usage::

    app.add_middleware(SessionMiddleware(SessionConfig(secret_key="...")))
    app.add_middleware(AuthMiddleware(AuthConfig(load_user=store.load_user)))

    user = get_user()
    if user.is_authenticated:
        ...
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from livetrain.errors import ConfigurationError
from livetrain.http.request import Request
from livetrain.http.response import Response
from livetrain.middleware.protocol import Next

logger = logging.getLogger("livetrain.security")


@runtime_checkable
class User(Protocol):
    """Minimal user protocol.

    Any object with ``id``, ``is_authenticated`` and ``permissions``
    satisfies it. The marketplace ``Account`` model is one.
    """

    @property
    def id(self) -> int | str: ...

    @property
    def is_authenticated(self) -> bool: ...

    @property
    def permissions(self) -> frozenset[str]: ...


@dataclass(frozen=True, slots=True)
class AnonymousUser:
    """Sentinel for unauthenticated requests. ``get_user()`` never returns ``None``."""

    id: int | str = ""
    is_authenticated: bool = False
    permissions: frozenset[str] = frozenset()


_ANONYMOUS = AnonymousUser()

_user_var: ContextVar[User] = ContextVar("livetrain_user")
_active_config: ContextVar[AuthConfig | None] = ContextVar("livetrain_auth_config", default=None)


def get_user() -> User:
    """Return the current user, or ``AnonymousUser``.

    Raises ``LookupError`` outside a request with ``AuthMiddleware``.
    """
    try:
        return _user_var.get()
    except LookupError:
        msg = "No auth context. Ensure AuthMiddleware is added to the app."
        raise LookupError(msg) from None


def active_auth_config() -> AuthConfig | None:
    """The ``AuthConfig`` of the middleware handling this request."""
    return _active_config.get()


def login(user: User) -> None:
    """Bind *user* to the session, regenerating it first."""
    from livetrain.middleware.sessions import regenerate_session

    config = _active_config.get()
    if config is None:
        msg = "login() requires AuthMiddleware to be active."
        raise LookupError(msg)

    session = regenerate_session()
    session[config.session_key] = user.id
    _user_var.set(user)
    logger.info("User %s logged in", user.id)


def logout() -> None:
    """Drop the session and fall back to the anonymous user."""
    from livetrain.middleware.sessions import regenerate_session

    if _active_config.get() is None:
        msg = "logout() requires AuthMiddleware to be active."
        raise LookupError(msg)

    regenerate_session()
    _user_var.set(_ANONYMOUS)


@dataclass(frozen=True, slots=True)
class AuthConfig:
    """Authentication middleware configuration.

    Attributes:
        session_key: Session dict key for the user ID.
        token_header: HTTP header carrying bearer tokens.
        token_scheme: Expected scheme prefix.
        load_user: Async callback loading a user by ID (session auth).
        verify_token: Async callback resolving a bearer token (token auth).
        login_url: Where browsers are sent when a route needs a user.
    """

    session_key: str = "user_id"
    token_header: str = "Authorization"
    token_scheme: str = "Bearer"
    load_user: Callable[[str], Awaitable[User | None]] | None = None
    verify_token: Callable[[str], Awaitable[User | None]] | None = None
    login_url: str = "/auth"


class AuthMiddleware:
    """Token-then-session authentication middleware.

    Middleware ordering::

        app.add_middleware(SessionMiddleware(...))  # 1st: sessions
        app.add_middleware(AuthMiddleware(...))      # 2nd: auth
    """

    __slots__ = ("_config",)

    def __init__(self, config: AuthConfig) -> None:
        if config.load_user is None and config.verify_token is None:
            msg = (
                "AuthConfig requires at least one of 'load_user' (session auth) "
                "or 'verify_token' (token auth) to be set."
            )
            raise ConfigurationError(msg)
        self._config = config

    def _extract_token(self, request: Request) -> str | None:
        header = request.headers.get(self._config.token_header)
        prefix = f"{self._config.token_scheme} "
        if header is None or not header.startswith(prefix):
            return None
        return header[len(prefix) :].strip() or None

    async def _authenticate_session(self) -> User | None:
        if self._config.load_user is None:
            return None

        from livetrain.middleware.sessions import get_session

        try:
            session = get_session()
        except LookupError:
            msg = (
                "AuthMiddleware session auth requires SessionMiddleware. "
                "Add SessionMiddleware before AuthMiddleware."
            )
            raise ConfigurationError(msg) from None

        user_id = session.get(self._config.session_key)
        if not user_id:
            return None
        return await self._config.load_user(str(user_id))

    async def __call__(self, request: Request, next: Next) -> Response:
        """Authenticate the request, then dispatch."""
        user: User | None = None
        token = self._extract_token(request)
        if token is not None and self._config.verify_token is not None:
            user = await self._config.verify_token(token)
            if user is None:
                logger.debug("Rejected bearer token on %s %s", request.method, request.path)
        if user is None:
            user = await self._authenticate_session()

        user_token = _user_var.set(user if user is not None else _ANONYMOUS)
        config_token = _active_config.set(self._config)
        try:
            return await next(request)
        finally:
            _user_var.reset(user_token)
            _active_config.reset(config_token)
