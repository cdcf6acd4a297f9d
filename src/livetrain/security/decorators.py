"""Route protection decorators — @login_required and @requires.

Content-negotiated responses:
- Browser requests → redirect to the login URL (302)
- API requests → ``AuthenticationRequired`` (401) / ``Forbidden`` (403)

Usage::

    @app.route("/api/enrollments/user")
    @login_required
    async def my_sessions(store: MarketplaceStore): ...

    @app.route("/api/sessions", methods=["POST"])
    @requires("trainer")
    async def create_session(request: Request): ...
"""

import logging
from collections.abc import Callable
from functools import wraps
from typing import Any
from urllib.parse import quote

from livetrain._internal.invoke import invoke
from livetrain.errors import AuthenticationRequired, Forbidden, HTTPError

_log = logging.getLogger("livetrain.security")


def _reject_anonymous() -> HTTPError:
    """Build the error for an anonymous caller of a protected route."""
    from livetrain.context import get_request
    from livetrain.middleware.auth import active_auth_config

    request = get_request()
    config = active_auth_config()
    if request.wants_json or config is None or not config.login_url:
        return AuthenticationRequired()

    separator = "&" if "?" in config.login_url else "?"
    location = f"{config.login_url}{separator}next={quote(request.url, safe='')}"
    return HTTPError(status=302, detail="Login required", headers=(("Location", location),))


def login_required(handler: Callable[..., Any]) -> Callable[..., Any]:
    """Require an authenticated user to access this route."""

    @wraps(handler)
    async def wrapper(*args: Any, **kwargs: Any) -> Any:
        from livetrain.middleware.auth import get_user

        if not get_user().is_authenticated:
            raise _reject_anonymous()
        return await invoke(handler, *args, **kwargs)

    return wrapper


def requires(*permissions: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Require all of *permissions*. 401 when anonymous, 403 when missing any."""
    required = frozenset(permissions)

    def decorator(handler: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(handler)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            from livetrain.middleware.auth import get_user

            user = get_user()
            if not user.is_authenticated:
                raise _reject_anonymous()

            missing = required - user.permissions
            if missing:
                _log.warning(
                    "User %s missing permissions: %s", user.id, ", ".join(sorted(missing))
                )
                raise Forbidden()
            return await invoke(handler, *args, **kwargs)

        return wrapper

    return decorator
