"""Livetrain — live-training marketplace service on a small ASGI core.

Routes match in registration order and the route table is checked when
the app freezes, so ``/sessions/upcoming`` can never be swallowed by
``/sessions/{id}``.

Basic usage::

    from livetrain import App

    app = App()

    @app.route("/api/sessions/upcoming")
    async def upcoming(): ...

    @app.route("/api/sessions/{id}")
    async def detail(id: str): ...

    app.expect("/api/sessions/upcoming", "/api/sessions/upcoming")

The marketplace itself::

    from livetrain.marketplace import create_app
    app = create_app(AppConfig.from_env())
"""

__version__ = "0.1.0"
__all__ = [
    "App",
    "AppConfig",
    "AuthenticationRequired",
    "BadRequest",
    "ConfigurationError",
    "Forbidden",
    "HTTPError",
    "LivetrainError",
    "MethodNotAllowed",
    "NotFoundError",
    "Redirect",
    "Request",
    "Response",
    "TransientLookupError",
    "get_request",
]

_ERRORS = frozenset(
    {
        "AuthenticationRequired",
        "BadRequest",
        "ConfigurationError",
        "Forbidden",
        "HTTPError",
        "LivetrainError",
        "MethodNotAllowed",
        "NotFoundError",
        "TransientLookupError",
    }
)


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import livetrain`` fast while providing a clean top-level API.
    """
    if name == "App":
        from livetrain.app import App

        return App

    if name == "AppConfig":
        from livetrain.config import AppConfig

        return AppConfig

    if name == "Request":
        from livetrain.http.request import Request

        return Request

    if name in ("Response", "Redirect"):
        from livetrain.http import response

        return getattr(response, name)

    if name == "get_request":
        from livetrain.context import get_request

        return get_request

    if name in _ERRORS:
        from livetrain import errors

        return getattr(errors, name)

    msg = f"module 'livetrain' has no attribute {name!r}"
    raise AttributeError(msg)
