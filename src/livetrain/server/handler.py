"""ASGI handler — translates ASGI scope/messages to livetrain types.

The only component that touches raw ASGI directly. Converts scope dicts
to typed Request objects, dispatches through middleware and routing,
and sends the Response back through ASGI send().
"""

import inspect
from collections.abc import Callable
from contextvars import Token
from typing import Any

from livetrain._internal.asgi import Receive, Scope, Send
from livetrain._internal.invoke import invoke
from livetrain.context import request_var
from livetrain.errors import HTTPError
from livetrain.http.request import Request
from livetrain.http.response import Response
from livetrain.middleware.protocol import Next
from livetrain.routing.route import RouteMatch
from livetrain.routing.router import Router
from livetrain.server.errors import handle_http_error, handle_internal_error
from livetrain.server.negotiation import negotiate
from livetrain.server.sender import send_response


async def handle_request(
    scope: Scope,
    receive: Receive,
    send: Send,
    *,
    router: Router,
    middleware: tuple[Callable[..., Any], ...],
    error_handlers: dict[int | type, Callable[..., Any]],
    debug: bool,
    providers: dict[type, Callable[..., Any]] | None = None,
    max_content_length: int | None = None,
    db: Any = None,
) -> None:
    """Process a single HTTP request through the full pipeline."""
    if scope["type"] != "http":
        return

    request = Request.from_asgi(scope, receive)
    token: Token[Request] = request_var.set(request)

    # Lifespan sets the database var only inside its own task
    db_token: Token[Any] | None = None
    if db is not None:
        from livetrain.data.database import _db_var

        db_token = _db_var.set(db)

    try:

        async def dispatch(req: Request) -> Response:
            _check_content_length(req, max_content_length)
            match = router.match(req.method, req.path)
            return await _invoke_handler(match, req, providers=providers)

        handler: Next = dispatch
        for mw in reversed(middleware):

            async def make_next(req: Request, _mw: Any = mw, _next: Next = handler) -> Response:
                return await _mw(req, _next)

            handler = make_next

        response = await handler(request)

    except HTTPError as exc:
        response = await handle_http_error(exc, request, error_handlers)
    except Exception as exc:
        response = await handle_internal_error(exc, request, error_handlers, debug)
    finally:
        if db_token is not None:
            from livetrain.data.database import _db_var

            _db_var.reset(db_token)
        request_var.reset(token)

    await send_response(response, send)


def _check_content_length(request: Request, limit: int | None) -> None:
    if limit is None:
        return
    declared = request.headers.get("content-length")
    if declared is not None and declared.isdigit() and int(declared) > limit:
        raise HTTPError(status=413, detail=f"Request body exceeds {limit} bytes")


async def _invoke_handler(
    match: RouteMatch,
    request: Request,
    *,
    providers: dict[type, Callable[..., Any]] | None = None,
) -> Response:
    """Call the matched route handler, converting path params and return value."""
    handler = match.route.handler
    request = request.with_path_params(match.path_params)
    request_var.set(request)

    kwargs = _build_handler_kwargs(handler, request, match.path_params, providers)
    result = await invoke(handler, **kwargs)
    return negotiate(result)


def _build_handler_kwargs(
    handler: Callable[..., Any],
    request: Request,
    path_params: dict[str, str],
    providers: dict[type, Callable[..., Any]] | None = None,
) -> dict[str, Any]:
    """Inspect handler signature and build kwargs from request + path params.

    Resolution order:
    1. ``request`` parameter (by name or ``Request`` annotation)
    2. Path parameters (by name; digits become ``int`` for ``int`` annotations)
    3. Service providers (by type annotation via ``app.provide()``)
    """
    sig = inspect.signature(handler, eval_str=True)
    kwargs: dict[str, Any] = {}

    for name, param in sig.parameters.items():
        if name == "request" or param.annotation is Request:
            kwargs[name] = request
        elif name in path_params:
            value = path_params[name]
            if param.annotation is int and value.isdigit():
                kwargs[name] = int(value)
            else:
                kwargs[name] = value
        elif (
            providers
            and param.annotation is not inspect.Parameter.empty
            and param.annotation in providers
        ):
            kwargs[name] = providers[param.annotation]()

    return kwargs
