"""Error handling pipeline for livetrain requests.

Maps HTTPError exceptions and unexpected failures to Response objects,
using registered error handlers or JSON defaults.
"""

import inspect
import logging
from collections.abc import Callable
from typing import Any

from livetrain._internal.invoke import invoke
from livetrain.errors import HTTPError
from livetrain.http.request import Request
from livetrain.http.response import Response
from livetrain.server.negotiation import json_response, negotiate

logger = logging.getLogger("livetrain.server")


async def call_error_handler(
    handler: Callable[..., Any],
    request: Request,
    exc: Exception,
) -> Response:
    """Invoke a registered error handler with introspected arguments.

    Error handlers may accept zero, one (request), or two (request, exc) args.
    """
    params = list(inspect.signature(handler).parameters.values())
    args: tuple[Any, ...] = (request, exc)[: len(params)]
    return negotiate(await invoke(handler, *args))


async def handle_http_error(
    exc: HTTPError,
    request: Request,
    error_handlers: dict[int | type, Callable[..., Any]],
) -> Response:
    """Map an HTTPError to a Response using registered error handlers."""
    logger.debug("%d %s %s: %s", exc.status, request.method, request.path, exc.detail)

    handler = error_handlers.get(type(exc)) or error_handlers.get(exc.status)
    if handler is not None:
        response = await call_error_handler(handler, request, exc)
        # Keep the exception's status unless the handler chose its own
        if response.status == 200:
            response = response.with_status(exc.status)
        return response

    response = json_response({"message": exc.detail or f"Error {exc.status}"}, status=exc.status)
    for name, value in exc.headers:
        response = response.with_header(name, value)
    return response


async def handle_internal_error(
    exc: Exception,
    request: Request,
    error_handlers: dict[int | type, Callable[..., Any]],
    debug: bool,
) -> Response:
    """Handle unexpected exceptions as 500 errors."""
    logger.exception("500 %s %s", request.method, request.path)

    handler = error_handlers.get(500) or error_handlers.get(type(exc))
    if handler is not None:
        return await call_error_handler(handler, request, exc)

    detail = f"{type(exc).__name__}: {exc}" if debug else "Internal Server Error"
    return json_response({"message": detail}, status=500)
