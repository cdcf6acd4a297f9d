"""Content negotiation — maps handler return values to Response objects.

isinstance-based dispatch, no magic, fully predictable.
"""

import dataclasses
import json as json_module
from typing import Any

from livetrain.http.response import Redirect, Response


def _json_default(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        as_json = getattr(value, "as_json", None)
        return as_json() if as_json is not None else dataclasses.asdict(value)
    return str(value)


def json_response(value: Any, status: int = 200) -> Response:
    """Serialize *value* to a JSON ``Response``."""
    return Response(body=json_module.dumps(value, default=_json_default), status=status)


def negotiate(value: Any) -> Response:
    """Convert a route handler's return value to a Response.

    Dispatch order:

    1. ``Response``            -> pass through
    2. ``Redirect``            -> 3xx with Location header
    3. ``None``                -> 204, empty body
    4. ``str``                 -> 200, text/plain
    5. ``dict`` / ``list``     -> 200, application/json
    6. ``(value, int)``        -> negotiate value, override status
    7. dataclass               -> 200, application/json
    """
    match value:
        case Response():
            return value
        case Redirect():
            return (
                Response(body="", content_type="text/plain; charset=utf-8")
                .with_status(value.status)
                .with_header("Location", value.url)
                .with_headers(dict(value.headers))
            )
        case None:
            return Response(body="", status=204)
        case str():
            return Response(body=value, content_type="text/plain; charset=utf-8")
        case dict() | list():
            return json_response(value)
        case (inner, int() as status):
            return negotiate(inner).with_status(status)
        case _ if dataclasses.is_dataclass(value) and not isinstance(value, type):
            return json_response(value)
        case _:
            msg = f"Cannot convert {type(value).__name__} to a response"
            raise TypeError(msg)
