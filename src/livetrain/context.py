"""Request-scoped context via ContextVar.

``request_var`` holds the current ``Request`` for this task. It is set
by the handler pipeline and reset after each request, so decorators
such as ``login_required`` can reach the request without it being
threaded through every handler signature.
"""

from contextvars import ContextVar

from livetrain.http.request import Request

request_var: ContextVar[Request] = ContextVar("livetrain_request")


def get_request() -> Request:
    """Return the current request.

    Raises ``LookupError`` if called outside a request context.
    """
    return request_var.get()
