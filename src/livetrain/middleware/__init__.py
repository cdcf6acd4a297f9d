"""Middleware — Protocol-based, no inheritance required.

Built-in middleware:
    SessionMiddleware -- Signed cookie sessions (itsdangerous)
    AuthMiddleware -- Session + bearer token authentication
"""

from livetrain.middleware.auth import AuthConfig, AuthMiddleware, get_user
from livetrain.middleware.protocol import Middleware, Next
from livetrain.middleware.sessions import SessionConfig, SessionMiddleware, get_session

__all__ = [
    "AuthConfig",
    "AuthMiddleware",
    "Middleware",
    "Next",
    "SessionConfig",
    "SessionMiddleware",
    "get_session",
    "get_user",
]
