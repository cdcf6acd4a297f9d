"""Immutable HTTP request.

Frozen metadata with async body access. Headers are case-insensitive
and decoded lazily from the raw ASGI byte pairs.
"""

from __future__ import annotations

import json as json_module
from collections.abc import AsyncIterator, Iterator, Mapping
from dataclasses import dataclass, field, replace
from typing import Any
from urllib.parse import parse_qs

from livetrain._internal.asgi import Receive
from livetrain.errors import BadRequest


class Headers(Mapping[str, str]):
    """Immutable, case-insensitive view over raw ASGI header pairs."""

    __slots__ = ("_raw",)

    def __init__(self, raw: tuple[tuple[bytes, bytes], ...] = ()) -> None:
        self._raw = raw

    def __getitem__(self, key: str) -> str:
        wanted = key.lower().encode("latin-1")
        for name, value in self._raw:
            if name.lower() == wanted:
                return value.decode("latin-1")
        raise KeyError(key)

    def __iter__(self) -> Iterator[str]:
        return iter(dict.fromkeys(name.decode("latin-1").lower() for name, _ in self._raw))

    def __len__(self) -> int:
        return sum(1 for _ in self)

    def get_list(self, key: str) -> list[str]:
        """Return all values for *key*."""
        wanted = key.lower().encode("latin-1")
        return [value.decode("latin-1") for name, value in self._raw if name.lower() == wanted]


def parse_cookies(header: str) -> dict[str, str]:
    """Parse a ``Cookie`` header value into a name-value dict."""
    cookies: dict[str, str] = {}
    for pair in header.split(";"):
        key, sep, value = pair.strip().partition("=")
        if sep:
            cookies[key.strip()] = value.strip()
    return cookies


@dataclass(frozen=True, slots=True)
class Request:
    """An immutable HTTP request.

    Metadata (method, path, headers, etc.) is frozen at creation.
    The body is read once through ``.body()`` / ``.json()`` and cached.
    """

    method: str
    path: str
    headers: Headers
    query: Mapping[str, list[str]]
    path_params: dict[str, str]
    client: tuple[str, int] | None
    cookies: Mapping[str, str]

    # Private: ASGI receive callable for body streaming
    _receive: Receive

    # Private: mutable cache for the body (the dict is mutable, the field is not)
    _cache: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @property
    def content_type(self) -> str | None:
        return self.headers.get("content-type")

    @property
    def url(self) -> str:
        """Path plus query string, as the client sent it."""
        raw = self._cache.get("_query_string", b"")
        if raw:
            return f"{self.path}?{raw.decode('latin-1')}"
        return self.path

    @property
    def wants_json(self) -> bool:
        """True for API clients rather than browsers.

        A bearer token, or an ``Accept`` header that names JSON but not
        HTML, marks the request as an API call.
        """
        if self.headers.get("authorization"):
            return True
        accept = self.headers.get("accept", "")
        return "application/json" in accept and "text/html" not in accept

    async def stream(self) -> AsyncIterator[bytes]:
        """Stream the request body in chunks."""
        while True:
            message = await self._receive()
            body = message.get("body", b"")
            if body:
                yield body
            if not message.get("more_body", False):
                break

    async def body(self) -> bytes:
        """Read the full request body. Cached after the first call."""
        if "_body" not in self._cache:
            self._cache["_body"] = b"".join([chunk async for chunk in self.stream()])
        return self._cache["_body"]

    async def json(self) -> Any:
        """Parse the body as JSON, raising ``BadRequest`` on garbage."""
        raw = await self.body()
        try:
            return json_module.loads(raw or b"null")
        except ValueError:
            raise BadRequest("Request body is not valid JSON") from None

    def with_path_params(self, path_params: dict[str, str]) -> Request:
        """Return a copy carrying the matched route's parameters."""
        return replace(self, path_params=path_params)

    @classmethod
    def from_asgi(cls, scope: dict[str, Any], receive: Receive) -> Request:
        """Create a Request from an ASGI scope and receive callable."""
        headers = Headers(tuple(scope.get("headers", ())))
        client = scope.get("client")
        query_string: bytes = scope.get("query_string", b"")
        return cls(
            method=scope["method"],
            path=scope["path"],
            headers=headers,
            query=parse_qs(query_string.decode("latin-1"), keep_blank_values=True),
            path_params={},
            client=tuple(client) if client else None,
            cookies=parse_cookies(headers.get("cookie", "")),
            _receive=receive,
            _cache={"_query_string": query_string},
        )
