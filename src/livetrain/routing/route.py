"""Route, RouteMatch and RouteExpectation frozen dataclasses."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True, slots=True)
class PathSegment:
    """A parsed segment of a route path.

    Static:  ``/sessions``    (is_param=False)
    Param:   ``/{id}``        (is_param=True, param_name="id")
    Typed:   ``/{id:int}``    (is_param=True, param_name="id", param_type="int")
    """

    value: str
    is_param: bool = False
    param_name: str | None = None
    param_type: str = "str"

    @property
    def is_catch_all(self) -> bool:
        return self.is_param and self.param_type == "path"

    def same_shape(self, other: PathSegment) -> bool:
        """True when both segments accept exactly the same strings."""
        if self.is_param != other.is_param:
            return False
        if self.is_param:
            return self.param_type == other.param_type
        return self.value == other.value


@dataclass(frozen=True, slots=True)
class Route:
    """A frozen route definition.

    Created during app setup, added to the router at freeze time.
    """

    path: str
    handler: Callable[..., Any]
    methods: frozenset[str]
    name: str | None = None


@dataclass(frozen=True, slots=True)
class RouteMatch:
    """Result of a successful route match.

    ``path_params`` holds the raw strings captured from the request path.
    """

    route: Route
    path_params: dict[str, str]


@dataclass(frozen=True, slots=True)
class RouteExpectation:
    """A sample request that must be won by a particular route pattern.

    Checked once when the app freezes::

        RouteExpectation("/api/sessions/upcoming", route="/api/sessions/upcoming")
    """

    path: str
    route: str
    method: str = "GET"
