"""Ordered router with registration-time precedence checks.

Routes are matched in the order they were registered: the first route
whose segments match the request path wins. Because order decides the
winner, the router refuses tables where order would hide a route:

- ``add()`` rejects a second route with the same segment shape and an
  overlapping method set.
- ``compile()`` rejects a parameterized route registered before a more
  literal sibling it would capture (``/sessions/{id}`` before
  ``/sessions/upcoming``).
- ``verify()`` dispatches sample paths and checks the expected route
  wins. The app runs it once at freeze time.
"""

import re
from dataclasses import dataclass

from livetrain.errors import ConfigurationError, MethodNotAllowed, NotFoundError
from livetrain.routing.params import CONVERTERS
from livetrain.routing.route import PathSegment, Route, RouteExpectation, RouteMatch

_FLASK_STYLE = re.compile(r"<[^>]+>")


def parse_path(path: str) -> list[PathSegment]:
    """Parse a route path string into segments.

    Examples::

        "/sessions"           -> [PathSegment("sessions")]
        "/sessions/{id}"      -> [PathSegment("sessions"), PathSegment("{id}", is_param=True, ...)]
        "/sessions/{id:int}"  -> [..., PathSegment("{id:int}", is_param=True, param_type="int")]
        "/files/{rest:path}"  -> [..., PathSegment("{rest:path}", is_param=True, param_type="path")]
    """
    segments: list[PathSegment] = []
    for part in path.strip("/").split("/"):
        if not part:
            continue
        if _FLASK_STYLE.search(part):
            msg = (
                f"Route {path!r} uses <param> placeholders. "
                "Write path parameters as {param} or {param:int}."
            )
            raise ConfigurationError(msg)
        if part.startswith("{") and part.endswith("}"):
            param_name, _, param_type = part[1:-1].partition(":")
            param_type = param_type or "str"
            if param_type not in CONVERTERS:
                msg = (
                    f"Route {path!r} uses unknown converter {param_type!r}. "
                    f"Known converters: {', '.join(sorted(CONVERTERS))}"
                )
                raise ConfigurationError(msg)
            segments.append(
                PathSegment(
                    value=part,
                    is_param=True,
                    param_name=param_name,
                    param_type=param_type,
                )
            )
        else:
            segments.append(PathSegment(value=part))
    return segments


@dataclass(frozen=True, slots=True)
class _Entry:
    """A registered route with its parsed segments and compiled regexes."""

    route: Route
    segments: tuple[PathSegment, ...]
    regexes: tuple[re.Pattern[str] | None, ...]

    def match(self, parts: list[str]) -> dict[str, str] | None:
        """Return captured params if *parts* match this entry, else ``None``."""
        params: dict[str, str] = {}
        for index, seg in enumerate(self.segments):
            if seg.is_catch_all:
                if index >= len(parts):
                    return None
                params[seg.param_name or "path"] = "/".join(parts[index:])
                return params
            if index >= len(parts):
                return None
            part = parts[index]
            if not seg.is_param:
                if part != seg.value:
                    return None
                continue
            regex = self.regexes[index]
            if regex is None or not regex.fullmatch(part):
                return None
            params[seg.param_name or ""] = part
        if len(parts) != len(self.segments):
            return None
        return params


def _segment_accepts(param: PathSegment, literal: PathSegment) -> bool:
    pattern, _ = CONVERTERS[param.param_type]
    return re.fullmatch(pattern, literal.value) is not None


def _segments_overlap(a: tuple[PathSegment, ...], b: tuple[PathSegment, ...]) -> bool:
    """True when some request path could match both segment lists."""
    for index in range(max(len(a), len(b))):
        if index >= len(a) or index >= len(b):
            return False
        sa, sb = a[index], b[index]
        if sa.is_catch_all or sb.is_catch_all:
            return True
        if not sa.is_param and not sb.is_param:
            if sa.value != sb.value:
                return False
        elif sa.is_param and not sb.is_param:
            if not _segment_accepts(sa, sb):
                return False
        elif sb.is_param and not sa.is_param:
            if not _segment_accepts(sb, sa):
                return False
    return True


def _shadows(earlier: _Entry, later: _Entry) -> bool:
    """True when *earlier* is less literal than *later* where they first differ."""
    if not earlier.route.methods & later.route.methods:
        return False
    if not _segments_overlap(earlier.segments, later.segments):
        return False
    for seg_e, seg_l in zip(earlier.segments, later.segments, strict=False):
        if seg_e.same_shape(seg_l):
            continue
        if seg_e.is_catch_all:
            return True
        if seg_e.is_param and seg_l.is_param:
            # {name} accepts every string {name:int} does
            return seg_e.param_type == "str" and seg_l.param_type == "int"
        return seg_e.is_param
    return False


class Router:
    """Ordered router. First registered match wins.

    Usage::

        router = Router()
        router.add(Route("/sessions/upcoming", upcoming, frozenset({"GET"})))
        router.add(Route("/sessions/{id}", detail, frozenset({"GET"})))
        router.compile()
        match = router.match("GET", "/sessions/42")
    """

    __slots__ = ("_compiled", "_entries")

    def __init__(self) -> None:
        self._entries: list[_Entry] = []
        self._compiled = False

    def add(self, route: Route) -> None:
        """Register a route. Must be called before compile().

        Raises ``ConfigurationError`` when a route with the same segment
        shape already handles one of the same methods.
        """
        if self._compiled:
            msg = "Cannot add routes after compilation."
            raise RuntimeError(msg)

        segments = tuple(parse_path(route.path))
        for entry in self._entries:
            if len(entry.segments) != len(segments):
                continue
            if not all(a.same_shape(b) for a, b in zip(entry.segments, segments, strict=True)):
                continue
            shared = entry.route.methods & route.methods
            if shared:
                msg = (
                    f"Duplicate route {', '.join(sorted(shared))} {route.path!r}: "
                    f"already registered as {entry.route.path!r}."
                )
                raise ConfigurationError(msg)

        regexes = tuple(
            re.compile(CONVERTERS[seg.param_type][0]) if seg.is_param else None
            for seg in segments
        )
        self._entries.append(_Entry(route=route, segments=segments, regexes=regexes))

    @property
    def routes(self) -> list[Route]:
        """All registered routes, in registration (and match) order."""
        return [entry.route for entry in self._entries]

    def compile(self) -> None:
        """Check precedence and freeze the router.

        Raises ``ConfigurationError`` if an earlier, more general route
        would capture requests meant for a later, more literal one.
        """
        problems: list[str] = []
        for later_index, later in enumerate(self._entries):
            for earlier in self._entries[:later_index]:
                if _shadows(earlier, later):
                    problems.append(
                        f"{later.route.path!r} is registered after {earlier.route.path!r}, "
                        "which captures its requests. Register the literal route first."
                    )
        if problems:
            raise ConfigurationError("Ambiguous route order:\n  " + "\n  ".join(problems))
        self._compiled = True

    def match(self, method: str, path: str) -> RouteMatch:
        """Match a request against the routes in registration order.

        Returns a ``RouteMatch`` on success.
        Raises ``NotFoundError`` if no route matches the path.
        Raises ``MethodNotAllowed`` if the path matches but the method doesn't.
        """
        parts = [p for p in path.strip("/").split("/") if p]
        allowed: set[str] = set()
        for entry in self._entries:
            params = entry.match(parts)
            if params is None:
                continue
            if method in entry.route.methods:
                return RouteMatch(route=entry.route, path_params=params)
            allowed.update(entry.route.methods)

        if allowed:
            raise MethodNotAllowed(frozenset(allowed))
        raise NotFoundError(f"No route matches {method} {path!r}")

    def verify(self, expectations: list[RouteExpectation]) -> None:
        """Dispatch each sample path and check the expected route wins.

        Raises ``ConfigurationError`` listing every failed expectation.
        """
        failures: list[str] = []
        for expected in expectations:
            try:
                winner = self.match(expected.method, expected.path).route.path
            except (NotFoundError, MethodNotAllowed) as exc:
                winner = f"<{exc.status}>"
            if winner != expected.route:
                failures.append(
                    f"{expected.method} {expected.path!r} resolved to {winner!r}, "
                    f"expected {expected.route!r}"
                )
        if failures:
            raise ConfigurationError("Route self-check failed:\n  " + "\n  ".join(failures))
