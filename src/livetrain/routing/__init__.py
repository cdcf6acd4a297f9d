"""Routing — ordered route registry with precedence checks.

Routes are registered during setup, checked for duplicates and
shadowing when the app freezes, and matched in registration order.
"""

from livetrain.routing.route import PathSegment, Route, RouteExpectation, RouteMatch
from livetrain.routing.router import Router, parse_path

__all__ = [
    "PathSegment",
    "Route",
    "RouteExpectation",
    "RouteMatch",
    "Router",
    "parse_path",
]
