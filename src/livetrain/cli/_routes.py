"""``livetrain routes`` — print the route table in match order."""

import argparse
import sys

from livetrain.cli._resolve import resolve_app
from livetrain.errors import ConfigurationError


def run_routes(args: argparse.Namespace) -> None:
    """Freeze the app and print ``#``, METHOD, PATH and handler for each route."""
    try:
        app = resolve_app(args.app)
    except (ModuleNotFoundError, AttributeError, TypeError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    try:
        routes = app.routes
    except ConfigurationError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    if not routes:
        print("No routes registered.")
        return

    rows = [
        (
            str(index),
            ", ".join(sorted(route.methods)),
            route.path,
            getattr(route.handler, "__name__", repr(route.handler)),
        )
        for index, route in enumerate(routes, start=1)
    ]
    widths = [max(len(row[col]) for row in rows) for col in range(3)]
    widths = [max(widths[0], 1), max(widths[1], 6), max(widths[2], 4)]
    fmt = f"{{:>{widths[0]}}}  {{:<{widths[1]}}}  {{:<{widths[2]}}}  {{}}"
    print(fmt.format("#", "METHOD", "PATH", "HANDLER"))
    for row in rows:
        print(fmt.format(*row))
