"""``livetrain check`` — compile the app and run the route self-check.

Exits with code 1 on duplicate or shadowed routes and on failed
expectations.
"""

import argparse
import sys

from livetrain.cli._resolve import resolve_app
from livetrain.errors import ConfigurationError


def run_check(args: argparse.Namespace) -> None:
    try:
        app = resolve_app(args.app)
    except (ModuleNotFoundError, AttributeError, TypeError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    try:
        routes = app.routes
    except ConfigurationError as exc:
        print(f"FAILED: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    print(f"OK: {len(routes)} routes, {len(app.expectations)} self-checks passed")
