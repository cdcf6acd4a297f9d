"""Livetrain CLI — route table inspection and startup validation.

Entry point registered as ``livetrain`` in ``pyproject.toml``::

    [project.scripts]
    livetrain = "livetrain.cli:main"
"""

import argparse
import sys


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for the ``livetrain`` command."""
    parser = argparse.ArgumentParser(
        prog="livetrain",
        description="Livetrain — live-training marketplace service.",
    )
    subparsers = parser.add_subparsers(dest="command")

    routes_parser = subparsers.add_parser("routes", help="List routes in match order")
    routes_parser.add_argument("app", help="Import string (e.g. livetrain.marketplace.asgi:app)")

    check_parser = subparsers.add_parser(
        "check", help="Compile the route table and run the route self-check"
    )
    check_parser.add_argument("app", help="Import string (e.g. livetrain.marketplace.asgi:app)")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    if args.command == "routes":
        from livetrain.cli._routes import run_routes

        run_routes(args)
    elif args.command == "check":
        from livetrain.cli._check import run_check

        run_check(args)
