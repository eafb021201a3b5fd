"""Kiri CLI — runs the counter demo server.

Entry point registered as ``kiri`` in ``pyproject.toml``::

    [project.scripts]
    kiri = "kiri.cli:main"
"""

import argparse
import sys


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="kiri",
        description="Kiri — composable async middleware with live KV updates.",
    )
    subparsers = parser.add_subparsers(dest="command")

    # -- kiri serve -------------------------------------------------------
    serve_parser = subparsers.add_parser("serve", help="Start the demo server")
    serve_parser.add_argument("--host", default=None, help="Bind host address")
    serve_parser.add_argument("--port", type=int, default=None, help="Bind port number")
    serve_parser.add_argument(
        "--static-dir",
        default=None,
        help="Directory holding the built front end",
    )
    serve_parser.add_argument(
        "--auth-secret",
        default=None,
        help="Require 'Authorization: Bearer <secret>' on /api routes",
    )
    serve_parser.add_argument(
        "--debug",
        action="store_true",
        default=None,
        help="Debug logging and auto-reload",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for the ``kiri`` command."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    if args.command == "serve":
        from kiri.cli._serve import serve

        serve(args)
