"""Canopy CLI: serve a site and inspect its page tree.

Entry point registered as ``canopy`` in ``pyproject.toml``::

    [project.scripts]
    canopy = "canopy.cli:main"
"""

import argparse
import sys


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for the ``canopy`` command."""
    parser = argparse.ArgumentParser(
        prog="canopy",
        description="Canopy: page-tree web sites served with pounce.",
    )
    subparsers = parser.add_subparsers(dest="command")

    # -- canopy run -------------------------------------------------------
    run_parser = subparsers.add_parser("run", help="Serve a site")
    run_parser.add_argument("site", help="Import string (e.g. mysite:site)")
    run_parser.add_argument("--host", default=None, help="Bind host address")
    run_parser.add_argument("--port", type=int, default=None, help="Bind port number")

    # -- canopy pages -----------------------------------------------------
    pages_parser = subparsers.add_parser("pages", help="Print the page tree and routes")
    pages_parser.add_argument("site", help="Import string (e.g. mysite:site)")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    if args.command == "run":
        from canopy.cli._run import run_site

        run_site(args)
    elif args.command == "pages":
        from canopy.cli._pages import print_pages

        print_pages(args)
