"""``canopy run``: serve a site with pounce."""

import argparse

from canopy.cli._resolve import resolve_or_exit


def run_site(args: argparse.Namespace) -> None:
    site = resolve_or_exit(args)
    site.run(args.host, args.port)
