"""``canopy pages``: print the page tree and the compiled routes.

Hidden pages are flagged with ``(hidden)``; they are routed but left
out of navigation listings.
"""

import argparse

from canopy.cli._resolve import resolve_or_exit
from canopy.pages.page import StaticWidget


def print_pages(args: argparse.Namespace) -> None:
    site = resolve_or_exit(args)
    router = site.router

    print("PAGES")
    for path, page in site.root.walk():
        depth = 0 if path == "/" else path.count("/")
        marker = "" if page.visible else " (hidden)"
        if isinstance(page.widget, StaticWidget):
            kind = page.widget.template
        else:
            kind = type(page.widget).__name__
        print(f"{'  ' * depth}{page.name}{marker}  {path}  [{kind}]")

    rows = [(", ".join(sorted(route.methods)), route.path) for route in router.routes]
    if not rows:
        return
    width = max(6, *(len(methods) for methods, _ in rows))
    print()
    print(f"{'METHOD':<{width}}  PATH")
    for methods, path in rows:
        print(f"{methods:<{width}}  {path}")
