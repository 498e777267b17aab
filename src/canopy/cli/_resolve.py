"""Site import resolution: ``"module:attribute"`` strings to Site instances."""

import argparse
import importlib
import sys

from canopy.site import Site


def resolve_site(import_string: str) -> Site:
    """Resolve an import string to a canopy Site instance.

    Accepts ``"module:attribute"``. When the attribute portion is
    omitted it defaults to ``"site"``. A callable that is not a Site is
    treated as a factory and called without arguments.

    Raises:
        ModuleNotFoundError: If the module cannot be imported.
        AttributeError: If the attribute does not exist on the module.
        TypeError: If the resolved object is not a Site.
    """
    module_path, _, attr_name = import_string.partition(":")
    module = importlib.import_module(module_path)
    obj = getattr(module, attr_name or "site")

    if callable(obj) and not isinstance(obj, Site):
        try:
            obj = obj()
        except Exception as exc:
            msg = f"Factory function {import_string!r} raised an error: {exc}"
            raise TypeError(msg) from exc

    if not isinstance(obj, Site):
        msg = f"{import_string!r} resolved to {type(obj).__name__}, not a canopy.Site instance"
        raise TypeError(msg)
    return obj


def resolve_or_exit(args: argparse.Namespace) -> Site:
    try:
        return resolve_site(args.site)
    except (ModuleNotFoundError, AttributeError, TypeError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc
