"""Kida environment setup.

Creates the kida Environment of a site from its ``SiteConfig`` and binds
the built-in and user-registered filters and globals. The environment is
created once when the site is built and shared by every request.
"""

import logging
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any

from kida import Environment, FileSystemLoader

from canopy.config import SiteConfig
from canopy.errors import fatal
from canopy.templating.filters import BUILTIN_FILTERS, BUILTIN_GLOBALS

logger = logging.getLogger("canopy.templating")


def create_environment(
    config: SiteConfig,
    filters: Mapping[str, Callable[..., Any]],
    globals_: Mapping[str, Any],
) -> Environment:
    """Create the kida Environment of a site.

    A missing template directory is a startup failure: the site would
    answer every page with an error.
    """
    template_dir = Path(config.template_dir)
    if not template_dir.is_dir():
        fatal(logger, f"Template directory not found: {template_dir.resolve()}")

    env = Environment(
        loader=FileSystemLoader(str(template_dir)),
        autoescape=config.autoescape,
        auto_reload=config.debug,
        trim_blocks=config.trim_blocks,
        lstrip_blocks=config.lstrip_blocks,
    )

    env.update_filters(BUILTIN_FILTERS)
    if filters:
        env.update_filters(dict(filters))

    for name, value in BUILTIN_GLOBALS.items():
        env.add_global(name, value)
    for name, value in globals_.items():
        env.add_global(name, value)

    return env


def render_template(env: Environment, name: str, data: Mapping[str, Any]) -> str:
    """Render template *name* with the data bag as its context."""
    return env.get_template(name).render(dict(data))
