"""Filesystem-driven page discovery.

Walks a template folder and mirrors it as static pages:

- every directory becomes a page rendering its ``index<ext>`` file,
- every other ``<name><ext>`` file becomes a page called ``<name>``,
- ``index<ext>`` files are the directory pages themselves and are
  skipped, so is the starting folder (it is the page we attach to).

Given ``a/index.html``, ``a/b.html`` and ``index.html``, discovery adds
page ``a`` (template ``a/index.html``) with child ``b`` (template
``a/b.html``) and nothing for the top-level ``index.html``.

Template names are relative to the templates root and ``/``-separated,
which is what the kida loader expects. Entries are visited in sorted
order, a directory before its content, so every parent page exists
before its children are placed. Hidden entries (``.git``, ...) are
ignored.
"""

import logging
from pathlib import Path

from canopy.errors import ConfigurationError, fatal
from canopy.pages.page import Page, make_static_page

logger = logging.getLogger("canopy.pages")


def add_static_pages_from_folder(
    page: Page,
    templates_path: str | Path,
    folder_name: str = "",
    *,
    group_id: int,
    template_ext: str = ".html",
) -> None:
    """Mirror ``templates_path/folder_name`` as static pages below *page*.

    Any failure while walking (missing folder, unreadable directory,
    conflicting page names) terminates the process: a site must not start
    with half of its pages.
    """
    start = Path(templates_path) / folder_name
    try:
        root = Path(templates_path).resolve(strict=True)
        start = (root / folder_name).resolve(strict=True)
        if not start.is_dir():
            msg = f"Not a directory: {start}"
            raise NotADirectoryError(msg)
        _walk(page, root, start, start, group_id, template_ext)
    except (OSError, ConfigurationError) as exc:
        fatal(logger, f"Failed to load static pages from {start}", exc)


def _walk(
    page: Page,
    root: Path,
    start: Path,
    directory: Path,
    group_id: int,
    template_ext: str,
) -> None:
    for item in sorted(directory.iterdir()):
        if item.name.startswith("."):
            continue
        template = item.relative_to(root).as_posix()
        inner = item.relative_to(start).as_posix()
        if item.is_dir():
            parent, name = page.extract_sub_page_from_path(inner)
            parent.add_sub_page(make_static_page(name, group_id, f"{template}/index{template_ext}"))
            _walk(page, root, start, item, group_id, template_ext)
        elif item.name.endswith(template_ext):
            parent, name = page.extract_sub_page_from_path(inner[: -len(template_ext)])
            if name != "index":
                parent.add_sub_page(make_static_page(name, group_id, template))
                logger.debug("Discovered static page %s (%s)", name, template)
