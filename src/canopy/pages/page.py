"""The page tree.

A site is a tree of named pages. Each page owns a ``Widget``: the
thing that knows which handlers to register for that page. Only the
built-in ``StaticWidget`` can own sub-pages; feature widgets (blog,
wiki, ...) are leaves that register whatever routes they need.

The tree is built once, single-threaded, during setup. While the site
serves requests it is only read.

Usage::

    root = make_static_page("root", PUBLIC_GROUP_ID, "index.html")
    about = make_static_page("about", PUBLIC_GROUP_ID, "about.html")
    root.add_sub_page(about)
    root.add_sub_page(make_hidden_static_page("legal", PUBLIC_GROUP_ID, "legal.html"))

    blog = make_page("blog")
    blog.widget = BlogWidget(...)
    root.add_sub_page(blog)
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from typing import Protocol

from canopy._internal.invoke import invoke_blocking
from canopy.auth import Action
from canopy.context import RequestContext
from canopy.data import ID_NAME, DataBag, TemplateRedirecter
from canopy.errors import ConfigurationError, ServiceError
from canopy.pages.handlers import create_template
from canopy.pages.urls import default_error_redirect
from canopy.routing.route import Handler
from canopy.routing.scope import RouterScope


class Widget(Protocol):
    """What every page-tree node must provide: register its handlers.

    ``scope`` is already rooted at the page's own path, so a widget
    registers ``"/"`` for itself and relative paths for everything else.
    """

    def load_into(self, scope: RouterScope) -> None: ...


@dataclass(slots=True, eq=False)
class Page:
    """A named node of the site tree.

    ``visible`` controls whether the page shows up in navigation listings.
    """

    name: str
    visible: bool = True
    widget: Widget | None = None

    def add_sub_page(self, page: Page) -> None:
        """Attach *page* below this one.

        Does nothing when this page's widget is not a ``StaticWidget``:
        feature widgets do not nest.

        Raises:
            ConfigurationError: a sibling with the same name exists.
        """
        if isinstance(self.widget, StaticWidget):
            self.widget.add_sub_page(page)

    def get_sub_page(self, name: str) -> Page | None:
        """Direct child called *name*, or ``None``."""
        if not name or not isinstance(self.widget, StaticWidget):
            return None
        for sub_page in self.widget.sub_pages:
            if sub_page.name == name:
                return sub_page
        return None

    def extract_sub_page_from_path(self, path: str) -> tuple[Page, str]:
        """Descend along *path* as far as existing pages allow.

        Every segment but the last is matched greedily against children;
        descent stops at the first miss. Returns the deepest page reached
        and the last segment, matched or not: it names the page about to
        be created there.
        """
        *parents, last = path.split("/")
        current = self
        for name in parents:
            sub_page = current.get_sub_page(name)
            if sub_page is None:
                break
            current = sub_page
        return current, last

    def visible_sub_pages(self) -> list[Page]:
        """Children to show in navigation, in insertion order."""
        if not isinstance(self.widget, StaticWidget):
            return []
        return [sub_page for sub_page in self.widget.sub_pages if sub_page.visible]

    def walk(self, prefix: str = "") -> Iterator[tuple[str, Page]]:
        """Depth-first ``(url_path, page)`` pairs, this page first.

        The page ``walk`` is called on is the root and gets ``/``.
        """
        yield prefix or "/", self
        if isinstance(self.widget, StaticWidget):
            for sub_page in self.widget.sub_pages:
                yield from sub_page.walk(f"{prefix}/{sub_page.name}")


class StaticWidget:
    """Widget of navigation and plain template pages.

    Renders one template (localized, behind an access check) on ``GET /``
    and mounts every sub-page under its name.
    """

    __slots__ = ("display_handler", "group_id", "sub_pages", "template")

    def __init__(self, group_id: int, template: str) -> None:
        self.group_id = group_id
        self.template = template
        self.sub_pages: list[Page] = []
        self.display_handler: Handler = create_template(
            "staticWidget/displayHandler", localized_template(group_id, template)
        )

    def add_sub_page(self, page: Page) -> None:
        if any(sub_page.name == page.name for sub_page in self.sub_pages):
            msg = f"Duplicate page name {page.name!r}"
            raise ConfigurationError(msg)
        self.sub_pages.append(page)

    def load_into(self, scope: RouterScope) -> None:
        scope.get("/", self.display_handler)
        for page in self.sub_pages:
            if page.widget is None:
                msg = f"Page {page.name!r} under {scope.prefix!r} has no widget"
                raise ConfigurationError(msg)
            page.widget.load_into(scope.group("/" + page.name))


def localized_template(group_id: int, template: str) -> TemplateRedirecter:
    """Template redirecter of static pages.

    Checks that the user may access *group_id*, then picks the template
    for the request language: ``<lang>/<template>`` for any language but
    the default one, *template* itself otherwise. A denied or failed
    check redirects to the error page.
    """

    async def redirecter(data: DataBag, ctx: RequestContext) -> tuple[str, str]:
        site = ctx.site
        user_id = data.get(ID_NAME, 0)
        try:
            await invoke_blocking(
                site.auth_service.auth_query, user_id, group_id, Action.ACCESS
            )
        except ServiceError as exc:
            return "", default_error_redirect(exc.key)

        locales = site.locales
        lang = locales.get_lang(ctx.request)
        if lang != locales.default_lang:
            ctx.logger.info("Using alternative static page for lang %s", lang)
            return f"{lang}/{template}", ""
        return template, ""

    return redirecter


def make_page(name: str) -> Page:
    return Page(name=name, visible=True)


def make_hidden_page(name: str) -> Page:
    return Page(name=name, visible=False)


def make_static_page(name: str, group_id: int, template: str) -> Page:
    """A visible page rendering *template*, readable by *group_id*."""
    return Page(name=name, visible=True, widget=StaticWidget(group_id, template))


def make_hidden_static_page(name: str, group_id: int, template: str) -> Page:
    """Same as ``make_static_page`` but left out of navigation listings."""
    return Page(name=name, visible=False, widget=StaticWidget(group_id, template))
