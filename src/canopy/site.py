"""The site: page tree, data adders and collaborators behind one ASGI app.

Mutable during setup (pages, data adders, middleware, filters).
Frozen when ``site.build()``, ``site.run()`` or ``__call__()`` is first
invoked: the page tree is compiled into a router and the template
environment is created.

Usage::

    site = Site(SiteConfig(secret_key="s3cr3t"))
    site.add_static_pages_from_folder(PUBLIC_GROUP_ID)
    site.run()
"""

import logging
import threading
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from functools import partial
from pathlib import Path
from typing import Any

import anyio
import anyio.to_thread
from kida import Environment
from opentelemetry import trace

from canopy._internal.asgi import Receive, Scope, Send
from canopy._internal.invoke import invoke_blocking
from canopy.auth import PUBLIC_GROUP_ID, AuthService, StaticAuthService
from canopy.config import SiteConfig
from canopy.context import RequestContext
from canopy.data import (
    ALL_LANG_NAME,
    CURRENT_URL_NAME,
    ERROR_MSG_NAME,
    ID_NAME,
    LANG_NAME,
    LOGIN_NAME,
    MESSAGES_NAME,
    REDIRECT_NAME,
    SUB_PAGES_NAME,
    DataAdder,
    DataBag,
)
from canopy.http.response import Redirect, Response
from canopy.locale import LocalesManager
from canopy.middleware.protocol import Middleware
from canopy.middleware.sessions import LOGIN_KEY, SessionMiddleware, get_user_id
from canopy.middleware.static import StaticFile, StaticFiles
from canopy.pages import discovery
from canopy.pages.handlers import create_redirect_string
from canopy.pages.page import Page, StaticWidget, make_static_page
from canopy.pages.urls import DEFAULT_TARGET, ERROR_PARAM, get_current_url, is_safe_url
from canopy.routing.route import Handler
from canopy.routing.router import Router
from canopy.routing.scope import RouterScope
from canopy.server.handler import handle_request
from canopy.templating.integration import create_environment, render_template

logger = logging.getLogger("canopy.server")

CHANGE_LANG_PATH = "/changeLang"
FAVICON_PATH = "/favicon.ico"
LANG_PICTURE_PATH = "/langPicture"


@dataclass(frozen=True, slots=True)
class NavLink:
    """One entry of the ``SubPages`` navigation listing."""

    name: str
    url: str


# -- Built-in data adders --


def add_locale_data(data: DataBag, ctx: RequestContext) -> None:
    locales = ctx.site.locales
    lang = locales.get_lang(ctx.request)
    data[LANG_NAME] = lang
    data[ALL_LANG_NAME] = locales.all_lang
    data[MESSAGES_NAME] = locales.messages(lang)


def add_session_data(data: DataBag, ctx: RequestContext) -> None:
    data[ID_NAME] = get_user_id(ctx)
    data[LOGIN_NAME] = ctx.session.load(LOGIN_KEY)


def add_request_data(data: DataBag, ctx: RequestContext) -> None:
    data[CURRENT_URL_NAME] = get_current_url(ctx.request)
    error_key = ctx.query(ERROR_PARAM)
    data[ERROR_MSG_NAME] = (
        ctx.site.locales.translate(data[LANG_NAME], error_key) if error_key else ""
    )


def add_navigation_data(data: DataBag, ctx: RequestContext) -> None:
    data[SUB_PAGES_NAME] = [
        NavLink(name=page.name, url="/" + page.name)
        for page in ctx.site.root.visible_sub_pages()
    ]


BUILTIN_DATA_ADDERS: tuple[DataAdder, ...] = (
    add_locale_data,
    add_session_data,
    add_request_data,
    add_navigation_data,
)


async def change_lang_handler(ctx: RequestContext) -> Response:
    """Store the chosen language in a cookie and go back where the user was."""
    target = ctx.query(REDIRECT_NAME)
    if not is_safe_url(target):
        target = DEFAULT_TARGET
    return ctx.site.locales.set_lang_cookie(ctx.query(LANG_NAME), Redirect(target))


class Site:
    """A served site.

    Mutable during setup. Frozen at runtime when ``build()``, ``run()``
    or ``__call__()`` is first invoked.

    Thread safety:
        The setup phase is single-threaded. The freeze transition uses a
        Lock + double-check so exactly one thread compiles the site, even
        when several pounce workers receive their first request at once.
    """

    __slots__ = (
        "_data_adders",
        "_freeze_lock",
        "_frozen",
        "_kida_env",
        "_middleware",
        "_middleware_list",
        "_not_found",
        "_router",
        "_template_filters",
        "_template_globals",
        "auth_service",
        "config",
        "locales",
        "root",
        "tracer",
    )

    def __init__(
        self,
        config: SiteConfig | None = None,
        locales: LocalesManager | None = None,
        auth_service: AuthService | None = None,
        *,
        tracer: trace.Tracer | None = None,
    ) -> None:
        self.config: SiteConfig = config or SiteConfig()
        self.locales: LocalesManager = locales or LocalesManager(self.config.locales)
        self.auth_service: AuthService = auth_service or StaticAuthService()
        self.tracer: trace.Tracer = tracer or trace.get_tracer("canopy")
        self.root: Page = make_static_page(
            "root", PUBLIC_GROUP_ID, "index" + self.config.template_ext
        )

        self._data_adders: list[DataAdder] = []
        self._middleware_list: list[Middleware] = []
        self._template_filters: dict[str, Callable[..., Any]] = {}
        self._template_globals: dict[str, Any] = {}
        self._frozen: bool = False
        self._freeze_lock: threading.Lock = threading.Lock()

        # Compiled state, set during _freeze()
        self._router: Router | None = None
        self._middleware: tuple[Middleware, ...] = ()
        self._kida_env: Environment | None = None
        self._not_found: Handler | None = None

    # -- Page tree --

    def add_page(self, page: Page) -> None:
        """Attach *page* directly below the root page."""
        self._check_not_frozen()
        self.root.add_sub_page(page)

    def add_static_pages_from_folder(
        self, group_id: int = PUBLIC_GROUP_ID, folder_name: str = ""
    ) -> None:
        """Mirror ``template_dir/folder_name`` as static pages below the root."""
        self._check_not_frozen()
        discovery.add_static_pages_from_folder(
            self.root,
            self.config.template_dir,
            folder_name,
            group_id=group_id,
            template_ext=self.config.template_ext,
        )

    def get_page(self, path: str) -> Page | None:
        """Page at a ``/``-separated *path* below the root, or ``None``."""
        page: Page | None = self.root
        for name in path.strip("/").split("/"):
            if not name:
                continue
            page = page.get_sub_page(name) if page is not None else None
        return page

    # -- Data bag --

    def add_default_data(self, adder: DataAdder) -> DataAdder:
        """Register a data adder, run after the built-in ones on every page.

        Usable as a decorator::

            @site.add_default_data
            def add_year(data, ctx):
                data["Year"] = 2024
        """
        self._check_not_frozen()
        self._data_adders.append(adder)
        return adder

    async def init_data(self, ctx: RequestContext) -> DataBag:
        """A fresh data bag filled by the built-in adders, then the registered ones.

        Registered plain ``def`` adders run in a worker thread.
        """
        data: DataBag = {}
        for builtin in BUILTIN_DATA_ADDERS:
            builtin(data, ctx)
        for adder in self._data_adders:
            await invoke_blocking(adder, data, ctx)
        return data

    # -- Middleware --

    def add_middleware(self, middleware: Middleware) -> None:
        """Add a middleware to the pipeline, after the built-in ones."""
        self._check_not_frozen()
        self._middleware_list.append(middleware)

    # -- Template integration --

    def template_filter(
        self,
        name: str | None = None,
    ) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        """Register a kida template filter."""

        def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
            self._check_not_frozen()
            self._template_filters[name or func.__name__] = func
            return func

        return decorator

    def template_global(
        self,
        name: str | None = None,
    ) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        """Register a kida template global."""

        def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
            self._check_not_frozen()
            self._template_globals[name or func.__name__] = func
            return func

        return decorator

    def render(self, template: str, data: DataBag) -> str:
        self._ensure_frozen()
        assert self._kida_env is not None
        return render_template(self._kida_env, template, data)

    # -- Compiled state --

    @property
    def router(self) -> Router:
        """The compiled route table (builds the site on first access)."""
        self._ensure_frozen()
        assert self._router is not None
        return self._router

    def build(self) -> None:
        """Compile the site. Idempotent."""
        self._ensure_frozen()

    # -- Server --

    def run(self, host: str | None = None, port: int | None = None) -> None:
        """Build the site and serve it until the server stops."""
        from canopy.server.run import run_server

        self._ensure_frozen()
        run_server(self, host, port)

    # -- ASGI interface --

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI 3.0 entry point."""
        if scope["type"] == "lifespan":
            await self._handle_lifespan(receive, send)
            return

        self._ensure_frozen()
        assert self._router is not None
        assert self._not_found is not None

        await handle_request(
            scope,
            receive,
            send,
            site=self,
            router=self._router,
            middleware=self._middleware,
            not_found=self._not_found,
        )

    async def _handle_lifespan(self, receive: Receive, send: Send) -> None:
        """Build the site at startup, before the first request."""
        while True:
            message = await receive()
            if message["type"] == "lifespan.startup":
                self._ensure_frozen()
                await send({"type": "lifespan.startup.complete"})
            elif message["type"] == "lifespan.shutdown":
                await send({"type": "lifespan.shutdown.complete"})
                return

    # -- Internal --

    def _check_not_frozen(self) -> None:
        if self._frozen:
            msg = (
                "Cannot modify the site after it has started serving requests. "
                "Add pages, data adders and middleware before calling site.run()."
            )
            raise RuntimeError(msg)

    def _ensure_frozen(self) -> None:
        if self._frozen:
            return
        with self._freeze_lock:
            if self._frozen:
                return
            self._freeze()

    def _freeze(self) -> None:
        """Compile the site into its frozen runtime state.

        MUST only be called while holding _freeze_lock.
        """
        config = self.config

        # 1. Templates
        self._kida_env = create_environment(
            config, self._template_filters, self._template_globals
        )

        # 2. Route table from the page tree
        router = Router()
        scope = RouterScope(router)
        assert isinstance(self.root.widget, StaticWidget)
        self.root.widget.load_into(scope)
        if self.locales.multiple_lang:
            scope.get(CHANGE_LANG_PATH, change_lang_handler)
        router.compile()
        self._router = router
        self._not_found = create_redirect_string(config.page_404_url)

        # 3. Middleware: assets first so they skip sessions entirely
        self._middleware = (*self._builtin_middleware(), *self._middleware_list)

        self._frozen = True
        logger.info(
            "Site built: %d routes, %d middleware", len(router.routes), len(self._middleware)
        )

    def _builtin_middleware(self) -> Iterable[Middleware]:
        config = self.config
        if config.static_dir is not None and Path(config.static_dir).is_dir():
            yield StaticFiles(config.static_dir, config.static_url)
        if config.favicon_path is not None:
            yield StaticFile(FAVICON_PATH, config.favicon_path)
        for lang, picture in config.lang_picture_paths.items():
            yield StaticFile(f"{LANG_PICTURE_PATH}/{lang}", picture)
        if config.secret_key or config.session is not None:
            yield SessionMiddleware(config.session_config())


@dataclass(frozen=True, slots=True)
class SiteAndConfig:
    """A site to serve with ``run_sites``, optionally on another address."""

    site: Site
    host: str | None = None
    port: int | None = None


def run_sites(*sites: Site | SiteAndConfig) -> None:
    """Serve several sites at once, one pounce server per worker thread.

    Blocks until every server has stopped. Each site is built before its
    server starts. The first server to fail stops waiting on the others;
    its exception propagates wrapped in an ``ExceptionGroup``.
    """
    anyio.run(_serve_all, [s if isinstance(s, SiteAndConfig) else SiteAndConfig(s) for s in sites])


async def _serve_all(entries: list[SiteAndConfig]) -> None:
    from canopy.server.run import create_server

    async with anyio.create_task_group() as tg:
        for entry in entries:
            entry.site.build()
            server = create_server(entry.site, entry.host, entry.port)
            tg.start_soon(
                partial(anyio.to_thread.run_sync, server.run, abandon_on_cancel=True)
            )
