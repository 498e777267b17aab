"""End-to-end tests for canopy.site through the ASGI interface."""

import asyncio
import threading
from contextlib import contextmanager
from pathlib import Path

import pytest
from itsdangerous import URLSafeTimedSerializer

from canopy.auth import PUBLIC_GROUP_ID, Action, StaticAuthService
from canopy.config import LocalesConfig, SiteConfig
from canopy.http.response import Response
from canopy.pages.page import make_hidden_static_page, make_page, make_static_page
from canopy.site import Site, SiteAndConfig, run_sites
from canopy.testing import TestClient

HERE = Path(__file__).parent
TEMPLATES_DIR = HERE / "templates"
MESSAGES_DIR = HERE / "messages"
STATIC_DIR = HERE / "static"
SECRET_GROUP_ID = 5


def _site(*, all_lang: tuple[str, ...] = ("en", "fr"), **overrides: object) -> Site:
    """A site wired to the test templates, with an about page and a hidden secret page."""
    config = SiteConfig(
        template_dir=TEMPLATES_DIR,
        static_dir=STATIC_DIR,
        secret_key="test-secret",
        locales=LocalesConfig(all_lang=all_lang, messages_dir=MESSAGES_DIR),
        **overrides,
    )
    auth = StaticAuthService(rights={7: {SECRET_GROUP_ID: {Action.ACCESS}}})
    site = Site(config, auth_service=auth)
    site.add_page(make_static_page("about", PUBLIC_GROUP_ID, "about.html"))
    site.add_page(make_hidden_static_page("secret", SECRET_GROUP_ID, "secret.html"))
    return site


def _session_cookie(data: dict[str, str]) -> str:
    value = URLSafeTimedSerializer("test-secret", salt="canopy.session").dumps(data)
    return f"canopy_session={value}"


class TestStaticPages:
    async def test_home(self) -> None:
        async with TestClient(_site()) as client:
            response = await client.get("/")
            assert response.status == 200
            assert "<h1>Home</h1>" in response.text
            assert '<p class="lang">en</p>' in response.text
            assert '<p class="greeting">Hello</p>' in response.text
            assert '<p class="error"></p>' in response.text

    async def test_navigation_lists_visible_pages(self) -> None:
        async with TestClient(_site()) as client:
            response = await client.get("/")
            assert '<a href="/about">about</a>' in response.text
            assert "secret" not in response.text

    async def test_sub_page_current_url(self) -> None:
        async with TestClient(_site()) as client:
            response = await client.get("/about")
            assert "<h1>About</h1>" in response.text
            assert '<p class="url">/about/</p>' in response.text

    async def test_localized_template_from_header(self) -> None:
        async with TestClient(_site()) as client:
            response = await client.get("/", headers={"Accept-Language": "fr-FR,fr;q=0.9"})
            assert "<h1>Accueil</h1>" in response.text
            assert '<p class="greeting">Bonjour</p>' in response.text

    async def test_localized_template_from_cookie(self) -> None:
        async with TestClient(_site()) as client:
            response = await client.get("/about", headers={"Cookie": "lang=fr"})
            assert "<h1>A propos</h1>" in response.text

    async def test_head_has_no_body(self) -> None:
        async with TestClient(_site()) as client:
            response = await client.head("/about")
            assert response.status == 200
            assert response.body_bytes == b""


class TestAccessControl:
    async def test_denied_redirects_with_error_key(self) -> None:
        async with TestClient(_site()) as client:
            response = await client.get("/secret")
            assert response.status == 302
            assert response.location == "/?error=ErrorNotAuthorized"

    async def test_error_message_translated(self) -> None:
        async with TestClient(_site()) as client:
            response = await client.get("/?error=ErrorNotAuthorized")
            assert '<p class="error">You are not allowed to see this page.</p>' in response.text

    async def test_unknown_error_key_shown_as_is(self) -> None:
        async with TestClient(_site()) as client:
            response = await client.get("/?error=SomethingElse")
            assert '<p class="error">SomethingElse</p>' in response.text

    async def test_granted_user_sees_page(self) -> None:
        async with TestClient(_site()) as client:
            cookie = _session_cookie({"userId": "7", "login": "bob"})
            response = await client.get("/secret", headers={"Cookie": cookie})
            assert response.status == 200
            assert '<p class="user">7 bob</p>' in response.text

    async def test_malformed_session_user_is_anonymous(self) -> None:
        async with TestClient(_site()) as client:
            cookie = _session_cookie({"userId": "seven"})
            response = await client.get("/secret", headers={"Cookie": cookie})
            assert response.location == "/?error=ErrorNotAuthorized"


class TestRouting:
    async def test_unknown_path_redirects_home(self) -> None:
        async with TestClient(_site()) as client:
            response = await client.get("/no/such/page")
            assert response.status == 302
            assert response.location == "/"

    async def test_unknown_path_redirects_to_404_page(self) -> None:
        async with TestClient(_site(page_404_url="/about")) as client:
            response = await client.get("/missing")
            assert response.location == "/about"

    async def test_wrong_method(self) -> None:
        async with TestClient(_site()) as client:
            response = await client.post("/about", form={"a": "1"})
            assert response.status == 405
            assert response.header("allow") == "GET"

    def test_get_page(self) -> None:
        site = _site()
        docs = make_static_page("docs", PUBLIC_GROUP_ID, "docs/index.html")
        site.add_page(docs)
        docs.add_sub_page(make_static_page("guide", PUBLIC_GROUP_ID, "docs/guide.html"))
        assert site.get_page("/docs/guide") is docs.get_sub_page("guide")
        assert site.get_page("/") is site.root
        assert site.get_page("/docs/missing") is None

    async def test_pages_from_folder(self) -> None:
        site = _site()
        site.add_static_pages_from_folder(PUBLIC_GROUP_ID, "docs")
        async with TestClient(site) as client:
            response = await client.get("/guide")
            assert "<h1>Guide</h1>" in response.text


class TestChangeLang:
    async def test_sets_cookie_and_redirects(self) -> None:
        async with TestClient(_site()) as client:
            response = await client.get("/changeLang?lang=fr&Redirect=/about")
            assert response.status == 302
            assert response.location == "/about"
            assert response.header("set-cookie").startswith("lang=fr;")

            follow = await client.get("/about")
            assert "<h1>A propos</h1>" in follow.text

    async def test_unknown_lang_stores_default(self) -> None:
        async with TestClient(_site()) as client:
            response = await client.get("/changeLang?lang=xx&Redirect=/")
            assert response.header("set-cookie").startswith("lang=en;")

    async def test_offsite_target_rejected(self) -> None:
        async with TestClient(_site()) as client:
            response = await client.get("/changeLang?lang=fr&Redirect=//evil.example")
            assert response.location == "/"

    async def test_missing_target(self) -> None:
        async with TestClient(_site()) as client:
            response = await client.get("/changeLang?lang=fr")
            assert response.location == "/"

    async def test_not_registered_for_single_language(self) -> None:
        site = _site(all_lang=("en",))
        async with TestClient(site) as client:
            response = await client.get("/changeLang?lang=fr&Redirect=/about")
            assert response.location == "/"
            assert response.header("set-cookie") is None


class TestStaticAssets:
    async def test_static_file(self) -> None:
        async with TestClient(_site()) as client:
            response = await client.get("/static/site.css")
            assert response.status == 200
            assert response.content_type == "text/css"
            assert b"color: green" in response.body_bytes

    async def test_traversal_forbidden(self) -> None:
        async with TestClient(_site()) as client:
            response = await client.get("/static/../test_site.py")
            assert response.status == 403

    async def test_missing_static_file_falls_through(self) -> None:
        async with TestClient(_site()) as client:
            response = await client.get("/static/nope.css")
            assert response.location == "/"

    async def test_favicon(self) -> None:
        async with TestClient(_site(favicon_path=STATIC_DIR / "favicon.ico")) as client:
            response = await client.get("/favicon.ico")
            assert response.body_bytes == b"ICO"

    async def test_lang_picture(self) -> None:
        site = _site(lang_picture_paths={"fr": STATIC_DIR / "favicon.ico"})
        async with TestClient(site) as client:
            response = await client.get("/langPicture/fr")
            assert response.status == 200
            assert response.body_bytes == b"ICO"


class TestExtension:
    async def test_default_data_and_filter(self) -> None:
        site = _site()
        site.add_page(make_static_page("preview", PUBLIC_GROUP_ID, "preview.html"))

        @site.add_default_data
        async def add_body(data, ctx):
            data["Body"] = "<b>Hello world</b>"

        async with TestClient(site) as client:
            response = await client.get("/preview")
            assert "<div><b>Hello...</b></div>" in response.text

    async def test_template_filter_and_global(self) -> None:
        site = _site()
        site.add_page(make_static_page("custom", PUBLIC_GROUP_ID, "custom.html"))

        @site.template_filter()
        def shout(value: str) -> str:
            return value.upper() + "!"

        @site.template_global("site_name")
        def name() -> str:
            return "canopy"

        async with TestClient(site) as client:
            response = await client.get("/custom")
            assert "<p>HELLO! from canopy</p>" in response.text

    async def test_middleware(self) -> None:
        site = _site()

        async def tag(ctx, next):
            response = await next(ctx)
            return response.with_header("X-Site", "test")

        site.add_middleware(tag)
        async with TestClient(site) as client:
            response = await client.get("/about")
            assert response.header("x-site") == "test"

    async def test_feature_widget(self) -> None:
        async def view(ctx) -> Response:
            return Response(f"item {ctx.param('id')}")

        class ItemsWidget:
            def load_into(self, scope):
                scope.get("/view/{id:int}", view)

        site = _site()
        items = make_page("items")
        items.widget = ItemsWidget()
        site.add_page(items)
        async with TestClient(site) as client:
            response = await client.get("/items/view/42")
            assert response.text == "item 42"

    async def test_feature_widget_reads_form(self) -> None:
        async def save(ctx) -> Response:
            title = await ctx.form_value("title")
            return Response(f"saved {title}")

        class EditWidget:
            def load_into(self, scope):
                scope.post("/save", save)

        site = _site()
        edit = make_page("edit")
        edit.widget = EditWidget()
        site.add_page(edit)
        async with TestClient(site) as client:
            response = await client.post("/edit/save", form={"title": "Hi there"})
            assert response.text == "saved Hi there"

    async def test_span_per_static_page(self) -> None:
        class RecordingTracer:
            def __init__(self) -> None:
                self.names: list[str] = []

            @contextmanager
            def start_as_current_span(self, name: str):
                self.names.append(name)
                yield

        tracer = RecordingTracer()
        site = Site(_site().config, tracer=tracer)
        async with TestClient(site) as client:
            await client.get("/")
        assert tracer.names == ["staticWidget/displayHandler"]


class TestFailures:
    @staticmethod
    def _broken_site(**overrides: object) -> Site:
        async def boom(ctx):
            raise RuntimeError("boom")

        class BrokenWidget:
            def load_into(self, scope):
                scope.get("/", boom)

        site = _site(**overrides)
        page = make_page("broken")
        page.widget = BrokenWidget()
        site.add_page(page)
        return site

    async def test_unexpected_error_is_500(self) -> None:
        async with TestClient(self._broken_site()) as client:
            response = await client.get("/broken")
            assert response.status == 500
            assert response.text == "Internal Server Error"

    async def test_debug_shows_traceback(self) -> None:
        async with TestClient(self._broken_site(debug=True)) as client:
            response = await client.get("/broken")
            assert response.status == 500
            assert "RuntimeError: boom" in response.text

    def test_missing_template_dir_is_fatal(self, tmp_path: Path) -> None:
        site = Site(SiteConfig(template_dir=tmp_path / "missing"))
        with pytest.raises(SystemExit):
            site.build()

    def test_setup_after_build_raises(self) -> None:
        site = _site()
        site.build()
        with pytest.raises(RuntimeError, match="Cannot modify"):
            site.add_page(make_static_page("late", PUBLIC_GROUP_ID, "about.html"))
        with pytest.raises(RuntimeError):
            site.add_default_data(lambda data, ctx: None)

    def test_build_is_idempotent(self) -> None:
        site = _site()
        site.build()
        router = site.router
        site.build()
        assert site.router is router


class TestLifespan:
    async def test_startup_and_shutdown(self) -> None:
        site = _site()
        incoming = [{"type": "lifespan.startup"}, {"type": "lifespan.shutdown"}]
        sent: list[dict] = []

        async def receive() -> dict:
            return incoming.pop(0)

        async def send(message: dict) -> None:
            sent.append(message)

        await site({"type": "lifespan"}, receive, send)
        assert [m["type"] for m in sent] == [
            "lifespan.startup.complete",
            "lifespan.shutdown.complete",
        ]
        assert site.router is not None


class RecordingAuthService:
    """Grants everything, remembering the group of every check."""

    def __init__(self) -> None:
        self.groups: list[int] = []

    def auth_query(self, user_id: int, group_id: int, action: Action) -> None:
        self.groups.append(group_id)


class TestDispatch:
    async def test_deep_path_runs_only_the_leaf(self) -> None:
        auth = RecordingAuthService()
        site = Site(_site().config, auth_service=auth)
        a = make_static_page("a", 1, "about.html")
        b = make_static_page("b", 2, "about.html")
        c = make_static_page("c", 3, "about.html")
        site.add_page(a)
        a.add_sub_page(b)
        b.add_sub_page(c)
        calls: list[str] = []

        @site.add_default_data
        async def count(data, ctx):
            calls.append(ctx.request.path)

        async with TestClient(site) as client:
            response = await client.get("/a/b/c")
            assert response.status == 200
            assert '<p class="url">/a/b/c/</p>' in response.text
        assert auth.groups == [3]
        assert calls == ["/a/b/c"]


class SlowAuthService:
    """Blocks the calling thread on the slow group until released."""

    def __init__(self, slow_group: int) -> None:
        self.slow_group = slow_group
        self.entered = threading.Event()
        self.release = threading.Event()

    def auth_query(self, user_id: int, group_id: int, action: Action) -> None:
        if group_id == self.slow_group:
            self.entered.set()
            self.release.wait(timeout=5)


class TestBlockingCollaborators:
    async def test_blocking_auth_query_leaves_other_requests_alone(self) -> None:
        auth = SlowAuthService(slow_group=SECRET_GROUP_ID)
        site = Site(_site().config, auth_service=auth)
        site.add_page(make_static_page("about", PUBLIC_GROUP_ID, "about.html"))
        site.add_page(make_static_page("slow", SECRET_GROUP_ID, "secret.html"))

        async with TestClient(site) as client:
            slow = asyncio.ensure_future(client.get("/slow"))
            for _ in range(500):
                if auth.entered.is_set():
                    break
                await asyncio.sleep(0.01)
            assert auth.entered.is_set()

            fast = await client.get("/about")
            assert fast.status == 200
            assert not slow.done()

            auth.release.set()
            assert (await slow).status == 200

    async def test_blocking_data_adder_runs_off_the_loop(self) -> None:
        site = _site()
        loop_thread = threading.get_ident()
        seen: list[int] = []

        @site.add_default_data
        def record_thread(data, ctx):
            seen.append(threading.get_ident())

        async with TestClient(site) as client:
            await client.get("/about")
        assert len(seen) == 1
        assert seen[0] != loop_thread


class FakeServer:
    def __init__(self, site: Site, fail: bool) -> None:
        self.site = site
        self.fail = fail
        self.ran = False

    def run(self) -> None:
        self.ran = True
        if self.fail:
            raise OSError("address already in use")


class TestRunSites:
    def test_failure_propagates_after_building_every_site(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        first, second = _site(), _site()
        servers: list[FakeServer] = []
        addresses: list[tuple[object, object]] = []

        def create_server(site, host=None, port=None):
            addresses.append((host, port))
            assert site._frozen is True
            server = FakeServer(site, fail=site is second)
            servers.append(server)
            return server

        monkeypatch.setattr("canopy.server.run.create_server", create_server)
        with pytest.raises(ExceptionGroup) as exc_info:
            run_sites(first, SiteAndConfig(second, host="0.0.0.0", port=9000))

        assert exc_info.group_contains(OSError, match="address already in use")
        assert [server.site for server in servers] == [first, second]
        assert addresses == [(None, None), ("0.0.0.0", 9000)]
        assert first._frozen is True
        assert second._frozen is True

    def test_clean_stop(self, monkeypatch: pytest.MonkeyPatch) -> None:
        servers: list[FakeServer] = []

        def create_server(site, host=None, port=None):
            servers.append(FakeServer(site, fail=False))
            return servers[-1]

        monkeypatch.setattr("canopy.server.run.create_server", create_server)
        run_sites(_site(), _site())
        assert [server.ran for server in servers] == [True, True]


class TestCreateServer:
    class RecordingServer:
        def __init__(self, config, app) -> None:
            self.config = config
            self.app = app
            self.runs = 0

        def run(self) -> None:
            self.runs += 1

    def test_config_from_site(self, monkeypatch: pytest.MonkeyPatch) -> None:
        from canopy.server import run

        monkeypatch.setattr(run, "Server", self.RecordingServer)
        site = _site(host="0.0.0.0", port=":9100", workers=2)
        server = run.create_server(site)
        assert server.app is site
        assert server.config.host == "0.0.0.0"
        assert server.config.port == 9100
        assert server.config.workers == 2
        assert server.config.reload is False

    def test_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        from canopy.server import run

        monkeypatch.setattr(run, "Server", self.RecordingServer)
        server = run.create_server(_site(), "10.0.0.2", 7000)
        assert (server.config.host, server.config.port) == ("10.0.0.2", 7000)

    def test_run_server_blocks_on_run(
        self, monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
    ) -> None:
        from canopy.server import run

        created: list[TestCreateServer.RecordingServer] = []

        def recording(config, app):
            created.append(self.RecordingServer(config, app))
            return created[-1]

        monkeypatch.setattr(run, "Server", recording)
        with caplog.at_level("INFO", logger="canopy.server"):
            run.run_server(_site(port=8123))
        assert created[0].runs == 1
        assert "Serving on 127.0.0.1:8123" in caplog.text
