"""Tests for canopy.pages.handlers: template dispatch and redirect handlers."""

from contextlib import contextmanager
from typing import Any

import pytest

from canopy.context import RequestContext
from canopy.http.request import Request
from canopy.pages.handlers import create_redirect, create_redirect_string, create_template


class RecordingTracer:
    def __init__(self) -> None:
        self.started: list[str] = []
        self.ended: list[str] = []

    @contextmanager
    def start_as_current_span(self, name: str):
        self.started.append(name)
        try:
            yield name
        finally:
            self.ended.append(name)


class FakeSite:
    """Just what the handlers use: a tracer, data adders and a renderer."""

    def __init__(self) -> None:
        self.tracer = RecordingTracer()
        self.rendered: list[tuple[str, dict[str, Any]]] = []

    async def init_data(self, ctx: RequestContext) -> dict[str, Any]:
        return {"Id": 0, "lang": "en"}

    def render(self, template: str, data: dict[str, Any]) -> str:
        self.rendered.append((template, dict(data)))
        return f"<p>{template}</p>"


async def _receive() -> dict:
    return {"type": "http.request", "body": b"", "more_body": False}


def _ctx(site: FakeSite, path: str = "/") -> RequestContext:
    scope = {"type": "http", "method": "GET", "path": path, "headers": [], "query_string": b""}
    return RequestContext(request=Request.from_asgi(scope, _receive), site=site)


class TestCreateTemplate:
    async def test_renders_template(self) -> None:
        site = FakeSite()

        def redirecter(data, ctx):
            data["Title"] = "Hello"
            return "page.html", ""

        response = await create_template("test/page", redirecter)(_ctx(site))

        assert response.status == 200
        assert response.text == "<p>page.html</p>"
        template, data = site.rendered[0]
        assert template == "page.html"
        assert data == {"Id": 0, "lang": "en", "Title": "Hello"}

    async def test_redirect_skips_rendering(self) -> None:
        site = FakeSite()

        async def redirecter(data, ctx):
            return "page.html", "/?error=ErrorNotAuthorized"

        response = await create_template("test/page", redirecter)(_ctx(site))

        assert response.status == 302
        assert response.location == "/?error=ErrorNotAuthorized"
        assert site.rendered == []

    async def test_span_wraps_invocation(self) -> None:
        site = FakeSite()
        seen_inside: list[list[str]] = []

        def redirecter(data, ctx):
            seen_inside.append(list(site.tracer.ended))
            return "page.html", ""

        await create_template("staticWidget/displayHandler", redirecter)(_ctx(site))

        assert site.tracer.started == ["staticWidget/displayHandler"]
        assert site.tracer.ended == ["staticWidget/displayHandler"]
        assert seen_inside == [[]]

    async def test_span_closed_on_error(self) -> None:
        site = FakeSite()

        def redirecter(data, ctx):
            raise RuntimeError("boom")

        handler = create_template("test/fail", redirecter)
        with pytest.raises(RuntimeError, match="boom"):
            await handler(_ctx(site))
        assert site.tracer.ended == ["test/fail"]


class TestCreateRedirect:
    async def test_redirects_to_target(self) -> None:
        response = await create_redirect(lambda ctx: "/blog")(_ctx(FakeSite()))
        assert response.status == 302
        assert response.location == "/blog"

    async def test_async_redirecter(self) -> None:
        async def redirecter(ctx):
            return ctx.request.path + "/edit"

        response = await create_redirect(redirecter)(_ctx(FakeSite(), "/wiki"))
        assert response.location == "/wiki/edit"

    async def test_empty_target_goes_to_root(self) -> None:
        response = await create_redirect(lambda ctx: "")(_ctx(FakeSite()))
        assert response.location == "/"

    async def test_fixed_target(self) -> None:
        response = await create_redirect_string("/home")(_ctx(FakeSite(), "/anything"))
        assert response.location == "/home"

    async def test_fixed_empty_target(self) -> None:
        response = await create_redirect_string("")(_ctx(FakeSite()))
        assert response.location == "/"
        assert response.body_bytes == b""
