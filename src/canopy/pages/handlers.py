"""Handler factories.

Feature widgets and static pages rarely write raw handlers. They
describe what a request should produce and let these factories turn it
into a route handler:

- ``create_template`` wraps a ``(data, ctx) -> (template, redirect)``
  function: render the template with the data bag, or redirect.
- ``create_redirect`` wraps a ``ctx -> target`` function: always redirect.
"""

from canopy._internal.invoke import invoke
from canopy.context import RequestContext
from canopy.data import Redirecter, TemplateRedirecter
from canopy.http.response import Redirect, Response
from canopy.pages.urls import check_target
from canopy.routing.route import Handler


def create_template(span_name: str, redirecter: TemplateRedirecter) -> Handler:
    """Adapt a template redirecter into a route handler.

    The handler runs inside a tracing span named *span_name*. It builds
    the data bag with the site's default data adders, calls *redirecter*,
    then either redirects (non-empty target, nothing rendered) or renders
    the returned template with the data bag.
    """

    async def handler(ctx: RequestContext) -> Response:
        site = ctx.site
        with site.tracer.start_as_current_span(span_name):
            data = await site.init_data(ctx)
            template, redirect = await invoke(redirecter, data, ctx)
            if redirect:
                return Redirect(redirect)
            return Response(body=site.render(template, data))

    handler.__name__ = span_name.replace("/", "_")
    handler.__qualname__ = handler.__name__
    return handler


def create_redirect(redirecter: Redirecter) -> Handler:
    """Adapt a ``ctx -> target`` function into an always-redirecting handler."""

    async def handler(ctx: RequestContext) -> Response:
        return Redirect(check_target(await invoke(redirecter, ctx)))

    handler.__name__ = getattr(redirecter, "__name__", "redirect")
    return handler


def create_redirect_string(target: str) -> Handler:
    """Handler redirecting every request to a fixed target."""
    target = check_target(target)

    async def handler(ctx: RequestContext) -> Response:
        return Redirect(target)

    return handler
