"""ASGI handler: translates ASGI scope/messages to canopy types.

The only component that touches raw ASGI directly. Builds the Request
and its RequestContext, runs the middleware chain around router
dispatch, and sends the Response back through ASGI ``send()``.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from canopy._internal.asgi import Receive, Scope, Send
from canopy.context import RequestContext
from canopy.errors import HTTPError, NotFound
from canopy.http.request import Request
from canopy.http.response import Response
from canopy.middleware.protocol import Next
from canopy.routing.route import Handler
from canopy.routing.router import Router
from canopy.server.errors import handle_http_error, handle_internal_error

if TYPE_CHECKING:
    from canopy.site import Site


async def handle_request(
    scope: Scope,
    receive: Receive,
    send: Send,
    *,
    site: Site,
    router: Router,
    middleware: tuple[Callable[..., Any], ...],
    not_found: Handler,
) -> None:
    """Process a single HTTP request through the full pipeline.

    Paths no route matches are answered by *not_found* (the catch-all
    redirect of the site).
    """
    config = site.config
    request = Request.from_asgi(scope, receive, max_content_length=config.max_content_length)
    ctx = RequestContext(request=request, site=site)

    async def dispatch(inner: RequestContext) -> Response:
        match = router.match(inner.request.method, inner.request.path)
        inner.request = inner.request.with_path_params(match.path_params)
        return await match.route.handler(inner)

    handler: Next = dispatch
    for mw in reversed(middleware):

        async def make_next(
            inner: RequestContext, _mw: Any = mw, _next: Next = handler
        ) -> Response:
            return await _mw(inner, _next)

        handler = make_next

    try:
        response = await handler(ctx)
    except NotFound:
        response = await not_found(ctx)
    except HTTPError as exc:
        response = handle_http_error(exc, ctx)
    except Exception as exc:
        response = handle_internal_error(exc, ctx, config.debug)

    for message in response.asgi_messages(head=request.method == "HEAD"):
        await send(message)
