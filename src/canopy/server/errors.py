"""Error handling for requests that escaped their handler.

Templated pages resolve their own failures into redirects and unknown
paths redirect to the 404 page; what reaches this module is the other
routing errors and bugs.
"""

import logging
import traceback

from canopy.context import RequestContext
from canopy.errors import HTTPError
from canopy.http.response import Response

logger = logging.getLogger("canopy.server")


def handle_http_error(exc: HTTPError, ctx: RequestContext) -> Response:
    """Answer with the status of the error."""
    request = ctx.request
    logger.debug("%d %s %s: %s", exc.status, request.method, request.path, exc.detail)
    response = Response(body=exc.detail or f"Error {exc.status}", status=exc.status)
    for name, value in exc.headers:
        response = response.with_header(name, value)
    return response


def handle_internal_error(exc: Exception, ctx: RequestContext, debug: bool) -> Response:
    """Log an unexpected exception and answer 500."""
    request = ctx.request
    logger.exception("500 %s %s", request.method, request.path)
    if debug:
        body = "".join(traceback.format_exception(exc))
        return Response(body=body, status=500, content_type="text/plain; charset=utf-8")
    return Response(body="Internal Server Error", status=500)
