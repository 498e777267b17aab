"""Middleware protocol and Next type alias.

No base class required. The server checks the shape, not the lineage.
"""

from collections.abc import Awaitable, Callable
from typing import Protocol

from canopy.context import RequestContext
from canopy.http.response import Response

# The next handler in the middleware chain
type Next = Callable[[RequestContext], Awaitable[Response]]


class Middleware(Protocol):
    """Protocol for canopy middleware.

    Accepts both functions and callable objects::

        async def timing(ctx: RequestContext, next: Next) -> Response:
            start = time.monotonic()
            response = await next(ctx)
            return response.with_header("X-Time", f"{time.monotonic() - start:.3f}")
    """

    async def __call__(self, ctx: RequestContext, next: Next) -> Response: ...
