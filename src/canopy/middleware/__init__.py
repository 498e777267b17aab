"""Middleware wrapping every request of a site.

A middleware is any callable matching::

    async def my_mw(ctx: RequestContext, next: Next) -> Response: ...
"""

from canopy.middleware.protocol import Middleware, Next
from canopy.middleware.sessions import Session, SessionMiddleware, get_user_id
from canopy.middleware.static import StaticFile, StaticFiles

__all__ = [
    "Middleware",
    "Next",
    "Session",
    "SessionMiddleware",
    "StaticFile",
    "StaticFiles",
    "get_user_id",
]
