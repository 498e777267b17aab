"""Routing: the route table a page tree compiles into.

Widgets register handlers into a ``RouterScope``; the scopes share one
``Router`` which is frozen before the site serves its first request.
"""

from canopy.routing.route import Route, RouteMatch
from canopy.routing.router import Router
from canopy.routing.scope import RouterScope

__all__ = ["Route", "RouteMatch", "Router", "RouterScope"]
