"""Router scopes: the surface widgets register their handlers into.

A scope is a view on a shared ``Router`` rooted at a path prefix.
``group()`` derives a nested scope; this is how a page tree becomes a
route table: every page loads its widget into the scope of its parent
grouped by the page name.
"""

from __future__ import annotations

from canopy.routing.route import Handler, Route
from canopy.routing.router import Router


class RouterScope:
    """Register handlers under a path prefix.

    Usage::

        scope = RouterScope(router)
        blog = scope.group("/blog")
        blog.get("/", list_handler)            # GET /blog
        blog.get("/view/{id:int}", view)       # GET /blog/view/42
        blog.post("/save", save_handler)       # POST /blog/save
    """

    __slots__ = ("_prefix", "_router")

    def __init__(self, router: Router, prefix: str = "") -> None:
        self._router = router
        self._prefix = _join("", prefix)

    @property
    def prefix(self) -> str:
        return self._prefix or "/"

    @property
    def router(self) -> Router:
        return self._router

    def group(self, prefix: str) -> RouterScope:
        """A nested scope rooted at ``self.prefix + prefix``."""
        return RouterScope(self._router, _join(self._prefix, prefix))

    def handle(self, methods: str | list[str], path: str, handler: Handler) -> None:
        if isinstance(methods, str):
            methods = [methods]
        route_methods = frozenset(m.upper() for m in methods)
        self._router.add(Route(_join(self._prefix, path) or "/", handler, route_methods))

    def get(self, path: str, handler: Handler) -> None:
        self.handle("GET", path, handler)

    def post(self, path: str, handler: Handler) -> None:
        self.handle("POST", path, handler)


def _join(prefix: str, path: str) -> str:
    """Join two path fragments without doubled or trailing slashes."""
    path = path.strip("/")
    if not path:
        return prefix
    return f"{prefix}/{path}"
