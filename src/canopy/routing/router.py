"""Trie-based router.

Routes are added while the page tree loads into a ``RouterScope`` and
the router is compiled before serving; matching then only reads the
trie, so concurrent requests need no locking.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from canopy.errors import ConfigurationError, MethodNotAllowed, NotFound
from canopy.routing.route import PathSegment, Route, RouteMatch

# Regex a captured segment must match, per converter name
CONVERTERS: dict[str, str] = {
    "str": r"[^/]+",
    "int": r"\d+",
    "path": r".+",
}


def parse_path(path: str) -> list[PathSegment]:
    """Parse a route path string into segments.

    Examples::

        "/"               -> []
        "/blog/view"      -> [PathSegment("blog"), PathSegment("view")]
        "/view/{id:int}"  -> [PathSegment("view"), PathSegment("{id:int}", is_param=True, ...)]
    """
    segments: list[PathSegment] = []
    for part in path.strip("/").split("/"):
        if not part:
            continue
        if part.startswith("{") and part.endswith("}"):
            param_name, _, param_type = part[1:-1].partition(":")
            param_type = param_type or "str"
            if param_type not in CONVERTERS:
                msg = f"Unknown converter {param_type!r} in route {path!r}"
                raise ConfigurationError(msg)
            segments.append(
                PathSegment(
                    value=part, is_param=True, param_name=param_name, param_type=param_type
                )
            )
        elif part.startswith("<") and part.endswith(">"):
            msg = f"Route {path!r} uses <param>; canopy expects {{param}}."
            raise ConfigurationError(msg)
        else:
            segments.append(PathSegment(value=part))
    return segments


@dataclass(slots=True)
class _TrieNode:
    children: dict[str, "_TrieNode"] = field(default_factory=dict)
    param_child: "_ParamEdge | None" = None
    catch_all: "_CatchAllEdge | None" = None
    routes_by_method: dict[str, Route] = field(default_factory=dict)


@dataclass(slots=True)
class _ParamEdge:
    param_name: str
    regex: re.Pattern[str]
    node: _TrieNode


@dataclass(slots=True)
class _CatchAllEdge:
    param_name: str
    routes_by_method: dict[str, Route]


class Router:
    """Compiled router with trie-based path matching.

    Usage::

        router = Router()
        router.add(Route("/blog/view/{id:int}", handler, frozenset({"GET"})))
        router.compile()
        match = router.match("GET", "/blog/view/42")
    """

    __slots__ = ("_compiled", "_root")

    def __init__(self) -> None:
        self._root = _TrieNode()
        self._compiled = False

    def add(self, route: Route) -> None:
        """Add a route. Registering the same method twice on a path is an error."""
        if self._compiled:
            msg = "Cannot add routes after compilation."
            raise RuntimeError(msg)

        node = self._root
        for seg in parse_path(route.path):
            if seg.param_type == "path":
                if node.catch_all is None:
                    node.catch_all = _CatchAllEdge(seg.param_name or "path", {})
                self._register(node.catch_all.routes_by_method, route)
                return
            if seg.is_param:
                if node.param_child is None:
                    node.param_child = _ParamEdge(
                        param_name=seg.param_name or "",
                        regex=re.compile(f"^{CONVERTERS[seg.param_type]}$"),
                        node=_TrieNode(),
                    )
                node = node.param_child.node
            else:
                node = node.children.setdefault(seg.value, _TrieNode())

        self._register(node.routes_by_method, route)

    @staticmethod
    def _register(routes_by_method: dict[str, Route], route: Route) -> None:
        for method in route.methods:
            if method in routes_by_method:
                msg = f"Duplicate route: {method} {route.path!r}"
                raise ConfigurationError(msg)
            routes_by_method[method] = route

    @property
    def routes(self) -> list[Route]:
        """Every registered route, depth-first."""
        seen: set[int] = set()
        result: list[Route] = []
        stack = [self._root]
        while stack:
            node = stack.pop()
            candidates = list(node.routes_by_method.values())
            if node.catch_all is not None:
                candidates.extend(node.catch_all.routes_by_method.values())
            for route in candidates:
                if id(route) not in seen:
                    seen.add(id(route))
                    result.append(route)
            if node.param_child is not None:
                stack.append(node.param_child.node)
            stack.extend(reversed(node.children.values()))
        return result

    def compile(self) -> None:
        """Freeze the router. No more routes can be added."""
        self._compiled = True

    def match(self, method: str, path: str) -> RouteMatch:
        """Match a request against the compiled routes.

        ``HEAD`` falls back to the ``GET`` handler.

        Raises:
            NotFound: no route matches the path.
            MethodNotAllowed: the path matches but not the method.
        """
        parts = [p for p in path.strip("/").split("/") if p]
        found = self._match_node(self._root, parts, 0, {})
        if found is None:
            raise NotFound(f"No route matches {method} {path!r}")

        routes_by_method, params = found
        route = routes_by_method.get(method)
        if route is None and method == "HEAD":
            route = routes_by_method.get("GET")
        if route is None:
            raise MethodNotAllowed(frozenset(routes_by_method))
        return RouteMatch(route=route, path_params=params)

    def _match_node(
        self,
        node: _TrieNode,
        parts: list[str],
        index: int,
        params: dict[str, str],
    ) -> tuple[dict[str, Route], dict[str, str]] | None:
        if index == len(parts):
            if node.routes_by_method:
                return node.routes_by_method, params
            return None

        part = parts[index]

        # Static children win over parameters, parameters over catch-alls
        child = node.children.get(part)
        if child is not None:
            found = self._match_node(child, parts, index + 1, params)
            if found is not None:
                return found

        edge = node.param_child
        if edge is not None and edge.regex.match(part):
            found = self._match_node(
                edge.node, parts, index + 1, {**params, edge.param_name: part}
            )
            if found is not None:
                return found

        if node.catch_all is not None:
            remaining = "/".join(parts[index:])
            return node.catch_all.routes_by_method, {
                **params,
                node.catch_all.param_name: remaining,
            }

        return None
