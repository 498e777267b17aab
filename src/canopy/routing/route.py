"""Route and RouteMatch frozen dataclasses."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from canopy.context import RequestContext

# A request handler: receives the per-request context, returns a Response
type Handler = Callable[["RequestContext"], Awaitable[Any]]


@dataclass(frozen=True, slots=True)
class PathSegment:
    """A parsed segment of a route path.

    Static:  ``/users``       (is_param=False)
    Param:   ``/{id}``        (is_param=True, param_name="id")
    Typed:   ``/{id:int}``    (param_type="int")
    Rest:    ``/{file:path}`` (param_type="path", consumes the remainder)
    """

    value: str
    is_param: bool = False
    param_name: str | None = None
    param_type: str = "str"


@dataclass(frozen=True, slots=True)
class Route:
    """A registered route. Created while widgets load into the router."""

    path: str
    handler: Handler
    methods: frozenset[str]


@dataclass(frozen=True, slots=True)
class RouteMatch:
    """Result of a successful route match."""

    route: Route
    path_params: dict[str, str]
