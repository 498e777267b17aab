"""Per-request context.

Every handler, data adder and template redirecter receives a
``RequestContext``: the request plus references to the services scoped
to it. Nothing is looked up from ambient globals, so testing a handler
is a matter of building a context value.

Thread safety:
    A context is created by the server handler for one request and is
    only ever touched by the task serving that request.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from canopy.http.request import Request

if TYPE_CHECKING:
    from canopy.middleware.sessions import Session
    from canopy.site import Site

_logger = logging.getLogger("canopy.request")


@dataclass(slots=True)
class RequestContext:
    """Request-scoped services threaded through every call.

    ``session`` is attached by ``SessionMiddleware``; before that (or on a
    site without sessions) it is an empty, unsaved session.
    """

    request: Request
    site: Site
    session: Session = field(default=None)  # type: ignore[assignment]
    logger: logging.LoggerAdapter[logging.Logger] = field(init=False)

    def __post_init__(self) -> None:
        if self.session is None:
            from canopy.middleware.sessions import Session

            self.session = Session()
        self.logger = logging.LoggerAdapter(
            _logger, {"method": self.request.method, "path": self.request.path}
        )

    @property
    def path_params(self) -> dict[str, str]:
        return self.request.path_params

    def param(self, name: str, default: str = "") -> str:
        """A path parameter captured by the router."""
        return self.request.path_params.get(name, default)

    def query(self, name: str, default: str = "") -> str:
        return self.request.query.get(name, default)

    async def form_value(self, name: str, default: str = "") -> str:
        """A field of the url-encoded POST body."""
        form = await self.request.form()
        return form.get(name, default)

    def render(self, template: str, data: dict[str, Any]) -> str:
        return self.site.render(template, data)
