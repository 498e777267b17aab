"""Immutable HTTP request.

Frozen metadata with async body access. The request is honest about
what it is: received data that doesn't change.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from typing import Any

from canopy._internal.asgi import Receive, Scope
from canopy.errors import HTTPError
from canopy.http.cookies import parse_cookies
from canopy.http.headers import Headers
from canopy.http.query import QueryParams

_FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


@dataclass(frozen=True, slots=True)
class Request:
    """An immutable HTTP request.

    Metadata is frozen at creation. The body is read asynchronously via
    ``.body()`` or ``.form()`` and cached, so the ASGI receive
    channel is consumed once.
    """

    method: str
    path: str
    headers: Headers
    query: QueryParams
    path_params: dict[str, str]
    cookies: Mapping[str, str]
    client: tuple[str, int] | None
    max_content_length: int | None

    _receive: Receive
    # dict contents stay mutable even though the field reference is frozen
    _cache: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @property
    def content_type(self) -> str | None:
        return self.headers.get("content-type")

    @property
    def url(self) -> str:
        """Path plus query string, as the client sent it."""
        if self.query.raw:
            return f"{self.path}?{self.query.raw.decode('latin-1')}"
        return self.path

    def with_path_params(self, path_params: dict[str, str]) -> Request:
        """Copy of this request carrying the router's path parameters."""
        return replace(self, path_params=path_params)

    async def body(self) -> bytes:
        if "body" in self._cache:
            return self._cache["body"]
        chunks: list[bytes] = []
        size = 0
        while True:
            message = await self._receive()
            chunk = message.get("body", b"")
            size += len(chunk)
            if self.max_content_length is not None and size > self.max_content_length:
                raise HTTPError(413, "Request body too large")
            chunks.append(chunk)
            if not message.get("more_body", False):
                break
        result = b"".join(chunks)
        self._cache["body"] = result
        return result

    async def form(self) -> QueryParams:
        """Parse a url-encoded body.

        Raises:
            HTTPError: 415 for any other content type.
        """
        if "form" in self._cache:
            return self._cache["form"]
        content_type = (self.content_type or _FORM_CONTENT_TYPE).split(";")[0].strip().lower()
        if content_type != _FORM_CONTENT_TYPE:
            raise HTTPError(415, f"Unsupported form encoding: {content_type}")
        result = QueryParams(await self.body())
        self._cache["form"] = result
        return result

    @classmethod
    def from_asgi(
        cls,
        scope: Scope,
        receive: Receive,
        *,
        max_content_length: int | None = None,
    ) -> Request:
        headers = Headers(scope.get("headers", ()))
        client = scope.get("client")
        return cls(
            method=scope["method"],
            path=scope["path"],
            headers=headers,
            query=QueryParams(scope.get("query_string", b"")),
            path_params={},
            cookies=parse_cookies(headers.get("cookie", "")),
            client=tuple(client) if client else None,
            max_content_length=max_content_length,
            _receive=receive,
        )
