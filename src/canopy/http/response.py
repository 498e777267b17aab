"""Responses returned by handlers and middleware.

A ``Response`` is a frozen value: ``with_header`` and ``with_cookie``
return a modified copy, so a middleware can decorate what the handler
produced without touching it.
"""

from __future__ import annotations

from dataclasses import dataclass, replace

from canopy.http.cookies import SetCookie

# No body is sent with these, whatever the handler put in ``body``.
_BODILESS_STATUSES = frozenset({204, 304})


@dataclass(frozen=True, slots=True)
class Response:
    body: str | bytes = ""
    status: int = 200
    content_type: str = "text/html; charset=utf-8"
    headers: tuple[tuple[str, str], ...] = ()
    cookies: tuple[SetCookie, ...] = ()

    def with_header(self, name: str, value: str) -> Response:
        return replace(self, headers=(*self.headers, (name, value)))

    def with_cookie(self, cookie: SetCookie) -> Response:
        return replace(self, cookies=(*self.cookies, cookie))

    def header(self, name: str, default: str | None = None) -> str | None:
        """First value of header *name*, compared case-insensitively."""
        wanted = name.lower()
        return next((value for key, value in self.headers if key.lower() == wanted), default)

    @property
    def location(self) -> str | None:
        return self.header("Location")

    @property
    def body_bytes(self) -> bytes:
        return self.body.encode("utf-8") if isinstance(self.body, str) else self.body

    @property
    def text(self) -> str:
        return self.body.decode("utf-8") if isinstance(self.body, bytes) else self.body

    def asgi_messages(self, *, head: bool = False) -> tuple[dict, dict]:
        """The ``http.response.start`` and ``http.response.body`` messages.

        ``content-length`` is the length of the body a GET would get, even
        for a HEAD request whose body is left out.
        """
        body = b"" if self.status in _BODILESS_STATUSES else self.body_bytes
        raw_headers = [(b"content-type", self.content_type.encode("latin-1"))]
        raw_headers += [
            (name.lower().encode("latin-1"), value.encode("latin-1"))
            for name, value in self.headers
        ]
        raw_headers += [
            (b"set-cookie", cookie.to_header_value().encode("latin-1")) for cookie in self.cookies
        ]
        raw_headers.append((b"content-length", str(len(body)).encode("latin-1")))
        start = {"type": "http.response.start", "status": self.status, "headers": raw_headers}
        return start, {"type": "http.response.body", "body": b"" if head else body}


def Redirect(url: str) -> Response:  # noqa: N802
    """302 to *url*, the only redirect status a site sends."""
    return Response(status=302).with_header("Location", url)
