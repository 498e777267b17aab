"""Static file serving middleware.

``StaticFiles`` serves a directory under a URL prefix (``/static``);
``StaticFile`` serves one file at one URL (the favicon, the per-language
flag pictures). Non-matching requests fall through to the next handler.
"""

import mimetypes
from pathlib import Path

from canopy.context import RequestContext
from canopy.http.response import Response
from canopy.middleware.protocol import Next


def _serve_file(file_path: Path, cache_control: str) -> Response:
    content_type, _ = mimetypes.guess_type(str(file_path))
    return Response(
        body=file_path.read_bytes(),
        content_type=content_type or "application/octet-stream",
    ).with_header("Cache-Control", cache_control)


class StaticFiles:
    """Serve files from a directory for paths under a prefix.

    Security: resolves symlinks and verifies the final path is within the
    configured directory to prevent path traversal.
    """

    __slots__ = ("_cache_control", "_directory", "_prefix")

    def __init__(
        self,
        directory: str | Path,
        prefix: str = "/static",
        *,
        cache_control: str = "public, max-age=3600",
    ) -> None:
        self._directory = Path(directory).resolve()
        self._prefix = "/" + prefix.strip("/")
        self._cache_control = cache_control

    async def __call__(self, ctx: RequestContext, next: Next) -> Response:
        request = ctx.request
        if request.method not in ("GET", "HEAD"):
            return await next(ctx)
        if not request.path.startswith(self._prefix + "/"):
            return await next(ctx)

        relative = request.path[len(self._prefix) :].lstrip("/")
        file_path = (self._directory / relative).resolve()
        if not file_path.is_relative_to(self._directory):
            return Response(body="Forbidden", status=403)
        if not file_path.is_file():
            return await next(ctx)
        return _serve_file(file_path, self._cache_control)


class StaticFile:
    """Serve a single file at an exact URL path."""

    __slots__ = ("_cache_control", "_file", "_url")

    def __init__(
        self,
        url: str,
        file: str | Path,
        *,
        cache_control: str = "public, max-age=86400",
    ) -> None:
        self._url = url
        self._file = Path(file).resolve()
        self._cache_control = cache_control

    async def __call__(self, ctx: RequestContext, next: Next) -> Response:
        if ctx.request.path != self._url or ctx.request.method not in ("GET", "HEAD"):
            return await next(ctx)
        if not self._file.is_file():
            return await next(ctx)
        return _serve_file(self._file, self._cache_control)
