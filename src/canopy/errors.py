"""Canopy exception hierarchy.

Shared across the page tree, the router, the site and the handlers so
every module raises and catches the same types.
"""

import logging
from dataclasses import dataclass
from typing import NoReturn

NOT_AUTHORIZED_KEY = "ErrorNotAuthorized"
TECHNICAL_KEY = "ErrorTechnicalProblem"
UNKNOWN_USER_KEY = "ErrorUnknownUser"


class CanopyError(Exception):
    """Base for all canopy-specific errors."""


class ConfigurationError(CanopyError):
    """Raised when the site configuration or the page tree is invalid.

    Always surfaces during setup, before the first request is served.
    """


class ServiceError(CanopyError):
    """A failure reported by a backend collaborator.

    ``key`` is the identifying string used to look up the user-facing
    message (it ends up in the ``error`` query parameter of the redirect).
    """

    def __init__(self, key: str = TECHNICAL_KEY, detail: str = "") -> None:
        super().__init__(detail or key)
        self.key = key
        self.detail = detail


@dataclass(frozen=True, slots=True)
class HTTPError(CanopyError):
    """An error that maps directly to an HTTP status code."""

    status: int
    detail: str = ""
    headers: tuple[tuple[str, str], ...] = ()

    def __str__(self) -> str:
        if self.detail:
            return f"{self.status}: {self.detail}"
        return str(self.status)


class NotFound(HTTPError):  # noqa: N818
    """404: no route matched the request path."""

    def __init__(self, detail: str = "Not Found") -> None:
        super().__init__(status=404, detail=detail)


class MethodNotAllowed(HTTPError):  # noqa: N818
    """405: the path exists but not for this HTTP method."""

    def __init__(self, allowed: frozenset[str], detail: str = "") -> None:
        allow_value = ", ".join(sorted(allowed))
        super().__init__(
            status=405,
            detail=detail or f"Method not allowed. Allowed methods: {allow_value}",
            headers=(("Allow", allow_value),),
        )


def error_status(exc: Exception) -> int:
    """HTTP status for endpoints that answer with a bare status code.

    Not-authorized failures map to 403, everything else to 500.
    Templated pages never use this: they always redirect.
    """
    if isinstance(exc, ServiceError) and exc.key == NOT_AUTHORIZED_KEY:
        return 403
    return 500


def fatal(logger: logging.Logger, message: str, exc: BaseException | None = None) -> NoReturn:
    """Log a startup failure and terminate the process.

    A misconfigured site must never start accepting traffic.
    """
    logger.critical(message, exc_info=exc)
    raise SystemExit(1) from exc
