"""URL algebra for building links and redirect targets.

Feature widgets compute ancestor URLs relative to the current request
("two levels up from here") instead of hardcoding absolute paths, so a
widget keeps working wherever it is mounted in the page tree.
"""

from urllib.parse import quote_plus

from canopy.http.request import Request

DEFAULT_TARGET = "/"
ERROR_PARAM = "error"


def get_current_url(request: Request) -> str:
    """The request path, always ending with ``/``."""
    path = request.path
    if not path.endswith("/"):
        path += "/"
    return path


def get_base_url(levels_to_erase: int, request: Request) -> str:
    """Erase *levels_to_erase* trailing segments from the current URL.

    On ``/blog/view/42``: level 0 gives ``/blog/view/42/``, level 1
    ``/blog/view/``, level 2 ``/blog/``. Asking for more levels than the
    path has gives the site root.
    """
    if levels_to_erase < 0:
        msg = f"levels_to_erase must be >= 0, got {levels_to_erase}"
        raise ValueError(msg)
    url = get_current_url(request)
    end = len(url) - 1
    for _ in range(levels_to_erase):
        end = url.rfind("/", 0, end)
        if end <= 0:
            return DEFAULT_TARGET
    return url[: end + 1]


def check_target(target: str) -> str:
    """Never redirect to an empty ``Location``."""
    return target or DEFAULT_TARGET


def error_redirect(target: str, error_key: str) -> str:
    """Append the ``error`` query parameter to *target*."""
    separator = "&" if "?" in target else "?"
    return f"{check_target(target)}{separator}{ERROR_PARAM}={quote_plus(error_key)}"


def default_error_redirect(error_key: str) -> str:
    """User-facing destination for a failure identified by *error_key*."""
    return error_redirect(DEFAULT_TARGET, error_key)


def is_safe_url(url: str) -> bool:
    """Whether *url* is a same-origin relative path (no open redirect).

    ``/settings/edit`` is safe; ``//evil.com`` and ``https://evil.com``
    are not.
    """
    return url.startswith("/") and not url.startswith("//") and "://" not in url
