"""The per-request data bag and its helpers.

A data bag is a plain dict created for each templated request. The
site's default data adders fill it first (in registration order), then
the page's redirecter adds its own entries; the template receives the
result.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from canopy.context import RequestContext
    from canopy.http.request import Request

type DataBag = dict[str, Any]
type DataAdder = Callable[[DataBag, RequestContext], None | Awaitable[None]]
# (data, ctx) -> (template name, redirect target); exactly one is used
type TemplateRedirecter = Callable[
    [DataBag, RequestContext], tuple[str, str] | Awaitable[tuple[str, str]]
]
# ctx -> redirect target
type Redirecter = Callable[[RequestContext], str | Awaitable[str]]

# Keys filled by the built-in adders
ID_NAME = "Id"
LOGIN_NAME = "Login"
LANG_NAME = "lang"
ALL_LANG_NAME = "AllLang"
MESSAGES_NAME = "Messages"
CURRENT_URL_NAME = "CurrentUrl"
ERROR_MSG_NAME = "ErrorMsg"
SUB_PAGES_NAME = "SubPages"

# Keys used by feature widgets
REDIRECT_NAME = "Redirect"
BASE_URL_NAME = "BaseUrl"
USER_ID_NAME = "UserId"
ALLOWED_TO_CREATE_NAME = "AllowedToCreate"
ALLOWED_TO_UPDATE_NAME = "AllowedToUpdate"
ALLOWED_TO_DELETE_NAME = "AllowedToDelete"

# Pagination
FILTER_NAME = "Filter"
PREVIOUS_PAGE_NAME = "PreviousPageNumber"
NEXT_PAGE_NAME = "NextPageNumber"
TOTAL_NAME = "Total"


@dataclass(frozen=True, slots=True)
class Pagination:
    """Pagination state requested through the query string."""

    page_number: int
    start: int
    end: int
    filter: str


def get_pagination(default_page_size: int, request: Request) -> Pagination:
    """Read ``pageNumber``, ``pageSize`` and ``filter`` from the query.

    Missing, zero or malformed numbers fall back to page 1 and
    *default_page_size*.
    """
    page_number = request.query.get_int("pageNumber") or 1
    page_size = request.query.get_int("pageSize") or default_page_size
    start = (page_number - 1) * page_size
    return Pagination(
        page_number=page_number,
        start=start,
        end=start + page_size,
        filter=request.query.get("filter", ""),
    )


def init_pagination(data: DataBag, pagination: Pagination, total: int) -> None:
    """Store the navigation keys a paginated list template needs."""
    data[FILTER_NAME] = pagination.filter
    if pagination.page_number != 1:
        data[PREVIOUS_PAGE_NAME] = pagination.page_number - 1
    if pagination.end < total:
        data[NEXT_PAGE_NAME] = pagination.page_number + 1
    data[TOTAL_NAME] = total


def get_requested_user_id(ctx: RequestContext) -> int:
    """The ``UserId`` path parameter, 0 when absent or malformed.

    Parse failures are logged, never shown to the visitor; callers turn a
    0 into a technical error redirect.
    """
    raw = ctx.param(USER_ID_NAME)
    try:
        user_id = int(raw)
    except ValueError:
        ctx.logger.warning("Failed to parse userId from request: %r", raw)
        return 0
    if user_id < 0:
        ctx.logger.warning("Negative userId in request: %d", user_id)
        return 0
    return user_id
