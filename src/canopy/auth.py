"""Authorization collaborator.

The page core only needs one capability: ask whether a user may perform
an action on a permission group. Real deployments plug in a client for
their rights service; ``StaticAuthService`` keeps the rights in memory.
"""

import enum
import logging
from collections.abc import Awaitable, Mapping
from typing import Protocol

from canopy.errors import NOT_AUTHORIZED_KEY, ServiceError

logger = logging.getLogger("canopy.auth")

PUBLIC_GROUP_ID = 0
ADMIN_GROUP_ID = 1


class Action(enum.IntEnum):
    ACCESS = 0
    CREATE = 1
    UPDATE = 2
    DELETE = 3


class AuthService(Protocol):
    """Capability consumed by static pages and feature widgets.

    ``auth_query`` returns normally when access is granted and raises
    ``ServiceError`` otherwise (``NOT_AUTHORIZED_KEY`` for a denial, any
    other key for a backend failure). It may be sync or async; a plain
    ``def`` runs in a worker thread, so a blocking client only holds up
    the request waiting on it. Such a client enforces its own timeout.
    """

    def auth_query(
        self, user_id: int, group_id: int, action: Action
    ) -> None | Awaitable[None]: ...


class StaticAuthService:
    """In-memory rights table.

    Everybody may ``ACCESS`` the public group. Other rights come from
    ``rights``: ``{user_id: {group_id: {Action, ...}}}``. Users listed in
    ``admins`` are granted everything.

    Usage::

        auth = StaticAuthService(
            rights={7: {BLOG_GROUP_ID: {Action.ACCESS, Action.CREATE}}},
            admins={1},
        )
    """

    __slots__ = ("_admins", "_rights")

    def __init__(
        self,
        rights: Mapping[int, Mapping[int, set[Action] | frozenset[Action]]] | None = None,
        *,
        admins: set[int] | frozenset[int] = frozenset(),
    ) -> None:
        self._rights = {
            user_id: {group_id: frozenset(actions) for group_id, actions in groups.items()}
            for user_id, groups in (rights or {}).items()
        }
        self._admins = frozenset(admins)

    def auth_query(self, user_id: int, group_id: int, action: Action) -> None:
        if group_id == PUBLIC_GROUP_ID and action == Action.ACCESS:
            return
        if user_id in self._admins:
            return
        if action in self._rights.get(user_id, {}).get(group_id, frozenset()):
            return
        logger.debug(
            "Access denied", extra={"user_id": user_id, "group_id": group_id, "action": action.name}
        )
        raise ServiceError(NOT_AUTHORIZED_KEY)
