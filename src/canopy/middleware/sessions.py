"""Session middleware: signed cookie sessions.

Session data is a flat ``str -> str`` mapping serialized as JSON and
signed with ``itsdangerous``. The session is attached to the
``RequestContext``; the cookie is re-issued only when the handler
changed something.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator

from itsdangerous import BadSignature, URLSafeTimedSerializer

from canopy.config import SessionConfig
from canopy.context import RequestContext
from canopy.errors import ConfigurationError
from canopy.http.cookies import session_cookie
from canopy.http.response import Response
from canopy.middleware.protocol import Next

logger = logging.getLogger("canopy.sessions")

USER_ID_KEY = "userId"
LOGIN_KEY = "login"


class Session:
    """A session mapping that remembers whether it was modified."""

    __slots__ = ("_data", "changed")

    def __init__(self, data: dict[str, str] | None = None, *, changed: bool = False) -> None:
        self._data: dict[str, str] = dict(data or {})
        self.changed = changed

    def load(self, key: str) -> str:
        """Value for *key*, ``""`` when absent."""
        return self._data.get(key, "")

    def store(self, key: str, value: str) -> None:
        if self._data.get(key) != value:
            self._data[key] = value
            self.changed = True

    def delete(self, key: str) -> None:
        if key in self._data:
            del self._data[key]
            self.changed = True

    def clear(self) -> None:
        if self._data:
            self._data.clear()
            self.changed = True

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def as_dict(self) -> dict[str, str]:
        return dict(self._data)


def get_user_id(ctx: RequestContext) -> int:
    """Id of the connected user, 0 for anonymous visitors."""
    raw = ctx.session.load(USER_ID_KEY)
    if not raw:
        return 0
    try:
        return int(raw)
    except ValueError:
        ctx.logger.warning("Failed to parse userId from session: %r", raw)
        return 0


class SessionMiddleware:
    """Signed cookie session middleware.

    Usage::

        site.add_middleware(SessionMiddleware(SessionConfig(secret_key="...")))

        # In a handler or data adder:
        ctx.session.store("userId", "42")
    """

    __slots__ = ("_config", "_serializer")

    def __init__(self, config: SessionConfig) -> None:
        if not config.secret_key:
            msg = "SessionConfig.secret_key must not be empty."
            raise ConfigurationError(msg)
        self._config = config
        self._serializer = URLSafeTimedSerializer(config.secret_key, salt="canopy.session")

    def _load(self, ctx: RequestContext) -> Session:
        cookie_value = ctx.request.cookies.get(self._config.cookie_name)
        if not cookie_value:
            return Session()
        try:
            data = self._serializer.loads(cookie_value, max_age=self._config.max_age)
        except BadSignature:
            logger.warning("Discarding session cookie with a bad or expired signature")
            return Session(changed=True)
        if not isinstance(data, dict):
            return Session(changed=True)
        return Session({str(k): str(v) for k, v in data.items()})

    def _save(self, response: Response, session: Session) -> Response:
        signed = self._serializer.dumps(session.as_dict())
        return response.with_cookie(session_cookie(self._config, signed))

    async def __call__(self, ctx: RequestContext, next: Next) -> Response:
        session = self._load(ctx)
        ctx.session = session
        response = await next(ctx)
        if session.changed:
            return self._save(response, session)
        return response
