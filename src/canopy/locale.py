"""Locale manager.

Decides the language of each request (cookie first, then the
``Accept-Language`` header, then the site default), validates language
codes coming from users, and serves the translated messages templates
display.

Messages live in ``messages_<lang>.properties`` files::

    # comments and blank lines are ignored
    ErrorNotAuthorized=You are not allowed to see this page.
    HomeTitle=Welcome
"""

import logging
from collections.abc import Mapping
from pathlib import Path
from types import MappingProxyType

from canopy.config import LocalesConfig
from canopy.errors import fatal
from canopy.http.cookies import lang_cookie
from canopy.http.request import Request
from canopy.http.response import Response

logger = logging.getLogger("canopy.locale")


def parse_properties(text: str) -> dict[str, str]:
    """Parse ``key=value`` lines."""
    result: dict[str, str] = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith(("#", "!")):
            continue
        key, sep, value = line.partition("=")
        if sep:
            result[key.strip()] = value.strip()
    return result


def load_messages(directory: str | Path, all_lang: tuple[str, ...]) -> dict[str, dict[str, str]]:
    """Read one ``messages_<lang>.properties`` file per language.

    Raises:
        OSError: a file is missing or unreadable.
    """
    base = Path(directory)
    return {
        lang: parse_properties((base / f"messages_{lang}.properties").read_text(encoding="utf-8"))
        for lang in all_lang
    }


def _accepted_langs(header: str) -> list[str]:
    """Language prefixes of an ``Accept-Language`` header, best first."""
    weighted: list[tuple[float, int, str]] = []
    for position, item in enumerate(header.split(",")):
        tag, _, params = item.strip().partition(";")
        if not tag or tag == "*":
            continue
        quality = 1.0
        params = params.strip()
        if params.startswith("q="):
            try:
                quality = float(params[2:])
            except ValueError:
                continue
        weighted.append((-quality, position, tag.split("-")[0].lower()))
    return [lang for _, _, lang in sorted(weighted)]


class LocalesManager:
    """Language selection and translated messages for one site.

    Read-only after construction, safe to share between requests.
    """

    __slots__ = ("_all_lang", "_config", "_messages")

    def __init__(
        self,
        config: LocalesConfig,
        messages: Mapping[str, Mapping[str, str]] | None = None,
    ) -> None:
        if not config.all_lang:
            fatal(logger, "LocalesConfig.all_lang must list at least one language")
        self._config = config
        self._all_lang = frozenset(config.all_lang)

        if messages is None and config.messages_dir is not None:
            try:
                messages = load_messages(config.messages_dir, config.all_lang)
            except OSError as exc:
                fatal(logger, f"Failed to load messages from {config.messages_dir}", exc)

        default_messages = dict((messages or {}).get(config.default_lang, {}))
        self._messages = {
            lang: MappingProxyType({**default_messages, **(messages or {}).get(lang, {})})
            for lang in config.all_lang
        }

    @property
    def default_lang(self) -> str:
        return self._config.default_lang

    @property
    def all_lang(self) -> tuple[str, ...]:
        return self._config.all_lang

    @property
    def multiple_lang(self) -> bool:
        return len(self._config.all_lang) > 1

    @property
    def cookie_name(self) -> str:
        return self._config.cookie_name

    def check_lang(self, candidate: str) -> str:
        """*candidate* when it is a served language, the default otherwise."""
        if candidate in self._all_lang:
            return candidate
        return self.default_lang

    def get_lang(self, request: Request) -> str:
        """Language of a request: cookie, then ``Accept-Language``, then default."""
        from_cookie = request.cookies.get(self._config.cookie_name, "")
        if from_cookie in self._all_lang:
            return from_cookie
        for lang in _accepted_langs(request.headers.get("accept-language", "")):
            if lang in self._all_lang:
                return lang
        return self.default_lang

    def set_lang_cookie(self, lang: str, response: Response) -> Response:
        """Remember a (validated) language choice on the client."""
        return response.with_cookie(lang_cookie(self._config, self.check_lang(lang)))

    def messages(self, lang: str) -> Mapping[str, str]:
        """Translated messages, falling back to the default language per key."""
        return self._messages[self.check_lang(lang)]

    def translate(self, lang: str, key: str) -> str:
        return self.messages(lang).get(key, key)
