"""The two cookies a site sets: the language choice and the session.

``parse_cookies`` is the read side used by ``Request``. ``lang_cookie``
and ``session_cookie`` build the ``Set-Cookie`` directives attached to a
``Response`` from the matching configuration.
"""

from dataclasses import dataclass

from canopy.config import LocalesConfig, SessionConfig


def parse_cookies(header: str) -> dict[str, str]:
    """``Cookie`` header -> ``{name: value}``; pairs without ``=`` are dropped."""
    cookies: dict[str, str] = {}
    for pair in header.split(";"):
        key, sep, value = pair.strip().partition("=")
        if sep:
            cookies[key.strip()] = value.strip()
    return cookies


@dataclass(frozen=True, slots=True)
class SetCookie:
    name: str
    value: str
    max_age: int
    path: str = "/"
    domain: str | None = None
    secure: bool = False
    httponly: bool = True
    samesite: str = "lax"

    def to_header_value(self) -> str:
        attributes = [f"{self.name}={self.value}", f"Max-Age={self.max_age}", f"Path={self.path}"]
        if self.domain:
            attributes.append(f"Domain={self.domain}")
        if self.secure:
            attributes.append("Secure")
        if self.httponly:
            attributes.append("HttpOnly")
        attributes.append(f"SameSite={self.samesite}")
        return "; ".join(attributes)


def lang_cookie(config: LocalesConfig, lang: str) -> SetCookie:
    """Remember *lang* on the client."""
    return SetCookie(
        name=config.cookie_name,
        value=lang,
        max_age=config.cookie_max_age,
        path=config.cookie_path,
        domain=config.cookie_domain,
    )


def session_cookie(config: SessionConfig, signed_value: str) -> SetCookie:
    return SetCookie(
        name=config.cookie_name,
        value=signed_value,
        max_age=config.max_age,
        path=config.path,
        domain=config.domain,
        secure=config.secure,
        httponly=config.httponly,
        samesite=config.samesite,
    )
