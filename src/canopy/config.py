"""Site configuration.

All configuration objects are frozen dataclasses, immutable after
creation, IDE-autocompletable, no string-key dict lookups.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path


@dataclass(frozen=True, slots=True)
class SessionConfig:
    """Signed cookie session configuration.

    ``secret_key`` is required: sessions are signed, not encrypted.
    """

    secret_key: str
    cookie_name: str = "canopy_session"
    max_age: int = 1200  # 20 minutes, refreshed on every change
    path: str = "/"
    domain: str | None = None
    secure: bool = False
    httponly: bool = True
    samesite: str = "lax"


@dataclass(frozen=True, slots=True)
class LocalesConfig:
    """Languages served by a site.

    The first entry of ``all_lang`` is the default language.
    """

    all_lang: tuple[str, ...] = ("en",)
    messages_dir: str | Path | None = None
    cookie_name: str = "lang"
    cookie_max_age: int = 365 * 24 * 3600
    cookie_path: str = "/"
    cookie_domain: str | None = None

    @property
    def default_lang(self) -> str:
        return self.all_lang[0]


@dataclass(frozen=True, slots=True)
class SiteConfig:
    """Configuration of one served site. Immutable after creation.

    All fields have sensible defaults except ``secret_key``, which must be
    set before sessions can be signed::

        config = SiteConfig(port=8080, secret_key="s3cr3t")
    """

    # Server
    host: str = "127.0.0.1"
    port: int | str = 8080
    debug: bool = False
    workers: int = 1
    log_format: str = "text"
    log_level: str = "info"

    # Security
    secret_key: str = ""

    # Templates
    template_dir: str | Path = "templates"
    template_ext: str = ".html"
    autoescape: bool = True
    trim_blocks: bool = True
    lstrip_blocks: bool = True

    # Static files
    static_dir: str | Path | None = "static"
    static_url: str = "/static"
    favicon_path: str | Path | None = None
    lang_picture_paths: Mapping[str, str | Path] = field(default_factory=dict)

    # Routing
    page_404_url: str = "/"

    # Limits
    max_content_length: int = 8 * 1024 * 1024  # 8 MB

    # Collaborator configuration
    locales: LocalesConfig = field(default_factory=LocalesConfig)
    session: SessionConfig | None = None

    def session_config(self) -> SessionConfig:
        """Session settings, derived from ``secret_key`` when not given."""
        if self.session is not None:
            return self.session
        return SessionConfig(secret_key=self.secret_key)

    @property
    def bind_port(self) -> int:
        return check_port(self.port)


def check_port(port: int | str) -> int:
    """Normalize a port given as ``8080``, ``"8080"`` or ``":8080"``."""
    if isinstance(port, int):
        return port
    return int(port.lstrip(":"))
