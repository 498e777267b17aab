"""Serve a live site with pounce.

Pounce's ``run()`` takes an import string (``"myapp:site"``) but a site
is a live object, so ``pounce.Server`` is used directly with the ASGI
callable.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from pounce.config import ServerConfig
from pounce.server import Server

if TYPE_CHECKING:
    from canopy.site import Site

logger = logging.getLogger("canopy.server")


def create_server(site: Site, host: str | None = None, port: int | None = None) -> Server:
    """A pounce server bound to the address of *site* (or the overrides)."""
    config = site.config
    server_config = ServerConfig(
        host=host or config.host,
        port=port or config.bind_port,
        workers=config.workers,
        reload=False,
        log_format=config.log_format,
        log_level=config.log_level,
    )
    return Server(server_config, site)


def run_server(site: Site, host: str | None = None, port: int | None = None) -> None:
    """Block serving *site* until the server stops."""
    server = create_server(site, host, port)
    logger.info("Serving on %s:%s", host or site.config.host, port or site.config.bind_port)
    server.run()
