"""Canopy: page-tree web sites served with pounce and rendered by kida.

A site is a tree of named pages. Every page owns a widget that registers
its handlers under the page's path; static pages render a localized
template behind an access check, and can be discovered from the
template folder.

Basic usage::

    from canopy import PUBLIC_GROUP_ID, Site, SiteConfig

    site = Site(SiteConfig(secret_key="s3cr3t"))
    site.add_static_pages_from_folder(PUBLIC_GROUP_ID)
    site.run()
"""

__version__ = "0.1.0-dev"
__all__ = [
    "ADMIN_GROUP_ID",
    "PUBLIC_GROUP_ID",
    "Action",
    "CanopyError",
    "ConfigurationError",
    "HTTPError",
    "LocalesConfig",
    "LocalesManager",
    "MethodNotAllowed",
    "NotFound",
    "Page",
    "Redirect",
    "Request",
    "RequestContext",
    "Response",
    "ServiceError",
    "SessionConfig",
    "Site",
    "SiteAndConfig",
    "SiteConfig",
    "StaticAuthService",
    "StaticWidget",
    "run_sites",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import canopy`` fast while providing a clean top-level API.
    """
    if name in ("Site", "SiteAndConfig", "run_sites"):
        from canopy import site as _site

        return getattr(_site, name)

    if name in ("SiteConfig", "SessionConfig", "LocalesConfig"):
        from canopy import config as _config

        return getattr(_config, name)

    if name == "Request":
        from canopy.http.request import Request

        return Request

    if name in ("Response", "Redirect"):
        from canopy.http import response as _resp

        return getattr(_resp, name)

    if name == "RequestContext":
        from canopy.context import RequestContext

        return RequestContext

    if name in ("Page", "StaticWidget"):
        from canopy.pages import page as _page

        return getattr(_page, name)

    if name in ("Action", "ADMIN_GROUP_ID", "PUBLIC_GROUP_ID", "StaticAuthService"):
        from canopy import auth as _auth

        return getattr(_auth, name)

    if name == "LocalesManager":
        from canopy.locale import LocalesManager

        return LocalesManager

    if name in (
        "CanopyError",
        "ConfigurationError",
        "HTTPError",
        "MethodNotAllowed",
        "NotFound",
        "ServiceError",
    ):
        from canopy import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
