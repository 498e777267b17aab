"""Page tree, static pages and the handler factories widgets build on.

Usage::

    from canopy.pages import create_template, make_page, make_static_page

    root.add_sub_page(make_static_page("about", PUBLIC_GROUP_ID, "about.html"))
"""

from canopy.pages.discovery import add_static_pages_from_folder
from canopy.pages.handlers import create_redirect, create_redirect_string, create_template
from canopy.pages.page import (
    Page,
    StaticWidget,
    Widget,
    localized_template,
    make_hidden_page,
    make_hidden_static_page,
    make_page,
    make_static_page,
)
from canopy.pages.urls import (
    check_target,
    default_error_redirect,
    error_redirect,
    get_base_url,
    get_current_url,
    is_safe_url,
)

__all__ = [
    "Page",
    "StaticWidget",
    "Widget",
    "add_static_pages_from_folder",
    "check_target",
    "create_redirect",
    "create_redirect_string",
    "create_template",
    "default_error_redirect",
    "error_redirect",
    "get_base_url",
    "get_current_url",
    "is_safe_url",
    "localized_template",
    "make_hidden_page",
    "make_hidden_static_page",
    "make_page",
    "make_static_page",
]
