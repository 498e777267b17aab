"""Built-in canopy template filters and globals.

Auto-registered on every site's kida Environment.
"""

import re
from urllib.parse import quote_plus

from kida.template import Markup

from canopy.pages.urls import default_error_redirect, error_redirect

HTML_VOID_ELEMENTS = frozenset(
    {
        "area", "base", "br", "col", "embed", "hr", "img", "input",
        "keygen", "link", "meta", "param", "source", "track", "wbr",
    }
)  # fmt: skip

_TAG_RE = re.compile(r"<(/?)([^\s/>]+)([^>]*)>")


def extract_html(html: str, extract_size: int) -> Markup:
    """Cut well-formed HTML down to *extract_size* characters of text.

    Tags do not count towards the size. When text is cut, ``...`` marks
    the cut and every element still open is closed, so the extract can
    be embedded in a page (blog post previews, feed summaries)::

        {{ post.html | extract_html(200) }}
    """
    parts: list[str] = []
    open_tags: list[str] = []
    remaining = extract_size
    pos = 0

    for match in _TAG_RE.finditer(html):
        text = html[pos : match.start()]
        if len(text) > remaining:
            parts.append(text[:remaining])
            parts.append("...")
            break
        parts.append(text)
        remaining -= len(text)
        parts.append(match.group(0))

        closing, name, rest = match.group(1), match.group(2).lower(), match.group(3)
        if closing:
            if name in open_tags:
                del open_tags[len(open_tags) - 1 - open_tags[::-1].index(name)]
        elif name not in HTML_VOID_ELEMENTS and not rest.rstrip().endswith("/"):
            open_tags.append(name)
        pos = match.end()
    else:
        text = html[pos:]
        if len(text) > remaining:
            parts.append(text[:remaining])
            parts.append("...")
        else:
            parts.append(text)

    parts.extend(f"</{name}>" for name in reversed(open_tags))
    return Markup("".join(parts))


def url_quote(value: object) -> str:
    """Quote a value for use inside a query string."""
    return quote_plus(str(value))


BUILTIN_FILTERS = {
    "extract_html": extract_html,
    "url_quote": url_quote,
}

BUILTIN_GLOBALS = {
    "default_error_redirect": default_error_redirect,
    "error_redirect": error_redirect,
}
