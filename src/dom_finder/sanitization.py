"""Restrictive allow-list HTML sanitization policies."""

from __future__ import annotations

from dom_finder.config import DOM_FINDER_FRAGMENT_PARSER
from dom_finder.types import SanitizePolicy

try:
    from bs4 import BeautifulSoup
    from bs4.element import PreformattedString
except ImportError as exc:  # pragma: no cover - runtime dependency check
    raise RuntimeError(
        "BeautifulSoup4 is required for HTML parsing (pip install beautifulsoup4)."
    ) from exc


HIGHLIGHT_ELEMENTS = frozenset(
    {"b", "del", "em", "i", "ins", "mark", "s", "small", "strong", "u"}
)
LIST_ELEMENTS = frozenset({"li", "ul", "ol", "dl", "dt", "dd"})
TABLE_ELEMENTS = frozenset(
    {"table", "caption", "colgroup", "col", "th", "thead", "tbody", "tr", "td", "tfoot"}
)

# Dropped together with their content; everything else not allowed is unwrapped.
_DROPPED_ELEMENTS = frozenset({"script", "style", "noscript", "link", "meta", "template"})

_ALLOWED: dict[SanitizePolicy, frozenset[str]] = {
    SanitizePolicy.HIGHLIGHT: HIGHLIGHT_ELEMENTS,
    SanitizePolicy.LIST: HIGHLIGHT_ELEMENTS | LIST_ELEMENTS,
    SanitizePolicy.TABLE: HIGHLIGHT_ELEMENTS | TABLE_ELEMENTS,
    SanitizePolicy.COMMON: HIGHLIGHT_ELEMENTS | LIST_ELEMENTS | TABLE_ELEMENTS,
}


def allowed_elements(policy: SanitizePolicy) -> frozenset[str] | None:
    """Return the element names kept by ``policy`` (None means keep everything)."""
    return _ALLOWED.get(policy)


def sanitize(markup: str, policy: SanitizePolicy) -> str:
    """Clean an HTML fragment according to ``policy``.

    Elements outside the policy's allow-list are replaced by their content,
    script-like elements are removed with their content, and kept elements
    lose all of their attributes. Comments, processing instructions and other
    non-text strings are dropped. ``SanitizePolicy.NONE`` returns the markup
    untouched.
    """
    allowed = allowed_elements(policy)
    if allowed is None:
        return markup

    fragment = BeautifulSoup(markup, DOM_FINDER_FRAGMENT_PARSER)
    # Comments, processing instructions, CDATA and declarations never survive.
    for node in list(fragment.descendants):
        if isinstance(node, PreformattedString):
            node.extract()

    for tag in fragment.find_all(True):
        if tag.decomposed:
            continue
        if tag.name in _DROPPED_ELEMENTS:
            tag.decompose()
        elif tag.name in allowed:
            tag.attrs = {}
        else:
            tag.unwrap()
    return fragment.decode()
