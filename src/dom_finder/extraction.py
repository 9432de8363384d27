"""Read string content from matched document nodes."""

from __future__ import annotations

from dom_finder.types import ExtractKind, Extraction

try:
    from bs4.element import NavigableString, PreformattedString, Tag
except ImportError as exc:  # pragma: no cover - runtime dependency check
    raise RuntimeError(
        "BeautifulSoup4 is required for HTML parsing (pip install beautifulsoup4)."
    ) from exc


def extract_content(node: Tag, extraction: Extraction) -> str | None:
    """Return the content selected by ``extraction`` or None when absent."""
    kind = extraction.kind
    if kind is ExtractKind.HTML:
        return node.decode()
    if kind is ExtractKind.INNER_HTML:
        return node.decode_contents()
    if kind is ExtractKind.TEXT:
        return node.get_text()
    if kind is ExtractKind.INNER_TEXT:
        return immediate_text(node)
    if kind in (ExtractKind.HREF, ExtractKind.ATTR):
        return attribute_value(node, extraction.attribute or "")
    raise AssertionError(f"unhandled extract kind {kind!r}")


def immediate_text(node: Tag) -> str:
    """Concatenate the node's own text children, skipping descendants and comments."""
    return "".join(
        str(child)
        for child in node.children
        if isinstance(child, NavigableString) and not isinstance(child, PreformattedString)
    )


def attribute_value(node: Tag, name: str) -> str | None:
    value = node.get(name)
    if value is None:
        return None
    # bs4 splits multi-valued attributes such as class and rel into lists.
    if isinstance(value, list):
        return " ".join(value)
    return str(value)
