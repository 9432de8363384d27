"""Closed option sets used by schema nodes."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

_ATTR_PREFIX = "attr:"


class ExtractKind(str, Enum):
    """How string content is read from a matched node."""

    HTML = "html"
    INNER_HTML = "inner_html"
    TEXT = "text"
    INNER_TEXT = "inner_text"
    HREF = "href"
    ATTR = "attr"


class CastType(str, Enum):
    """Type a leaf's final string is coerced into."""

    STRING = "string"
    INT = "int"
    FLOAT = "float"
    BOOL = "bool"


class SanitizePolicy(str, Enum):
    """Predefined allow-list policies for markup content.

    highlight keeps inline emphasis elements (b, del, em, i, ins, mark, s,
    small, strong, u); list adds li/ul/ol/dl/dt/dd; table adds the table
    elements; common combines all three; none leaves markup untouched.
    """

    NONE = "none"
    HIGHLIGHT = "highlight"
    LIST = "list"
    TABLE = "table"
    COMMON = "common"


@dataclass(frozen=True)
class Extraction:
    """A parsed ``extract`` token."""

    kind: ExtractKind
    attribute: str | None = None

    @classmethod
    def parse(cls, token: str) -> Extraction:
        """Parse ``html``, ``inner_html``, ``text``, ``inner_text``, ``href`` or ``attr:<name>``."""
        token = token.strip()
        if token.startswith(_ATTR_PREFIX):
            attribute = token[len(_ATTR_PREFIX) :].strip()
            if not attribute:
                raise ValueError("`attr:` extract requires an attribute name")
            return cls(ExtractKind.ATTR, attribute)
        try:
            kind = ExtractKind(token)
        except ValueError:
            raise ValueError(f"unknown extract mode `{token}`") from None
        if kind is ExtractKind.ATTR:
            raise ValueError("use `attr:<name>` to extract an attribute")
        if kind is ExtractKind.HREF:
            return cls(kind, "href")
        return cls(kind)

    @property
    def is_markup(self) -> bool:
        return self.kind in (ExtractKind.HTML, ExtractKind.INNER_HTML)

    @property
    def token(self) -> str:
        if self.kind is ExtractKind.ATTR:
            return f"{_ATTR_PREFIX}{self.attribute}"
        return self.kind.value
