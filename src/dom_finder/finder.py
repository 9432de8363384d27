"""Compile schema trees into reusable extractors and run them over documents."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Iterable, Iterator, Mapping

import soupsieve

from dom_finder.config import DOM_FINDER_HTML_PARSER, INDEX_FIELD
from dom_finder.exceptions import ConfigError, EvaluationError, SelectorError
from dom_finder.extraction import extract_content
from dom_finder.pipeline import Pipeline, RegexCache, compile_pipeline
from dom_finder.sanitization import sanitize
from dom_finder.schemas import SchemaNode, compile_schema
from dom_finder.types import CastType, Extraction, SanitizePolicy
from dom_finder.value import Value, ValueKind

try:
    from bs4 import BeautifulSoup
    from bs4.element import Tag
except ImportError as exc:  # pragma: no cover - runtime dependency check
    raise RuntimeError(
        "BeautifulSoup4 is required for HTML parsing (pip install beautifulsoup4)."
    ) from exc

logger = logging.getLogger(__name__)

_INT_RE = re.compile(r"[+-]?[0-9]+")
_FLOAT_RE = re.compile(r"[+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")


@dataclass(frozen=True)
class _CompiledNode:
    """Ready-to-run counterpart of a SchemaNode."""

    name: str
    matcher: soupsieve.SoupSieve | None
    many: bool
    inherit: bool
    parent: bool
    enumerate: bool
    flatten: bool
    first_occurrence: bool
    remove_selection: bool
    extraction: Extraction | None
    sanitize_policy: SanitizePolicy
    cast: CastType
    pipeline: Pipeline
    children: tuple[_CompiledNode, ...]
    keys: tuple[str, ...]

    def evaluate(self, context: Tag) -> Value:
        if self.many:
            matches = self._select_all(context)
            return Value.array(
                self._evaluate_match(match, index if self.enumerate else None)
                for index, match in enumerate(matches)
            )
        match = self._select_one(context)
        if match is None:
            return Value.null()
        return self._evaluate_match(match)

    def _select_all(self, context: Tag) -> list[Tag]:
        if self.inherit:
            return [context]
        matches = self._require_matcher().select(context)
        if self.parent:
            return _unique_parents(matches)
        return matches

    def _select_one(self, context: Tag) -> Tag | None:
        if self.inherit:
            return context
        match = self._require_matcher().select_one(context)
        if match is not None and self.parent:
            return match.parent
        return match

    def _require_matcher(self) -> soupsieve.SoupSieve:
        if self.matcher is None:
            raise EvaluationError(f"`{self.name}`: compiled node has no matcher")
        return self.matcher

    def _evaluate_match(self, match: Tag, index: int | None = None) -> Value:
        content: str | None = None
        if self.extraction is not None:
            content = extract_content(match, self.extraction)
            if (
                content is not None
                and self.extraction.is_markup
                and self.sanitize_policy is not SanitizePolicy.NONE
            ):
                content = sanitize(content, self.sanitize_policy)

        # Detached before descending: children still see the intact subtree,
        # later siblings no longer see it in the document.
        if self.remove_selection and match.parent is not None:
            match.extract()
            logger.debug("Removed node <%s> matched by `%s`", match.name, self.name)

        if self.children:
            pairs = self._child_pairs(match)
            if index is not None:
                pairs.append((INDEX_FIELD, Value.from_int(index)))
            return Value.object(pairs)

        if content is None:
            return Value.null()
        return self._cast(self.pipeline.run(content))

    def _child_pairs(self, match: Tag) -> list[tuple[str, Value]]:
        pairs: list[tuple[str, Value]] = []
        for child in self.children:
            value = child.evaluate(match)
            if self.first_occurrence and not _has_content(value):
                continue
            pairs.extend(child._as_parent_pairs(value))
            if self.first_occurrence:
                return pairs
        if self.first_occurrence:
            # Nothing matched: keep the usual shape with every key Null.
            return [(key, Value.null()) for key in self.keys]
        return pairs

    def _as_parent_pairs(self, value: Value) -> list[tuple[str, Value]]:
        if not self.flatten:
            return [(self.name, value)]
        if value.kind is ValueKind.OBJECT:
            return list(value.data.items())
        return [(key, Value.null()) for key in self.keys]

    def _cast(self, content: str | None) -> Value:
        if content is None:
            return Value.null()
        if self.cast is CastType.STRING:
            return Value.from_str(content)
        if self.cast is CastType.BOOL:
            return Value.from_bool(content != "")
        text = content.strip()
        try:
            if self.cast is CastType.INT and _INT_RE.fullmatch(text):
                return Value.from_int(int(text))
            if self.cast is CastType.FLOAT and _FLOAT_RE.fullmatch(text):
                return Value.from_float(float(text))
        except ValueError:
            pass
        logger.debug("Cannot cast %r to %s for `%s`", content, self.cast.value, self.name)
        return Value.null()


def _has_content(value: Value) -> bool:
    if value.kind is ValueKind.OBJECT:
        return any(_has_content(item) for item in value.data.values())
    return not value.is_empty()


def _unique_parents(matches: Iterable[Tag]) -> list[Tag]:
    parents: list[Tag] = []
    seen: set[int] = set()
    for match in matches:
        parent = match.parent
        if parent is None or id(parent) in seen:
            continue
        seen.add(id(parent))
        parents.append(parent)
    return parents


def _compile_node(node: SchemaNode, cache: RegexCache, *, is_root: bool) -> _CompiledNode:
    matcher = None
    if node.selector:
        try:
            matcher = soupsieve.compile(node.selector)
        except soupsieve.SelectorSyntaxError as exc:
            raise SelectorError(
                f"`{node.name}`: invalid selector {node.selector!r}: {exc}"
            ) from exc

    # A root without a selector is anchored on the document itself.
    inherit = node.inherit or (is_root and matcher is None)
    if matcher is None and not inherit:
        raise ConfigError(f"`{node.name}`: matcher can be empty only if inherit is set to true")

    return _CompiledNode(
        name=node.name,
        matcher=matcher,
        many=node.many,
        inherit=inherit,
        parent=node.parent,
        enumerate=node.enumerate,
        flatten=node.flatten,
        first_occurrence=node.first_occurrence,
        remove_selection=node.remove_selection,
        extraction=node.extract,
        sanitize_policy=node.sanitize_policy,
        cast=node.cast,
        pipeline=compile_pipeline(node.pipeline, regex_cache=cache),
        children=tuple(_compile_node(child, cache, is_root=False) for child in node.children),
        keys=node.object_keys,
    )


class Finder:
    """A compiled, immutable extractor built from a schema tree.

    All selectors, pipelines and regex patterns are compiled once here, so a
    single instance can be shared and used from any number of threads with
    ``evaluate``. ``evaluate_document`` on a document shared between callers
    mutates it when the schema removes selections (see ``mutates_document``);
    callers must serialize such calls themselves.

    Example:
        >>> finder = Finder({
        ...     "name": "all_links",
        ...     "base_path": "html body a[href]",
        ...     "many": True,
        ...     "extract": "href",
        ... })
        >>> result = finder.evaluate('<html><body><a href="https://example.com">x</a></body></html>')
        >>> result.get("all_links.0").as_str()
        'https://example.com'
    """

    __slots__ = ("_schema", "_parser", "_regex_cache", "_root")

    def __init__(
        self,
        schema: SchemaNode | Mapping[str, Any] | str | bytes,
        *,
        parser: str | None = None,
    ) -> None:
        self._schema = compile_schema(schema)
        self._parser = parser or DOM_FINDER_HTML_PARSER
        self._regex_cache = RegexCache()
        self._root = _compile_node(self._schema, self._regex_cache, is_root=True)
        logger.debug(
            "Compiled finder `%s`: %d nodes, %d regex patterns",
            self._schema.name,
            sum(1 for _ in self._schema.iter_nodes()),
            len(self._regex_cache),
        )

    @property
    def name(self) -> str:
        return self._schema.name

    @property
    def schema(self) -> SchemaNode:
        return self._schema

    @property
    def parser(self) -> str:
        return self._parser

    @property
    def mutates_document(self) -> bool:
        return self._schema.mutates_document

    def evaluate(self, html: str | bytes) -> Value:
        """Parse ``html`` into a private document and extract from it.

        Removals requested by the schema only affect that private document.
        """
        document = BeautifulSoup(html, self._parser)
        return self.evaluate_document(document)

    def evaluate_document(self, document: Tag) -> Value:
        """Extract from a caller-owned bs4 document or element.

        Returns:
            An object with a single key, the root node's name.
        """
        if not isinstance(document, Tag):
            raise TypeError(
                f"expected a bs4 BeautifulSoup or Tag, got {type(document).__name__}"
            )
        return Value.object([(self._root.name, self._root.evaluate(document))])

    def evaluate_many(self, pages: Iterable[str | bytes]) -> Iterator[Value]:
        for page in pages:
            yield self.evaluate(page)

    def __repr__(self) -> str:
        return f"Finder(name={self.name!r}, parser={self._parser!r})"
