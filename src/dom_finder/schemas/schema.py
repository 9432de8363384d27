"""Schema tree models."""

from __future__ import annotations

import json
from typing import Any, Iterator, Mapping

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_serializer,
    field_validator,
    model_validator,
)

from dom_finder.config import INDEX_FIELD
from dom_finder.exceptions import ConfigError
from dom_finder.pipeline import compile_pipeline
from dom_finder.types import CastType, Extraction, SanitizePolicy


class SchemaNode(BaseModel):
    """A named selection rule and its nested rules.

    A node without children is a leaf and must say what to ``extract``; a node
    with children is a container and produces an object keyed by child name.
    Every node except the root needs a selector unless it ``inherit``s its
    parent's matched node.

    Attributes:
        name: Key of this node's value in the parent object.
        selector: CSS selector resolved against the context node
            (``base_path`` in raw schemas).
        many: Process every match and produce an array instead of only the
            first match.
        extract: What string content to read from the matched node.
        cast: Type the leaf's final string is coerced into.
        sanitize_policy: Policy applied to markup extracted with ``html`` or
            ``inner_html``.
        remove_selection: Detach matched nodes from the document once their
            content has been captured.
        inherit: Use the context node itself instead of selecting.
        parent: Use the parent of the matched node.
        enumerate: Add an ``index`` field to each object of a ``many``
            container.
        flatten: Merge this container's keys into the parent object instead
            of nesting them under ``name``.
        first_occurrence: Keep only the first child that yields content.
        pipeline: ``[procedure, arg...]`` entries applied left to right.
        children: Nested rules, evaluated in order.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(..., min_length=1)
    selector: str = Field(
        default="",
        validation_alias=AliasChoices("base_path", "selector"),
        serialization_alias="base_path",
    )
    many: bool = False
    extract: Extraction | None = None
    cast: CastType = CastType.STRING
    sanitize_policy: SanitizePolicy = SanitizePolicy.NONE
    remove_selection: bool = False
    inherit: bool = False
    parent: bool = False
    enumerate: bool = False
    flatten: bool = False
    first_occurrence: bool = False
    pipeline: tuple[tuple[str, ...], ...] = ()
    children: tuple["SchemaNode", ...] = ()

    @field_validator("selector", mode="before")
    @classmethod
    def _strip_selector(cls, value: Any) -> Any:
        if value is None:
            return ""
        if isinstance(value, str):
            return value.strip()
        return value

    @field_validator("extract", mode="before")
    @classmethod
    def _parse_extract(cls, value: Any) -> Any:
        if value is None or value == "":
            return None
        if isinstance(value, str):
            return Extraction.parse(value)
        return value

    @field_serializer("extract")
    def _serialize_extract(self, value: Extraction | None) -> str | None:
        return value.token if value is not None else None

    @model_validator(mode="after")
    def _check_node(self) -> SchemaNode:
        if self.children:
            if self.extract is not None or self.pipeline:
                raise ValueError(
                    f"`{self.name}`: it is only possible to use either 'extract' or 'children' options"
                )
            if self.cast is not CastType.STRING or self.sanitize_policy is not SanitizePolicy.NONE:
                raise ValueError(f"`{self.name}`: 'cast' and 'sanitize_policy' apply to leaf nodes only")
        elif self.extract is None:
            raise ValueError(f"`{self.name}`: a leaf node requires the 'extract' option")

        if self.inherit and (self.selector or self.parent):
            raise ValueError(f"`{self.name}`: 'inherit' excludes 'base_path' and 'parent'")

        if self.flatten and (self.many or not self.children):
            raise ValueError(f"`{self.name}`: 'flatten' requires 'children' without 'many'")
        if self.first_occurrence and not self.children:
            raise ValueError(f"`{self.name}`: 'first_occurrence' requires 'children'")

        seen: set[str] = set()
        for child in self.children:
            if not child.selector and not child.inherit:
                raise ValueError(f"`{child.name}`: the required `base_path` field is missing")
            for key in child.parent_keys:
                # Only one child survives under first_occurrence, so they may share keys.
                if key in seen and not self.first_occurrence:
                    raise ValueError(f"`{self.name}`: duplicate child name `{key}`")
                seen.add(key)

        if self.enumerate:
            if not (self.many and self.children):
                raise ValueError(f"`{self.name}`: 'enumerate' requires 'many' and 'children'")
            if INDEX_FIELD in seen:
                raise ValueError(f"`{self.name}`: child name `{INDEX_FIELD}` is reserved by 'enumerate'")

        # Only validates: every Finder compiles its patterns again into its own cache.
        compile_pipeline(self.pipeline)
        return self

    @property
    def is_leaf(self) -> bool:
        return not self.children

    @property
    def object_keys(self) -> tuple[str, ...]:
        """Keys this container's objects can hold, flattened children included."""
        keys = (key for child in self.children for key in child.parent_keys)
        return tuple(dict.fromkeys(keys))

    @property
    def parent_keys(self) -> tuple[str, ...]:
        """Keys this node contributes to its parent's object."""
        return self.object_keys if self.flatten else (self.name,)

    @property
    def mutates_document(self) -> bool:
        """True when any node of the tree removes its matches from the document."""
        return any(node.remove_selection for node in self.iter_nodes())

    def iter_nodes(self) -> Iterator[SchemaNode]:
        """Yield this node and all descendants depth-first, in schema order."""
        yield self
        for child in self.children:
            yield from child.iter_nodes()

    def to_raw(self) -> dict[str, Any]:
        """Dump to the raw mapping form accepted by ``compile_schema``."""
        return self.model_dump(mode="json", by_alias=True, exclude_defaults=True)


def validate_root(node: SchemaNode) -> SchemaNode:
    """Check the rules that only apply to the root of a tree."""
    if node.inherit or node.parent:
        raise ConfigError(f"`{node.name}`: the root node cannot use 'inherit' or 'parent'")
    if node.flatten:
        raise ConfigError(f"`{node.name}`: the root node cannot use 'flatten'")
    return node


def compile_schema(raw: SchemaNode | Mapping[str, Any] | str | bytes) -> SchemaNode:
    """Validate a raw schema into an immutable SchemaNode tree.

    Args:
        raw: A SchemaNode, a mapping in the raw schema shape, or JSON text.

    Returns:
        The validated root node.

    Raises:
        ConfigError: If any node of the tree is invalid. Nothing partially
            validated is ever returned.
    """
    if isinstance(raw, SchemaNode):
        return validate_root(raw)
    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ConfigError(f"invalid schema JSON: {exc}") from exc
    try:
        node = SchemaNode.model_validate(raw)
    except ValidationError as exc:
        raise ConfigError(_format_validation_error(exc)) from exc
    return validate_root(node)


def _format_validation_error(exc: ValidationError) -> str:
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"])
        message = error["msg"]
        messages.append(f"{location}: {message}" if location else message)
    return "invalid schema: " + "; ".join(messages)
