"""Generic structured values produced by a Finder, plus path resolution."""

from __future__ import annotations

import json
import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Mapping

from dom_finder.config import LENGTH_MARKER, PATH_ESCAPE, PATH_SEPARATOR

INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1


class ValueKind(str, Enum):
    """Variant tag of a Value."""

    NULL = "null"
    BOOL = "bool"
    INT = "int"
    FLOAT = "float"
    STRING = "string"
    ARRAY = "array"
    OBJECT = "object"


@dataclass(frozen=True)
class Value:
    """A tagged, immutable result value.

    Arrays hold a tuple of ``Value`` and objects an insertion-ordered dict of
    ``str -> Value``. Build instances through the constructors below rather
    than the dataclass initializer so the payload always matches the kind.

    Attributes:
        kind: The variant of this value.
        data: The payload (``None``, ``bool``, ``int``, ``float``, ``str``,
            ``tuple[Value, ...]`` or ``dict[str, Value]``).
    """

    kind: ValueKind
    data: Any = None

    def __hash__(self) -> int:
        if self.kind is ValueKind.OBJECT:
            # dict equality ignores key order, so the hash must too.
            return hash((self.kind, frozenset(self.data.items())))
        return hash((self.kind, self.data))

    @classmethod
    def null(cls) -> Value:
        return _NULL

    @classmethod
    def from_bool(cls, value: bool) -> Value:
        return cls(ValueKind.BOOL, bool(value))

    @classmethod
    def from_int(cls, value: int) -> Value:
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeError(f"expected int, got {type(value).__name__}")
        if not INT64_MIN <= value <= INT64_MAX:
            raise ValueError(f"integer {value} does not fit in 64 bits")
        return cls(ValueKind.INT, value)

    @classmethod
    def from_float(cls, value: float) -> Value:
        value = float(value)
        if not math.isfinite(value):
            raise ValueError(f"non-finite float {value!r} cannot be represented")
        return cls(ValueKind.FLOAT, value)

    @classmethod
    def from_str(cls, value: str) -> Value:
        return cls(ValueKind.STRING, str(value))

    @classmethod
    def array(cls, items: Iterable[Value] = ()) -> Value:
        return cls(ValueKind.ARRAY, tuple(items))

    @classmethod
    def object(cls, items: Mapping[str, Value] | Iterable[tuple[str, Value]] = ()) -> Value:
        pairs = items.items() if isinstance(items, Mapping) else items
        mapping: dict[str, Value] = {}
        for key, item in pairs:
            if key in mapping:
                raise ValueError(f"duplicate object key {key!r}")
            mapping[key] = item
        return cls(ValueKind.OBJECT, mapping)

    @classmethod
    def from_data(cls, data: Any) -> Value:
        """Convert native JSON-compatible Python data into a Value."""
        if data is None:
            return _NULL
        if isinstance(data, Value):
            return data
        if isinstance(data, bool):
            return cls.from_bool(data)
        if isinstance(data, int):
            return cls.from_int(data)
        if isinstance(data, float):
            return cls.from_float(data)
        if isinstance(data, str):
            return cls.from_str(data)
        if isinstance(data, Mapping):
            return cls.object((str(key), cls.from_data(item)) for key, item in data.items())
        if isinstance(data, (list, tuple)):
            return cls.array(cls.from_data(item) for item in data)
        raise TypeError(f"cannot convert {type(data).__name__} to Value")

    @classmethod
    def from_json(cls, text: str | bytes) -> Value:
        return cls.from_data(json.loads(text))

    def to_data(self) -> Any:
        """Convert into plain Python data (``dict``/``list``/scalars)."""
        if self.kind is ValueKind.ARRAY:
            return [item.to_data() for item in self.data]
        if self.kind is ValueKind.OBJECT:
            return {key: item.to_data() for key, item in self.data.items()}
        return self.data

    def to_json(self, *, indent: int | None = None) -> str:
        return json.dumps(self.to_data(), ensure_ascii=False, indent=indent)

    def get(self, path: str) -> Value | None:
        """Resolve a delimiter-separated path relative to this value."""
        return resolve(self, path)

    def is_null(self) -> bool:
        return self.kind is ValueKind.NULL

    def is_empty(self) -> bool:
        """Return True for null, empty strings/containers and numeric zero."""
        if self.kind is ValueKind.NULL:
            return True
        if self.kind is ValueKind.BOOL:
            return False
        if self.kind in (ValueKind.STRING, ValueKind.ARRAY, ValueKind.OBJECT):
            return len(self.data) == 0
        return self.data == 0

    def size(self) -> int | None:
        if self.kind in (ValueKind.ARRAY, ValueKind.OBJECT):
            return len(self.data)
        return None

    def as_str(self) -> str | None:
        return self.data if self.kind is ValueKind.STRING else None

    def as_int(self) -> int | None:
        return self.data if self.kind is ValueKind.INT else None

    def as_float(self) -> float | None:
        return self.data if self.kind is ValueKind.FLOAT else None

    def as_bool(self) -> bool | None:
        return self.data if self.kind is ValueKind.BOOL else None

    def as_list(self) -> list[Value] | None:
        return list(self.data) if self.kind is ValueKind.ARRAY else None

    def as_dict(self) -> dict[str, Value] | None:
        return dict(self.data) if self.kind is ValueKind.OBJECT else None

    def as_str_list(self) -> list[str] | None:
        return self._as_list_of(ValueKind.STRING)

    def as_int_list(self) -> list[int] | None:
        return self._as_list_of(ValueKind.INT)

    def as_float_list(self) -> list[float] | None:
        return self._as_list_of(ValueKind.FLOAT)

    def as_bool_list(self) -> list[bool] | None:
        return self._as_list_of(ValueKind.BOOL)

    def _as_list_of(self, kind: ValueKind) -> list[Any] | None:
        if self.kind is not ValueKind.ARRAY:
            return None
        if any(item.kind is not kind for item in self.data):
            return None
        return [item.data for item in self.data]


_NULL = Value(ValueKind.NULL)


def split_path(path: str) -> list[str]:
    """Split a path on unescaped delimiters.

    ``\\.`` keeps a literal dot inside a key and ``\\\\`` a literal backslash.
    Empty segments are dropped, so an empty path yields no segments.
    """
    parts: list[str] = []
    buf: list[str] = []
    escaping = False

    for ch in path:
        if escaping:
            buf.append(ch)
            escaping = False
            continue
        if ch == PATH_ESCAPE:
            escaping = True
            continue
        if ch == PATH_SEPARATOR:
            parts.append("".join(buf))
            buf = []
            continue
        buf.append(ch)

    if escaping:
        # Trailing backslash; treat as literal.
        buf.append(PATH_ESCAPE)

    parts.append("".join(buf))
    return [part for part in parts if part != ""]


def resolve(value: Value, path: str) -> Value | None:
    """Navigate ``value`` by ``path``; return None when any segment misses.

    On an object every segment is a key. On an array a segment is either a
    decimal index or the length marker ``#``; ``#`` as the last segment yields
    the element count, ``#`` followed by more segments maps the rest of the
    path over every element and collects the ones that resolve.
    """
    return _resolve_segments(value, split_path(path))


def _resolve_segments(value: Value, segments: list[str]) -> Value | None:
    current = value
    for position, segment in enumerate(segments):
        if current.kind is ValueKind.OBJECT:
            found = current.data.get(segment)
            if found is None:
                return None
            current = found
        elif current.kind is ValueKind.ARRAY:
            if segment == LENGTH_MARKER:
                rest = segments[position + 1 :]
                if not rest:
                    return Value.from_int(len(current.data))
                collected = []
                for item in current.data:
                    found = _resolve_segments(item, rest)
                    if found is not None:
                        collected.append(found)
                return Value.array(collected)
            if not (segment.isascii() and segment.isdigit()):
                return None
            index = int(segment)
            if index >= len(current.data):
                return None
            current = current.data[index]
        else:
            return None
    return current
