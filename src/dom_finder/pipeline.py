"""Pipeline procedures: named string transforms applied after extraction."""

from __future__ import annotations

import html
import json
import logging
import re
import threading
from dataclasses import dataclass
from typing import Callable, Final, Sequence

from dom_finder.exceptions import PipelineError
from dom_finder.sanitization import sanitize
from dom_finder.types import SanitizePolicy
from dom_finder.value import Value, ValueKind, resolve

logger = logging.getLogger(__name__)

Proc = Callable[[str], "str | None"]

_WHITESPACE_RE = re.compile(r"\s+")


class RegexCache:
    """Thread-safe compile-once cache of regex patterns keyed by pattern text.

    Each Finder owns one cache, so identical patterns used by several nodes
    share a compiled object without coupling unrelated finders.
    """

    def __init__(self) -> None:
        self._patterns: dict[str, re.Pattern[str]] = {}
        self._lock = threading.Lock()

    def get(self, pattern: str) -> re.Pattern[str]:
        with self._lock:
            compiled = self._patterns.get(pattern)
            if compiled is None:
                compiled = re.compile(pattern)
                self._patterns[pattern] = compiled
                logger.debug("Compiled regex pattern %r", pattern)
            return compiled

    def __len__(self) -> int:
        with self._lock:
            return len(self._patterns)

    def __contains__(self, pattern: object) -> bool:
        with self._lock:
            return pattern in self._patterns


def normalize_spaces(value: str) -> str:
    """Collapse every whitespace run to a single space and strip the ends."""
    return _WHITESPACE_RE.sub(" ", value).strip()


def _make_trim(args: Sequence[str], cache: RegexCache) -> Proc:
    if args:
        cut_set = args[0]
        return lambda value: value.strip(cut_set)
    return str.strip


def _make_trim_space(args: Sequence[str], cache: RegexCache) -> Proc:
    return str.strip


def _make_normalize_spaces(args: Sequence[str], cache: RegexCache) -> Proc:
    return normalize_spaces


def _make_regex_capture(args: Sequence[str], cache: RegexCache) -> Proc:
    pattern = cache.get(args[0])

    def regex_capture(value: str) -> str | None:
        match = pattern.search(value)
        if match is None:
            return None
        # Groups that did not take part in the match are skipped.
        return "".join(group for group in match.groups() if group is not None)

    return regex_capture


def _make_regex_find(args: Sequence[str], cache: RegexCache) -> Proc:
    pattern = cache.get(args[0])

    def regex_find(value: str) -> str | None:
        match = pattern.search(value)
        return match.group(0) if match else None

    return regex_find


def _make_replace(args: Sequence[str], cache: RegexCache) -> Proc:
    old, new = args[0], args[1]
    return lambda value: value.replace(old, new)


def _make_extract_json(args: Sequence[str], cache: RegexCache) -> Proc:
    path = args[0]

    def extract_json(value: str) -> str | None:
        try:
            document = Value.from_json(value)
        except (ValueError, TypeError):
            return None
        found = resolve(document, path)
        if found is None or found.kind is ValueKind.NULL:
            return None
        if found.kind is ValueKind.STRING:
            return found.data
        return json.dumps(found.to_data(), ensure_ascii=False, separators=(",", ":"))

    return extract_json


def _make_html_unescape(args: Sequence[str], cache: RegexCache) -> Proc:
    return html.unescape


def _policy_factory(policy: SanitizePolicy) -> Callable[[Sequence[str], RegexCache], Proc]:
    def make_policy(args: Sequence[str], cache: RegexCache) -> Proc:
        return lambda value: sanitize(value, policy)

    return make_policy


@dataclass(frozen=True)
class ProcSpec:
    """Signature and factory of a registered procedure."""

    name: str
    min_args: int
    max_args: int
    factory: Callable[[Sequence[str], RegexCache], Proc]


_SPECS: Final[tuple[ProcSpec, ...]] = (
    ProcSpec("trim", 0, 1, _make_trim),
    ProcSpec("trim_space", 0, 0, _make_trim_space),
    ProcSpec("normalize_spaces", 0, 0, _make_normalize_spaces),
    ProcSpec("regex_capture", 1, 1, _make_regex_capture),
    ProcSpec("regex_find", 1, 1, _make_regex_find),
    ProcSpec("replace", 2, 2, _make_replace),
    ProcSpec("extract_json", 1, 1, _make_extract_json),
    ProcSpec("html_unescape", 0, 0, _make_html_unescape),
    ProcSpec("policy_highlight", 0, 0, _policy_factory(SanitizePolicy.HIGHLIGHT)),
    ProcSpec("policy_list", 0, 0, _policy_factory(SanitizePolicy.LIST)),
    ProcSpec("policy_table", 0, 0, _policy_factory(SanitizePolicy.TABLE)),
    ProcSpec("policy_common", 0, 0, _policy_factory(SanitizePolicy.COMMON)),
)

_ALIASES: Final[dict[str, str]] = {
    "normalize-spaces": "normalize_spaces",
    "regex": "regex_capture",
    "regex-capture": "regex_capture",
    "regex-find": "regex_find",
}

REGISTRY: Final[dict[str, ProcSpec]] = {spec.name: spec for spec in _SPECS}
REGISTRY.update({alias: REGISTRY[target] for alias, target in _ALIASES.items()})


@dataclass(frozen=True)
class PipelineStep:
    name: str
    args: tuple[str, ...]
    proc: Proc


@dataclass(frozen=True)
class Pipeline:
    """An ordered, pre-validated sequence of procedures."""

    steps: tuple[PipelineStep, ...] = ()

    def run(self, value: str) -> str | None:
        """Apply every step left to right; the first absent result stops the run."""
        result: str | None = value
        for step in self.steps:
            result = step.proc(result)
            if result is None:
                return None
        return result

    def __len__(self) -> int:
        return len(self.steps)


def compile_step(entry: Sequence[str], cache: RegexCache) -> PipelineStep:
    """Resolve one ``[name, arg...]`` entry against the registry."""
    if not entry:
        raise PipelineError("pipeline entry must start with a procedure name")
    name, *args = entry
    spec = REGISTRY.get(name)
    if spec is None:
        raise PipelineError(f"pipeline proc with name `{name}` does not exist")
    if not spec.min_args <= len(args) <= spec.max_args:
        if spec.min_args == spec.max_args:
            expected = str(spec.min_args)
        else:
            expected = f"{spec.min_args} to {spec.max_args}"
        raise PipelineError(
            f"pipeline proc `{name}`: requires {expected} argument(s), got {len(args)}"
        )
    try:
        proc = spec.factory(args, cache)
    except re.error as exc:
        raise PipelineError(f"pipeline proc `{name}`: invalid regex {args[0]!r}: {exc}") from exc
    return PipelineStep(name=spec.name, args=tuple(args), proc=proc)


def compile_pipeline(
    entries: Sequence[Sequence[str]], *, regex_cache: RegexCache | None = None
) -> Pipeline:
    """Compile raw pipeline entries into a ready-to-run Pipeline.

    Args:
        entries: Sequence of ``[procedure, arg...]`` lists.
        regex_cache: Cache shared by the owning Finder. A private cache is
            used when omitted.

    Returns:
        The compiled Pipeline.

    Raises:
        PipelineError: On an unknown procedure, wrong arity or a regex that
            does not compile.
    """
    cache = regex_cache if regex_cache is not None else RegexCache()
    return Pipeline(tuple(compile_step(entry, cache) for entry in entries))
