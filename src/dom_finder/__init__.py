"""dom_finder: schema-driven extraction of structured values from HTML."""

from dom_finder.exceptions import (
    ConfigError,
    DomFinderError,
    EvaluationError,
    PipelineError,
    SelectorError,
)
from dom_finder.finder import Finder
from dom_finder.pipeline import Pipeline, RegexCache, compile_pipeline
from dom_finder.sanitization import sanitize
from dom_finder.schemas import SchemaNode, compile_schema
from dom_finder.types import CastType, ExtractKind, Extraction, SanitizePolicy
from dom_finder.value import Value, ValueKind, resolve

__all__ = [
    "CastType",
    "ConfigError",
    "DomFinderError",
    "EvaluationError",
    "ExtractKind",
    "Extraction",
    "Finder",
    "Pipeline",
    "PipelineError",
    "RegexCache",
    "SanitizePolicy",
    "SchemaNode",
    "SelectorError",
    "Value",
    "ValueKind",
    "compile_pipeline",
    "compile_schema",
    "resolve",
    "sanitize",
]
