"""Custom exceptions for dom_finder."""


class DomFinderError(Exception):
    """Base exception for dom_finder operations."""


class ConfigError(DomFinderError, ValueError):
    """Schema could not be parsed or validated into a finder."""


class PipelineError(ConfigError):
    """Unknown pipeline procedure, wrong arguments, or a bad regex pattern."""


class SelectorError(ConfigError):
    """Selector rejected by the CSS selector engine."""


class EvaluationError(DomFinderError):
    """Compiled finder reached an impossible state during evaluation."""
