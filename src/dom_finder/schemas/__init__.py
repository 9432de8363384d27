"""Schema tree models for dom_finder."""

from dom_finder.schemas.schema import SchemaNode, compile_schema, validate_root

__all__ = ["SchemaNode", "compile_schema", "validate_root"]
