"""EXPLAIN JSON entry and validation module."""

from plangraph.parser.models import ExplainDocument, QueryBlock, TableInfo
from plangraph.parser.parser import (
    ValidationResult,
    parse_explain,
    parse_explain_file,
    parse_explain_text,
    validate_explain_json,
)

__all__ = [
    "ExplainDocument",
    "QueryBlock",
    "TableInfo",
    "ValidationResult",
    "parse_explain",
    "parse_explain_file",
    "parse_explain_text",
    "validate_explain_json",
]
