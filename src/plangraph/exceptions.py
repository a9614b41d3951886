"""
Package-level exception hierarchy for plangraph.

All exceptions inherit from PlanGraphError, enabling:
- Catching all plangraph errors with a single except clause
- Context fields for debugging (detail, source, field name)
- Structured serialization via to_dict() for JSON error responses

Hierarchy:
    PlanGraphError
    ├── ParseError             – EXPLAIN JSON could not be turned into a document
    │   ├── MalformedInputError  – Not JSON, or fails the plan schema
    │   ├── MissingFieldError    – Parses, but has no `query_block`
    │   └── ResourceLimitError   – Larger or deeper than the configured limits
    ├── CorruptFieldError      – Non-numeric cost/row value (strict mode only)
    └── ConfigurationError     – Invalid configuration
"""

from __future__ import annotations

from typing import Any


class PlanGraphError(Exception):
    """
    Base exception for all plangraph errors.

    Attributes:
        message: Human-readable error description.
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for JSON error responses."""
        return {
            "error_type": type(self).__name__,
            "message": self.message,
        }


# ── Parse Errors ─────────────────────────────────────────────────────────


class ParseError(PlanGraphError):
    """
    Raised when EXPLAIN JSON cannot be turned into a plan document.

    Attributes:
        message: Human-readable error description
        detail: Technical details for debugging (optional)
        source: Where the error occurred (e.g., "json_decode", "validation")
    """

    def __init__(
        self,
        message: str,
        *,
        detail: str | None = None,
        source: str = "unknown",
    ) -> None:
        self.detail = detail
        self.source = source
        super().__init__(message)

    def __str__(self) -> str:
        if self.detail:
            return f"{self.message}\n\nDetails: {self.detail}"
        return self.message

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["detail"] = self.detail
        result["source"] = self.source
        return result


class MalformedInputError(ParseError):
    """The input text is not a structured record at all."""
    pass


class MissingFieldError(ParseError):
    """
    The input parses but lacks a required field.

    Attributes:
        field_name: The missing field (``query_block`` for EXPLAIN input).
    """

    def __init__(
        self,
        message: str,
        *,
        field_name: str,
        detail: str | None = None,
        source: str = "validation",
    ) -> None:
        self.field_name = field_name
        super().__init__(message, detail=detail, source=source)

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["field_name"] = self.field_name
        return result


class ResourceLimitError(ParseError):
    """The input exceeds a configured size, depth or node-count limit."""
    pass


# ── Field Errors ─────────────────────────────────────────────────────────


class CorruptFieldError(PlanGraphError):
    """
    A numeric plan field holds a value that is not a number.

    Only escapes the graph builder when ``ParserConfig.strict_numbers`` is
    enabled; by default the value degrades to zero and is recorded on the
    graph instead.

    Attributes:
        field_name: Name of the offending field (e.g. ``read_cost``).
        value: The raw value found in the plan.
    """

    def __init__(self, field_name: str, value: Any) -> None:
        self.field_name = field_name
        self.value = value
        super().__init__(f"Field '{field_name}' is not numeric: {value!r}")

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["field_name"] = self.field_name
        result["value"] = repr(self.value)
        return result


# ── Configuration Errors ─────────────────────────────────────────────────


class ConfigurationError(PlanGraphError):
    """
    Error in plangraph configuration.

    Attributes:
        config_key: The configuration key that caused the error (if known).
    """

    def __init__(self, message: str, config_key: str | None = None) -> None:
        self.config_key = config_key
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["config_key"] = self.config_key
        return result
