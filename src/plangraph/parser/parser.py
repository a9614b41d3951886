"""
Entry point and validation for MySQL EXPLAIN FORMAT=JSON input.

This module handles:
- Loading EXPLAIN JSON from files, strings or already-decoded dicts
- Rejecting text that is not JSON (MalformedInputError)
- Rejecting JSON without a `query_block` root (MissingFieldError)
- Converting to typed Pydantic models
- Enforcing resource limits to prevent OOM crashes

Error handling philosophy: Fail fast with clear messages at the boundary.
Once a document passes validation, the graph builder degrades gracefully
instead of failing on gaps inside the plan.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from plangraph.config import DEFAULT_CONFIG, ParserConfig
from plangraph.exceptions import (
    MalformedInputError,
    MissingFieldError,
    ParseError,
    ResourceLimitError,
)
from plangraph.parser.models import ExplainDocument

logger = logging.getLogger(__name__)

ROOT_FIELD = "query_block"


@dataclass(frozen=True)
class ValidationResult:
    """
    Outcome of validate_explain_json().

    Exactly one of ``error`` and ``document`` is set.
    """

    valid: bool
    error: str | None = None
    document: ExplainDocument | None = None


def parse_explain(
    source: str | Path | dict[str, Any],
    config: ParserConfig | None = None,
) -> ExplainDocument:
    """
    Parse MySQL EXPLAIN FORMAT=JSON output into typed models.

    Args:
        source: JSON text, a path to a JSON file, or an already-decoded dict
        config: Parser configuration with resource limits. If None,
            uses DEFAULT_CONFIG.

    Returns:
        ExplainDocument: Validated and typed representation of the plan

    Raises:
        MalformedInputError: Input is not JSON or violates the plan schema
        MissingFieldError: Input has no `query_block`
        ResourceLimitError: Input exceeds configured limits

    Example:
        >>> doc = parse_explain('{"query_block": {"table": {...}}}')
        >>> doc = parse_explain(Path("explain.json"))
    """
    config = config or DEFAULT_CONFIG

    if isinstance(source, Path):
        return parse_explain_file(source, config)

    if isinstance(source, str):
        return parse_explain_text(source, config)

    if isinstance(source, dict):
        _check_tree_depth(source, config)
        return _validate_document(source)

    raise ParseError(
        f"Unsupported source type: {type(source).__name__}",
        detail="Expected JSON text, a file path, or a dict",
        source="type_check",
    )


def parse_explain_text(text: str, config: ParserConfig | None = None) -> ExplainDocument:
    """Parse EXPLAIN JSON from a text buffer (e.g. pasted by a user)."""
    config = config or DEFAULT_CONFIG
    _check_input_size(text, config)

    data = _parse_json_string(text)
    _check_tree_depth(data, config)
    return _validate_document(data)


def parse_explain_file(path: str | Path, config: ParserConfig | None = None) -> ExplainDocument:
    """
    Parse EXPLAIN JSON from a file.

    Raises:
        ParseError: If the file cannot be read, or its contents fail parsing
    """
    filepath = Path(path)

    if not filepath.is_file():
        raise ParseError(
            f"File not found: {filepath}",
            source="file_read",
        )

    try:
        content = filepath.read_text(encoding="utf-8")
    except OSError as e:
        raise ParseError(
            f"Cannot read file: {filepath}",
            detail=str(e),
            source="file_read",
        ) from e

    return parse_explain_text(content, config)


def validate_explain_json(text: str, config: ParserConfig | None = None) -> ValidationResult:
    """
    Check that text has the minimal EXPLAIN shape, without raising.

    Intended for interactive callers (paste boxes, editors) that only need
    a yes/no and a short reason to show the user.

    Example:
        >>> validate_explain_json("not json").error
        'Invalid JSON: Expecting value (line 1, column 1)'
    """
    try:
        document = parse_explain_text(text, config)
    except ParseError as e:
        return ValidationResult(valid=False, error=e.message)
    return ValidationResult(valid=True, document=document)


def _parse_json_string(content: str) -> Any:
    """Decode JSON text, mapping decoder errors to MalformedInputError."""
    try:
        return json.loads(content)
    except json.JSONDecodeError as e:
        raise MalformedInputError(
            f"Invalid JSON: {e.msg} (line {e.lineno}, column {e.colno})",
            detail=f"Line {e.lineno}, column {e.colno}: {e.msg}",
            source="json_decode",
        ) from e


def _validate_document(data: Any) -> ExplainDocument:
    """
    Validate decoded JSON against the plan models.

    Converts Pydantic validation errors into user-friendly ParseErrors.
    """
    if not isinstance(data, dict) or data.get(ROOT_FIELD) is None:
        raise MissingFieldError(
            f"Invalid MySQL EXPLAIN JSON: missing {ROOT_FIELD}",
            field_name=ROOT_FIELD,
            detail="EXPLAIN FORMAT=JSON output must contain a 'query_block' object",
        )

    try:
        return ExplainDocument.model_validate(data)
    except ValidationError as e:
        errors = []
        for error in e.errors():
            loc = " -> ".join(str(x) for x in error["loc"])
            errors.append(f"  {loc}: {error['msg']}")

        raise MalformedInputError(
            "Invalid JSON: plan structure does not match the expected schema",
            detail="\n".join(errors),
            source="validation",
        ) from e


def _check_input_size(text: str, config: ParserConfig) -> None:
    """Check the text size before decoding it."""
    size_mb = len(text.encode("utf-8")) / (1024 * 1024)
    if size_mb > config.max_input_size_mb:
        raise ResourceLimitError(
            f"Input too large: {size_mb:.1f}MB (max {config.max_input_size_mb}MB)",
            detail="Use a smaller EXPLAIN output or increase max_input_size_mb in config",
            source="resource_limit",
        )


def _check_tree_depth(data: Any, config: ParserConfig) -> None:
    """
    Check JSON nesting depth before full Pydantic validation.

    Iterative so that the measurement itself cannot overflow the stack.
    """
    deepest = 0
    stack: list[tuple[Any, int]] = [(data, 1)]

    while stack:
        value, depth = stack.pop()
        if isinstance(value, dict):
            deepest = max(deepest, depth)
            if deepest > config.max_depth:
                raise ResourceLimitError(
                    f"Plan too deeply nested: depth > {config.max_depth}",
                    detail="This may indicate a pathological query or corrupted EXPLAIN output",
                    source="resource_limit",
                )
            stack.extend((child, depth + 1) for child in value.values())
        elif isinstance(value, list):
            stack.extend((child, depth) for child in value)

    logger.debug("EXPLAIN input nesting depth: %d", deepest)
