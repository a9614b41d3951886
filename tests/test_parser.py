"""
Tests for EXPLAIN JSON entry and validation.

Test philosophy:
- Valid EXPLAIN output parses into typed models
- Malformed text and missing query_block are distinct, descriptive errors
- Resource limits reject pathological input before it is walked
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from plangraph.config import ParserConfig
from plangraph.exceptions import (
    MalformedInputError,
    MissingFieldError,
    ParseError,
    ResourceLimitError,
)
from plangraph.parser import (
    ExplainDocument,
    parse_explain,
    parse_explain_file,
    parse_explain_text,
    validate_explain_json,
)


# =============================================================================
# validate_explain_json
# =============================================================================


class TestValidateExplainJson:
    """The non-raising validation used by interactive callers."""

    def test_rejects_invalid_json(self) -> None:
        result = validate_explain_json("not json")

        assert not result.valid
        assert result.error is not None
        assert result.error.startswith("Invalid JSON")
        assert result.document is None

    def test_rejects_json_without_query_block(self) -> None:
        result = validate_explain_json('{"foo": "bar"}')

        assert not result.valid
        assert "missing query_block" in result.error

    def test_null_query_block_counts_as_missing(self) -> None:
        result = validate_explain_json('{"query_block": null}')

        assert not result.valid
        assert "missing query_block" in result.error

    def test_non_object_json_counts_as_missing(self) -> None:
        result = validate_explain_json("[1, 2, 3]")

        assert not result.valid
        assert "missing query_block" in result.error

    def test_accepts_valid_explain(self) -> None:
        text = json.dumps({
            "query_block": {
                "select_id": 1,
                "table": {"table_name": "users", "access_type": "ALL"},
            }
        })

        result = validate_explain_json(text)

        assert result.valid
        assert result.error is None
        assert isinstance(result.document, ExplainDocument)
        assert result.document.query_block.table.table_name == "users"


# =============================================================================
# parse_explain / parse_explain_text
# =============================================================================


class TestParseExplain:
    """Typed parsing entry points."""

    def test_parse_text(self, plan) -> None:
        doc = parse_explain_text(json.dumps(plan("single_table")))

        table = doc.query_block.table
        assert table.table_name == "users"
        assert table.access_type == "ALL"
        assert table.cost_info.read_cost == "10.50"

    def test_parse_dict(self, plan) -> None:
        doc = parse_explain(plan("nested_loop_join"))

        assert len(doc.query_block.nested_loop) == 2
        assert doc.query_block.nested_loop[1].table.key == "PRIMARY"

    def test_parse_path(self, tmp_path: Path, plan) -> None:
        path = tmp_path / "explain.json"
        path.write_text(json.dumps(plan("union")))

        doc = parse_explain(path)

        specs = doc.query_block.union_result.query_specifications
        assert [s.query_block.select_id for s in specs] == [1, 2]

    def test_unknown_keys_are_preserved(self) -> None:
        doc = parse_explain({
            "query_block": {
                "table": {"table_name": "t", "access_type": "ALL", "partitions": ["p0", "p1"]},
            }
        })

        assert doc.query_block.table.snapshot()["partitions"] == ["p0", "p1"]

    def test_empty_query_block_is_valid(self) -> None:
        doc = parse_explain('{"query_block": {}}')

        assert doc.query_block.table is None
        assert doc.query_block.nested_loop is None

    def test_malformed_text_raises(self) -> None:
        with pytest.raises(MalformedInputError) as exc_info:
            parse_explain_text("{not json")

        assert exc_info.value.source == "json_decode"
        assert exc_info.value.message.startswith("Invalid JSON")

    def test_missing_query_block_raises(self) -> None:
        with pytest.raises(MissingFieldError) as exc_info:
            parse_explain_text('{"Plan": {"Node Type": "Seq Scan"}}')

        assert exc_info.value.field_name == "query_block"

    def test_schema_violation_is_malformed(self) -> None:
        with pytest.raises(MalformedInputError) as exc_info:
            parse_explain({"query_block": {"nested_loop": "not a list"}})

        assert exc_info.value.source == "validation"
        assert exc_info.value.message.startswith("Invalid JSON")
        assert "nested_loop" in exc_info.value.detail

    def test_odd_informational_fields_are_accepted(self) -> None:
        table = {
            "table_name": "t",
            "access_type": "ref",
            "possible_keys": "a,b",
            "key_length": 4,
            "ref": "const",
            "used_columns": "id",
            "filtered": [100],
        }
        doc = parse_explain({"query_block": {"select_id": "1", "table": table}})

        snapshot = doc.query_block.table.snapshot()
        assert snapshot["possible_keys"] == "a,b"
        assert snapshot["key_length"] == 4
        assert snapshot["filtered"] == [100]
        assert doc.query_block.select_id == "1"

    @pytest.mark.parametrize("value", [[1], True, {"v": 1}])
    def test_odd_numeric_values_reach_the_model_unchanged(self, value) -> None:
        doc = parse_explain({
            "query_block": {"table": {"table_name": "t", "cost_info": {"read_cost": value}}}
        })

        assert doc.query_block.table.cost_info.read_cost == value

    def test_both_errors_are_parse_errors(self) -> None:
        assert issubclass(MalformedInputError, ParseError)
        assert issubclass(MissingFieldError, ParseError)

    def test_unsupported_source_type(self) -> None:
        with pytest.raises(ParseError) as exc_info:
            parse_explain(42)  # type: ignore[arg-type]

        assert exc_info.value.source == "type_check"


class TestParseExplainFile:
    """File-based entry point."""

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ParseError) as exc_info:
            parse_explain_file(tmp_path / "nope.json")

        assert "File not found" in exc_info.value.message
        assert exc_info.value.source == "file_read"

    def test_reads_file(self, tmp_path: Path, plan) -> None:
        path = tmp_path / "explain.json"
        path.write_text(json.dumps(plan("impossible_where")))

        doc = parse_explain_file(path)

        assert doc.query_block.message == "Impossible WHERE"


# =============================================================================
# Resource limits
# =============================================================================


class TestResourceLimits:
    """Pathological inputs are rejected up front."""

    def test_input_too_large(self) -> None:
        config = ParserConfig(max_input_size_mb=0.0001)
        text = json.dumps({"query_block": {"message": "x" * 1000}})

        with pytest.raises(ResourceLimitError, match="Input too large"):
            parse_explain_text(text, config)

    def test_too_deeply_nested(self) -> None:
        block: dict = {"message": "bottom"}
        for _ in range(20):
            block = {"query_block": block}

        with pytest.raises(ResourceLimitError, match="too deeply nested"):
            parse_explain({"query_block": block}, ParserConfig(max_depth=10))

    def test_depth_within_limit(self) -> None:
        block: dict = {"message": "bottom"}
        for _ in range(5):
            block = {"query_block": block}

        doc = parse_explain({"query_block": block}, ParserConfig(max_depth=10))

        assert doc.query_block.query_block is not None

    def test_validate_reports_limit_errors(self) -> None:
        result = validate_explain_json(
            json.dumps({"query_block": {"message": "x" * 1000}}),
            ParserConfig(max_input_size_mb=0.0001),
        )

        assert not result.valid
        assert "too large" in result.error
