"""
Field extractors: cost, row estimates and operational tags.

By default these helpers are strict: a numeric field holding something
that isn't a number raises CorruptFieldError. The graph builder owns the
leniency policy and passes in its own converter, which either re-raises
or records the field and answers 0.
"""

from __future__ import annotations

import math
from typing import Any, Callable

from plangraph.exceptions import CorruptFieldError
from plangraph.parser.models import CostInfo, TableInfo

# Precedence for a node's single cost figure. sort_cost and eval_cost are
# deliberately absent.
COST_FIELDS: tuple[str, ...] = ("query_cost", "read_cost", "prefix_cost")

TAG_USING_INDEX = "Using index"
TAG_USING_TEMPORARY = "Using temporary"
TAG_USING_FILESORT = "Using filesort"
TAG_USING_INDEX_CONDITION = "Using index condition"
TAG_USING_TEMPORARY_TABLE = "Using temporary table"

# Row estimate fallbacks, in the order they are tried
TABLE_ROW_FIELDS: tuple[str, ...] = ("rows_examined_per_scan", "rows_produced_per_join")
JOIN_ROW_FIELDS: tuple[str, ...] = ("rows_produced_per_join", "rows_examined_per_scan")

# (value, field_name) -> float; the builder swaps in a lenient converter
Converter = Callable[[Any, str], float]


def is_present(value: Any) -> bool:
    """A field counts as present unless it is missing, null or empty text."""
    return value is not None and value != ""


def to_number(value: Any, field_name: str) -> float:
    """
    Convert a plan value (number or decimal string) to a float >= 0.

    Raises:
        CorruptFieldError: value is not a finite number
    """
    if isinstance(value, bool):
        raise CorruptFieldError(field_name, value)

    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            raise CorruptFieldError(field_name, value) from None
    else:
        raise CorruptFieldError(field_name, value)

    if not math.isfinite(number):
        raise CorruptFieldError(field_name, value)
    return max(number, 0.0)


def extract_cost(cost_info: CostInfo | None, convert: Converter = to_number) -> float:
    """
    Pull a single cost out of a cost record.

    The first present of query_cost, read_cost, prefix_cost wins; 0 when
    none is present or there is no record.
    """
    if cost_info is None:
        return 0.0

    for name in COST_FIELDS:
        value = getattr(cost_info, name)
        if is_present(value):
            return convert(value, name)
    return 0.0


def extract_rows(
    table: TableInfo,
    fields: tuple[str, ...],
    convert: Converter = to_number,
) -> int:
    """
    Row estimate from the first of ``fields`` holding a non-zero number.

    With a lenient ``convert`` a corrupt candidate comes back as 0 and the
    next field is tried, so it never hides a usable fallback.
    """
    for name in fields:
        value = getattr(table, name)
        if not is_present(value):
            continue
        rows = int(convert(value, name))
        if rows:
            return rows
    return 0


def table_rows(table: TableInfo, convert: Converter = to_number) -> int:
    """Rows a table access examines, falling back to rows it produces."""
    return extract_rows(table, TABLE_ROW_FIELDS, convert)


def join_input_rows(table: TableInfo, convert: Converter = to_number) -> int:
    """Rows a table contributes to a join, falling back to rows examined."""
    return extract_rows(table, JOIN_ROW_FIELDS, convert)


def extract_tags(table: TableInfo) -> list[str]:
    """
    Human-readable flags for a table access, in fixed order.

    Order: Using index, Using temporary, Using filesort,
    Using index condition, then the table's diagnostic message.
    """
    tags: list[str] = []
    if table.using_index:
        tags.append(TAG_USING_INDEX)
    if table.using_temporary or table.using_temporary_table:
        tags.append(TAG_USING_TEMPORARY)
    if table.using_filesort:
        tags.append(TAG_USING_FILESORT)
    if table.using_index_condition:
        tags.append(TAG_USING_INDEX_CONDITION)
    if table.message:
        tags.append(table.message)
    return tags


def stage_tags(stage: Any) -> list[str]:
    """Flags for an ORDER BY / GROUP BY / DISTINCT / buffer stage."""
    tags: list[str] = []
    if getattr(stage, "using_filesort", None):
        tags.append(TAG_USING_FILESORT)
    if getattr(stage, "using_temporary_table", None):
        tags.append(TAG_USING_TEMPORARY_TABLE)
    return tags
