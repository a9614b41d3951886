"""
Pydantic models for MySQL EXPLAIN FORMAT=JSON output.

The structure is:
- ExplainDocument: Top-level wrapper holding the root query block
- QueryBlock: Recursive structure; any level may carry a table, a
  nested-loop join, an ordering/grouping/dedup stage, a union, subqueries,
  a further nested block, or a bare diagnostic message

Every model accepts unknown keys (``extra="allow"``) so newer MySQL
versions don't break parsing; the extra keys survive in ``raw`` snapshots.

Only the keys the graph builder dispatches on or displays carry real
types. Costs and row counts are ``Any``: MySQL emits them as decimal
strings, and turning them into numbers (or deciding they are corrupt) is
the graph builder's job. Fields the builder never reads are ``Any`` too, so
an odd leaf value (``"possible_keys": "a,b"``, ``"key_length": 4``) never
rejects an otherwise usable plan.

Reference: https://dev.mysql.com/doc/refman/8.0/en/explain-output.html
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# Costs and row counts; converted (or flagged corrupt) by graph.extract
Numeric = Any


class _PlanModel(BaseModel):
    model_config = ConfigDict(
        extra="allow",
        populate_by_name=True,
    )

    def snapshot(self) -> dict[str, Any]:
        """Opaque copy of the record as it appeared in the input."""
        return self.model_dump(exclude_unset=True, by_alias=True)


class CostInfo(_PlanModel):
    """Cost figures attached to a table or a stage. All values are optional."""

    query_cost: Numeric = None
    read_cost: Numeric = None
    eval_cost: Numeric = None
    prefix_cost: Numeric = None
    sort_cost: Numeric = None
    data_read_per_join: Any = None


class MaterializedFromSubquery(_PlanModel):
    """A derived table: the table's rows come from a nested query block."""

    using_temporary_table: Any = None
    dependent: Any = None
    cacheable: Any = None
    query_block: QueryBlock | None = None


class TableInfo(_PlanModel):
    """A single table access."""

    table_name: str | None = None
    access_type: str | None = None
    possible_keys: Any = None
    key: str | None = None
    used_key_parts: list[str] | None = None
    key_length: Any = None
    ref: Any = None
    rows_examined_per_scan: Numeric = None
    rows_produced_per_join: Numeric = None
    filtered: Numeric = None
    cost_info: CostInfo | None = None
    used_columns: Any = None
    attached_condition: str | None = None
    using_index: bool | None = None
    using_index_condition: str | bool | None = None
    using_temporary: bool | None = None
    using_temporary_table: bool | None = None
    using_filesort: bool | None = None
    materialized_from_subquery: MaterializedFromSubquery | None = None
    message: str | None = None


class NestedLoopItem(_PlanModel):
    """One entry of a nested-loop join list."""

    table: TableInfo | None = None


class BufferResult(_PlanModel):
    """Result buffering stage below a GROUP BY."""

    using_temporary_table: bool | None = None
    table: TableInfo | None = None
    nested_loop: list[NestedLoopItem] | None = None


class DuplicatesRemoval(_PlanModel):
    """DISTINCT stage."""

    using_filesort: bool | None = None
    using_temporary_table: bool | None = None
    cost_info: CostInfo | None = None
    table: TableInfo | None = None
    nested_loop: list[NestedLoopItem] | None = None


class GroupingOperation(_PlanModel):
    """GROUP BY stage."""

    using_filesort: bool | None = None
    using_temporary_table: bool | None = None
    cost_info: CostInfo | None = None
    table: TableInfo | None = None
    nested_loop: list[NestedLoopItem] | None = None
    buffer_result: BufferResult | None = None


class OrderingOperation(_PlanModel):
    """ORDER BY stage."""

    using_filesort: bool | None = None
    using_temporary_table: bool | None = None
    cost_info: CostInfo | None = None
    table: TableInfo | None = None
    nested_loop: list[NestedLoopItem] | None = None
    grouping_operation: GroupingOperation | None = None
    duplicates_removal: DuplicatesRemoval | None = None
    buffer_result: BufferResult | None = None


class QuerySpecification(_PlanModel):
    """One branch of a UNION."""

    dependent: Any = None
    cacheable: Any = None
    query_block: QueryBlock | None = None


class UnionResult(_PlanModel):
    """UNION stage combining several query specifications."""

    using_temporary_table: bool | None = None
    table_name: Any = None
    access_type: Any = None
    query_specifications: list[QuerySpecification] | None = None


class SubqueryInfo(_PlanModel):
    """A correlated or uncorrelated subquery referenced from a block."""

    dependent: Any = None
    cacheable: Any = None
    using_temporary_table: Any = None
    query_block: QueryBlock | None = None


class QueryBlock(_PlanModel):
    """
    One level of the plan tree.

    The fields are not mutually exclusive in the schema; the graph builder
    decides which of them takes precedence.
    """

    select_id: Any = None
    cost_info: CostInfo | None = None
    table: TableInfo | None = None
    nested_loop: list[NestedLoopItem] | None = None
    ordering_operation: OrderingOperation | None = None
    grouping_operation: GroupingOperation | None = None
    duplicates_removal: DuplicatesRemoval | None = None
    query_block: QueryBlock | None = None
    union_result: UnionResult | None = None
    subqueries: list[SubqueryInfo] | None = None
    optimized_away_subqueries: list[SubqueryInfo] | None = None
    attached_subqueries: list[SubqueryInfo] | None = None
    message: str | None = None


class ExplainDocument(_PlanModel):
    """Top-level EXPLAIN FORMAT=JSON output."""

    query_block: QueryBlock = Field(
        ...,
        description="Root of the plan tree",
    )


for _model in (
    MaterializedFromSubquery,
    TableInfo,
    NestedLoopItem,
    BufferResult,
    DuplicatesRemoval,
    GroupingOperation,
    OrderingOperation,
    QuerySpecification,
    UnionResult,
    SubqueryInfo,
    QueryBlock,
    ExplainDocument,
):
    _model.model_rebuild()
