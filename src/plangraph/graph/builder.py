"""
Plan tree -> normalized graph.

Walks the nested MySQL EXPLAIN structure by recursive descent and emits one
PlanNode per operation plus producer -> consumer edges.

Each query block level is first classified into exactly one BlockShape;
the shapes are checked in a fixed precedence order and the first match
decides how the level is handled:

    1. ORDERING       ordering_operation present
    2. GROUPING       grouping_operation present
    3. DEDUPLICATION  duplicates_removal present
    4. UNION          union_result present
    5. PLAIN          everything else (join / table / subqueries /
                      nested block / diagnostic message)

Fields belonging to a lower-precedence shape on the same level are NOT
processed independently; they are only reached through the winning
stage's own nested fields.

Design principles:
- One allocator per build() call: ids restart at node-1 on every parse
- Nodes are appended at allocation time, so output order is discovery order
- attach() is the only place an edge is created, and the only place a
  node's ``children`` list is touched

Usage:
    from plangraph.graph.builder import PlanGraphBuilder

    result = PlanGraphBuilder().build(document.query_block)
    for node in result.nodes:
        ...
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Iterable

from plangraph.config import DEFAULT_CONFIG, ParserConfig
from plangraph.exceptions import CorruptFieldError, ResourceLimitError
from plangraph.graph.extract import (
    Converter,
    extract_cost,
    extract_tags,
    join_input_rows,
    stage_tags,
    table_rows,
    to_number,
)
from plangraph.graph.models import CorruptField, Edge, NodeKind, PlanNode
from plangraph.parser.models import (
    BufferResult,
    DuplicatesRemoval,
    GroupingOperation,
    NestedLoopItem,
    QueryBlock,
    TableInfo,
)

logger = logging.getLogger(__name__)

LABEL_JOIN = "Nested Loop Join"
LABEL_SORT = "ORDER BY"
LABEL_GROUP = "GROUP BY"
LABEL_DISTINCT = "DISTINCT"
LABEL_UNION = "UNION"
LABEL_BUFFER = "Buffer Result"
LABEL_UNKNOWN_TABLE = "Unknown Table"


class BlockShape(str, Enum):
    """The single shape a query block level is treated as."""

    ORDERING = "ordering"
    GROUPING = "grouping"
    DEDUPLICATION = "deduplication"
    UNION = "union"
    PLAIN = "plain"


def classify_block(block: QueryBlock) -> BlockShape:
    """Pick the highest-precedence shape present on this level."""
    if block.ordering_operation is not None:
        return BlockShape.ORDERING
    if block.grouping_operation is not None:
        return BlockShape.GROUPING
    if block.duplicates_removal is not None:
        return BlockShape.DEDUPLICATION
    if block.union_result is not None:
        return BlockShape.UNION
    return BlockShape.PLAIN


class IdAllocator:
    """
    Monotonic node id source owned by a single build.

    Raises ResourceLimitError once more than ``limit`` ids are requested.
    """

    def __init__(self, limit: int | None = None, prefix: str = "node") -> None:
        self._limit = limit
        self._prefix = prefix
        self._issued = 0

    @property
    def issued(self) -> int:
        return self._issued

    def allocate(self) -> str:
        self._issued += 1
        if self._limit is not None and self._issued > self._limit:
            raise ResourceLimitError(
                f"Plan too large: more than {self._limit:,} nodes",
                detail="Consider a simpler query or increasing max_nodes in config",
                source="resource_limit",
            )
        return f"{self._prefix}-{self._issued}"


@dataclass
class BuildResult:
    """Nodes and edges produced by one build() call."""

    nodes: list[PlanNode] = field(default_factory=list)
    edges: list[Edge] = field(default_factory=list)
    corrupt_fields: list[CorruptField] = field(default_factory=list)


class PlanGraphBuilder:
    """
    Converts a QueryBlock tree into a flat node/edge graph.

    A builder may be reused; every build() starts from fresh state. It is
    not safe to share one builder between threads, but separate builders
    are fully independent.
    """

    def __init__(self, config: ParserConfig | None = None) -> None:
        self.config = config or DEFAULT_CONFIG
        self._handlers: dict[BlockShape, Callable[[QueryBlock, str | None, NodeKind], None]] = {
            BlockShape.ORDERING: self._parse_ordering,
            BlockShape.GROUPING: self._parse_grouping,
            BlockShape.DEDUPLICATION: self._parse_deduplication,
            BlockShape.UNION: self._parse_union,
            BlockShape.PLAIN: self._parse_plain,
        }
        self._reset()

    def _reset(self) -> None:
        self._ids = IdAllocator(limit=self.config.max_nodes)
        self._result = BuildResult()
        self._index: dict[str, PlanNode] = {}
        self._corrupt_seen: set[tuple[str, str]] = set()

    def build(self, block: QueryBlock) -> BuildResult:
        """Parse a root query block and everything nested beneath it."""
        self._reset()
        self._parse_block(block, consumer=None, kind=NodeKind.SELECT)

        result = self._result
        logger.debug(
            "Built plan graph: %d nodes, %d edges, %d corrupt fields",
            len(result.nodes),
            len(result.edges),
            len(result.corrupt_fields),
        )
        return result

    # =========================================================================
    # Graph primitives
    # =========================================================================

    def attach(self, producer_id: str, consumer_id: str | None) -> None:
        """
        Record that ``producer_id`` feeds ``consumer_id``.

        Input nesting says "producer is inside consumer"; the edge points
        the other way, from producer to consumer.
        """
        if consumer_id is None:
            return
        self._result.edges.append(Edge(source=producer_id, target=consumer_id))
        self._index[consumer_id].children.append(producer_id)

    def _emit(
        self,
        kind: NodeKind,
        label: str,
        consumer: str | None,
        raw: dict[str, Any],
        **details: Any,
    ) -> PlanNode:
        node = PlanNode(id=self._ids.allocate(), kind=kind, label=label, raw=raw, **details)
        self._result.nodes.append(node)
        self._index[node.id] = node
        self.attach(node.id, consumer)
        return node

    def _converter(self, node_id: str) -> Converter:
        """
        Numeric converter for fields read off ``node_id``'s record.

        Corrupt values raise in strict mode; otherwise they are zeroed and
        recorded once per (node, field), however often the field is read.
        """

        def convert(value: Any, field_name: str) -> float:
            try:
                return to_number(value, field_name)
            except CorruptFieldError as e:
                if self.config.strict_numbers:
                    raise
                key = (node_id, field_name)
                if key not in self._corrupt_seen:
                    self._corrupt_seen.add(key)
                    logger.warning(
                        "Corrupt numeric field %s=%r on %s, using 0",
                        field_name,
                        e.value,
                        node_id,
                    )
                    self._result.corrupt_fields.append(
                        CorruptField(node_id=node_id, field=field_name, value=e.value)
                    )
                return 0.0

        return convert

    # =========================================================================
    # Query blocks
    # =========================================================================

    def _parse_block(self, block: QueryBlock, consumer: str | None, kind: NodeKind) -> None:
        shape = classify_block(block)
        self._handlers[shape](block, consumer, kind)

    def _parse_ordering(self, block: QueryBlock, consumer: str | None, kind: NodeKind) -> None:
        op = block.ordering_operation
        sort = self._emit_stage(NodeKind.SORT, LABEL_SORT, op, consumer)
        self._parse_inputs(
            sort.id,
            nested_loop=op.nested_loop,
            grouping=op.grouping_operation,
            dedup=op.duplicates_removal,
            table=op.table,
            buffer=op.buffer_result,
        )

    def _parse_grouping(self, block: QueryBlock, consumer: str | None, kind: NodeKind) -> None:
        self._parse_grouping_stage(block.grouping_operation, consumer)

    def _parse_deduplication(self, block: QueryBlock, consumer: str | None, kind: NodeKind) -> None:
        self._parse_dedup_stage(block.duplicates_removal, consumer)

    def _parse_union(self, block: QueryBlock, consumer: str | None, kind: NodeKind) -> None:
        union_op = block.union_result
        union = self._emit(
            NodeKind.UNION,
            LABEL_UNION,
            consumer,
            raw=union_op.snapshot(),
            tags=stage_tags(union_op),
        )
        # Branches are processed strictly left to right
        for spec in union_op.query_specifications or []:
            if spec.query_block is not None:
                self._parse_block(spec.query_block, union.id, NodeKind.SELECT)

    def _parse_plain(self, block: QueryBlock, consumer: str | None, kind: NodeKind) -> None:
        emitted_before = len(self._result.nodes)

        if block.nested_loop:
            self._parse_nested_loop(block.nested_loop, consumer)

        if block.table is not None:
            self._parse_table(block.table, consumer)

        subqueries = [
            *(block.subqueries or []),
            *(block.optimized_away_subqueries or []),
            *(block.attached_subqueries or []),
        ]
        for sub in subqueries:
            if sub.query_block is not None:
                self._parse_block(sub.query_block, consumer, NodeKind.SUBQUERY)

        if block.query_block is not None:
            self._parse_block(block.query_block, consumer, NodeKind.SELECT)

        # "No matching rows", "Impossible WHERE", ...
        if len(self._result.nodes) == emitted_before and block.message:
            self._emit(kind, block.message, consumer, raw=block.snapshot())

    # =========================================================================
    # Stages
    # =========================================================================

    def _emit_stage(
        self,
        kind: NodeKind,
        label: str,
        stage: Any,
        consumer: str | None,
    ) -> PlanNode:
        node = self._emit(kind, label, consumer, raw=stage.snapshot(), tags=stage_tags(stage))
        node.cost = extract_cost(stage.cost_info, self._converter(node.id))
        return node

    def _parse_inputs(
        self,
        consumer: str,
        *,
        nested_loop: list[NestedLoopItem] | None = None,
        grouping: GroupingOperation | None = None,
        dedup: DuplicatesRemoval | None = None,
        table: TableInfo | None = None,
        buffer: BufferResult | None = None,
    ) -> None:
        """Parse whatever a stage nests, attaching it all to ``consumer``."""
        if nested_loop:
            self._parse_nested_loop(nested_loop, consumer)
        if grouping is not None:
            self._parse_grouping_stage(grouping, consumer)
        if dedup is not None:
            self._parse_dedup_stage(dedup, consumer)
        if table is not None:
            self._parse_table(table, consumer)
        if buffer is not None:
            self._parse_buffer_stage(buffer, consumer)

    def _parse_grouping_stage(self, op: GroupingOperation, consumer: str | None) -> None:
        group = self._emit_stage(NodeKind.GROUP, LABEL_GROUP, op, consumer)
        self._parse_inputs(
            group.id,
            nested_loop=op.nested_loop,
            table=op.table,
            buffer=op.buffer_result,
        )

    def _parse_dedup_stage(self, op: DuplicatesRemoval, consumer: str | None) -> None:
        distinct = self._emit_stage(NodeKind.DISTINCT, LABEL_DISTINCT, op, consumer)
        self._parse_inputs(distinct.id, nested_loop=op.nested_loop, table=op.table)

    def _parse_buffer_stage(self, op: BufferResult, consumer: str | None) -> None:
        buffer = self._emit(
            NodeKind.BUFFER,
            LABEL_BUFFER,
            consumer,
            raw=op.snapshot(),
            tags=stage_tags(op),
        )
        self._parse_inputs(buffer.id, nested_loop=op.nested_loop, table=op.table)

    # =========================================================================
    # Tables and joins
    # =========================================================================

    def _parse_nested_loop(self, items: list[NestedLoopItem], consumer: str | None) -> None:
        tables = [item.table for item in items if item.table is not None]
        if not tables:
            return

        if len(tables) == 1:
            self._parse_table(tables[0], consumer)
            return

        join = self._emit(
            NodeKind.JOIN,
            LABEL_JOIN,
            consumer,
            raw={"nested_loop": [item.snapshot() for item in items]},
        )
        inputs = [(table, self._parse_table(table, join.id)) for table in tables]

        # Table costs are already zeroed and recorded on their own nodes
        join.cost = sum(node.cost for _, node in inputs)
        join.rows = join_row_estimate(
            join_input_rows(table, self._converter(node.id)) for table, node in inputs
        )

    def _parse_table(self, table: TableInfo, consumer: str | None) -> PlanNode:
        node = self._emit(
            NodeKind.TABLE,
            table.table_name or LABEL_UNKNOWN_TABLE,
            consumer,
            raw=table.snapshot(),
            table=table.table_name,
            access_type=table.access_type,
            key=table.key,
            key_parts=list(table.used_key_parts) if table.used_key_parts is not None else None,
            condition=table.attached_condition,
            tags=extract_tags(table),
        )
        convert = self._converter(node.id)
        node.cost = extract_cost(table.cost_info, convert)
        node.rows = table_rows(table, convert)

        materialized = table.materialized_from_subquery
        if materialized is not None and materialized.query_block is not None:
            self._parse_block(materialized.query_block, node.id, NodeKind.SUBQUERY)

        return node


def join_row_estimate(estimates: Iterable[int]) -> int:
    """
    Cross-product row estimate for a nested-loop join, in input order.

    A running product that restarts from the next estimate whenever it has
    dropped to 0, so a table with no estimate (or a leading run of them)
    does not wipe out the whole figure: ``[5, 0, 3]`` gives 3,
    ``[0, 4, 2]`` gives 8.
    """
    total = 0
    for rows in estimates:
        total = rows if total == 0 else total * rows
    return total


def build_graph(block: QueryBlock, config: ParserConfig | None = None) -> BuildResult:
    """Convenience wrapper: build a graph with a fresh builder."""
    return PlanGraphBuilder(config).build(block)
