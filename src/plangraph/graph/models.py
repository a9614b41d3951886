"""
Normalized plan graph data structures.

Every operation in an EXPLAIN plan, whatever its nesting shape in the
input, is reduced to a flat PlanNode. Edges always point in data-flow
direction: producer -> consumer. A table scan feeding a join points to
the join; the join feeding a sort points to the sort.

Relationship to parser models:
- parser/models.py mirrors the nested MySQL JSON shape
- PlanNode is the flat, engine-facing shape the renderer consumes
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterator


class NodeKind(str, Enum):
    """Kinds of operation a PlanNode can represent."""

    SELECT = "select"
    TABLE = "table"
    JOIN = "join"
    SORT = "sort"
    GROUP = "group"
    DISTINCT = "distinct"
    UNION = "union"
    SUBQUERY = "subquery"
    TEMP_TABLE = "temp_table"
    BUFFER = "buffer"


class AccessType(str, Enum):
    """
    MySQL table access methods.

    Declared worst to best; ``rank`` follows declaration order so that
    comparisons read naturally (higher is better).
    """

    ALL = "ALL"                          # Full table scan
    INDEX = "index"                      # Full index scan
    RANGE = "range"                      # Index range scan
    INDEX_SUBQUERY = "index_subquery"
    UNIQUE_SUBQUERY = "unique_subquery"
    INDEX_MERGE = "index_merge"
    REF_OR_NULL = "ref_or_null"
    FULLTEXT = "fulltext"
    REF = "ref"                          # Non-unique index lookup
    EQ_REF = "eq_ref"                    # Unique index lookup
    CONST = "const"                      # Single row (constant)
    SYSTEM = "system"                    # System table with one row

    @property
    def rank(self) -> int:
        return list(AccessType).index(self)

    @property
    def severity(self) -> str:
        """Presentation band: "bad", "warning", "neutral" or "good"."""
        if self is AccessType.ALL:
            return "bad"
        if self in (AccessType.INDEX, AccessType.RANGE, AccessType.INDEX_MERGE):
            return "warning"
        if self.rank >= AccessType.REF.rank:
            return "good"
        return "neutral"

    @classmethod
    def from_value(cls, value: str | None) -> "AccessType | None":
        """Look up an access type, returning None for unknown values."""
        if value is None:
            return None
        try:
            return cls(value)
        except ValueError:
            return None


@dataclass
class PlanNode:
    """
    A single normalized plan operation.

    ``children`` lists the producers feeding this node, in the order they
    were attached. It is maintained only through the builder's attach()
    so that it always mirrors the edge list.
    """

    id: str
    kind: NodeKind
    label: str
    cost: float = 0.0
    rows: int = 0

    table: str | None = None
    access_type: str | None = None
    key: str | None = None
    key_parts: list[str] | None = None
    condition: str | None = None

    tags: list[str] = field(default_factory=list)
    children: list[str] = field(default_factory=list)
    is_critical_path: bool = False

    # Snapshot of the originating record, never interpreted
    raw: dict[str, Any] = field(default_factory=dict)

    @property
    def access(self) -> AccessType | None:
        return AccessType.from_value(self.access_type)

    @property
    def is_leaf(self) -> bool:
        return not self.children


@dataclass(frozen=True)
class Edge:
    """Data-flow edge: ``source`` produces rows that ``target`` consumes."""

    source: str
    target: str


@dataclass(frozen=True)
class Position:
    """
    Layout coordinates of a node.

    ``x`` is the horizontal centre of the node box, ``y`` its top edge.
    """

    x: float
    y: float


@dataclass(frozen=True)
class CorruptField:
    """A numeric field that held a non-numeric value and was zeroed."""

    node_id: str
    field: str
    value: Any


@dataclass
class PlanGraph:
    """
    Output of the plan graph pipeline.

    Nodes are in discovery order; edges in the order they were attached.
    """

    nodes: list[PlanNode]
    edges: list[Edge]
    positions: dict[str, Position] = field(default_factory=dict)
    critical_path: tuple[str, ...] = ()
    cumulative_costs: dict[str, float] = field(default_factory=dict)
    corrupt_fields: list[CorruptField] = field(default_factory=list)

    @property
    def total_cost(self) -> float:
        """
        Flat sum of every node's own cost.

        A join's cost already includes its tables' costs, so those are
        counted twice here; this is the figure MySQL tooling displays and
        is kept as-is.
        """
        return sum(node.cost for node in self.nodes)

    @property
    def roots(self) -> list[PlanNode]:
        """Nodes that feed no other node, in discovery order."""
        consumed = {edge.source for edge in self.edges}
        return [node for node in self.nodes if node.id not in consumed]

    def get_node(self, node_id: str) -> PlanNode | None:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def iter_critical(self) -> Iterator[PlanNode]:
        """Critical-path nodes from the root down to the leaf."""
        index = {node.id: node for node in self.nodes}
        for node_id in self.critical_path:
            yield index[node_id]
