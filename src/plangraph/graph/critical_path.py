"""
Critical path annotation.

The critical path is the single root-to-leaf chain with the greatest
cumulative cost, where a node's cumulative cost is its own cost plus the
largest cumulative cost among its producers.

Only one path is marked per call, starting from the globally most
expensive root. Ties go to whichever candidate comes first (discovery
order for roots, ``children`` order below that).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from plangraph.graph.models import PlanNode

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CriticalPath:
    """Ids on the critical path (root first) and every node's cumulative cost."""

    node_ids: tuple[str, ...] = ()
    cumulative_costs: dict[str, float] = field(default_factory=dict)

    @property
    def cost(self) -> float:
        if not self.node_ids:
            return 0.0
        return self.cumulative_costs[self.node_ids[0]]


def compute_cumulative_costs(nodes: list[PlanNode]) -> dict[str, float]:
    """
    Cumulative cost for every node, memoized bottom-up.

    The builder only ever attaches a subtree to an ancestor, so the graph
    is acyclic; child ids that aren't in ``nodes`` count as 0.
    """
    index = {node.id: node for node in nodes}
    memo: dict[str, float] = {}

    def cumulative(node_id: str) -> float:
        if node_id in memo:
            return memo[node_id]
        node = index.get(node_id)
        if node is None:
            return 0.0
        best_child = max((cumulative(child) for child in node.children), default=0.0)
        memo[node_id] = node.cost + best_child
        return memo[node_id]

    for node in nodes:
        cumulative(node.id)
    return memo


def find_roots(nodes: list[PlanNode]) -> list[PlanNode]:
    """Nodes that are nobody's child, in discovery order."""
    consumed = {child for node in nodes for child in node.children}
    return [node for node in nodes if node.id not in consumed]


def mark_critical_path(nodes: list[PlanNode]) -> CriticalPath:
    """
    Mark the most expensive root-to-leaf chain with ``is_critical_path``.

    Any previous marking is cleared first, so exactly one path is marked
    after each call (none for an empty graph).
    """
    for node in nodes:
        node.is_critical_path = False

    costs = compute_cumulative_costs(nodes)
    roots = find_roots(nodes)
    if not roots:
        return CriticalPath(cumulative_costs=costs)

    index = {node.id: node for node in nodes}
    current: PlanNode | None = max(roots, key=lambda node: costs[node.id])
    path: list[str] = []

    while current is not None and not current.is_critical_path:
        current.is_critical_path = True
        path.append(current.id)

        known = [child for child in current.children if child in index]
        if not known:
            break
        next_id = max(known, key=lambda child: costs.get(child, 0.0))
        current = index[next_id]

    logger.debug("Critical path: %d nodes, cumulative cost %.2f", len(path), costs[path[0]])
    return CriticalPath(node_ids=tuple(path), cumulative_costs=costs)
