"""
Tidy tree layout for plan graphs.

Two passes over the producer -> consumer forest:

1. Post-order: each node's subtree width is the larger of one node width
   and the combined width of its producers' subtrees plus the gaps
   between them.
2. Pre-order: each node is centred over the horizontal span its subtree
   reserved, and its producers are laid out left to right inside that span.

Rows are counted from the root: a root sits in the bottom row and each
edge hop towards the leaves moves one row up, so every consumer is drawn
strictly below all of its producers and data visibly flows downwards.

Disconnected roots are placed side by side with a double gap between them.
Anything the traversal never reaches is stacked in a column to the right
so no node silently disappears.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field

from plangraph.config import DEFAULT_LAYOUT, LayoutConfig
from plangraph.graph.models import Edge, PlanNode, Position

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Layout:
    """Computed node positions plus the overall drawing extent."""

    positions: dict[str, Position] = field(default_factory=dict)
    width: float = 0.0
    height: float = 0.0
    orphans: tuple[str, ...] = ()


def compute_layout(
    nodes: list[PlanNode],
    edges: list[Edge],
    config: LayoutConfig | None = None,
) -> Layout:
    """
    Assign a Position to every node.

    Args:
        nodes: Graph nodes in discovery order
        edges: Producer -> consumer edges
        config: Node geometry; defaults to DEFAULT_LAYOUT

    Returns:
        Layout with one Position per node
    """
    config = config or DEFAULT_LAYOUT
    node_width = config.node_width
    gap = config.horizontal_gap

    node_ids = {node.id for node in nodes}
    producers: dict[str, list[str]] = defaultdict(list)
    has_consumer: set[str] = set()
    for edge in edges:
        if edge.source in node_ids and edge.target in node_ids:
            producers[edge.target].append(edge.source)
            has_consumer.add(edge.source)

    roots = [node.id for node in nodes if node.id not in has_consumer]

    # Pass 1: subtree widths
    widths: dict[str, float] = {}
    visiting: set[str] = set()

    def subtree_width(node_id: str) -> float:
        if node_id in widths:
            return widths[node_id]
        if node_id in visiting:
            return node_width
        visiting.add(node_id)

        children = producers.get(node_id, [])
        if children:
            spread = sum(subtree_width(child) for child in children) + gap * (len(children) - 1)
            width = max(node_width, spread)
        else:
            width = node_width

        visiting.discard(node_id)
        widths[node_id] = width
        return width

    for root in roots:
        subtree_width(root)

    # Pass 2: centred placement, recording row depth
    centres: dict[str, float] = {}
    depths: dict[str, int] = {}

    def place(node_id: str, left: float, depth: int) -> None:
        if node_id in centres:
            return
        width = widths.get(node_id, node_width)
        centres[node_id] = left + width / 2
        depths[node_id] = depth

        children = producers.get(node_id, [])
        if not children:
            return
        spread = sum(widths.get(child, node_width) for child in children) + gap * (len(children) - 1)
        child_left = left + (width - spread) / 2
        for child in children:
            place(child, child_left, depth + 1)
            child_left += widths.get(child, node_width) + gap

    cursor = 0.0
    for root in roots:
        place(root, cursor, 0)
        cursor += widths.get(root, node_width) + gap * 2

    row_height = config.row_height
    deepest = max(depths.values(), default=0)
    positions = {
        node_id: Position(x=centres[node_id], y=(deepest - depths[node_id]) * row_height)
        for node_id in centres
    }

    orphans = [node.id for node in nodes if node.id not in positions]
    for i, node_id in enumerate(orphans):
        positions[node_id] = Position(x=cursor + node_width / 2, y=i * row_height)
    if orphans:
        logger.warning("Layout could not reach %d node(s); stacked them at the right", len(orphans))

    width = max((pos.x + node_width / 2 for pos in positions.values()), default=0.0)
    height = max((pos.y + config.node_height for pos in positions.values()), default=0.0)

    return Layout(positions=positions, width=width, height=height, orphans=tuple(orphans))
