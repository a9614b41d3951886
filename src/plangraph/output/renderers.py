"""
Output renderers for different formats.

Separates presentation logic from graph construction.
JSON output always goes through the schema.py Pydantic models;
nothing here builds output dicts by hand.
"""

from __future__ import annotations

import json
from enum import Enum
from typing import TYPE_CHECKING, Any

from rich.text import Text
from rich.tree import Tree

from plangraph.config import DEFAULT_LAYOUT
from plangraph.graph.models import AccessType
from plangraph.output.schema import (
    CorruptFieldSchema,
    EdgeSchema,
    NodeSchema,
    PlanGraphSchema,
    PositionSchema,
    SummarySchema,
)

if TYPE_CHECKING:
    from plangraph.graph.models import PlanGraph, PlanNode


class OutputFormat(str, Enum):
    """Supported output formats."""

    TEXT = "text"
    JSON = "json"
    MARKDOWN = "markdown"


# rich styles per access severity band
SEVERITY_STYLES = {
    "bad": "red",
    "warning": "yellow",
    "neutral": "magenta",
    "good": "green",
}


def render(graph: "PlanGraph", format: OutputFormat = OutputFormat.TEXT) -> str:
    """
    Render a plan graph in the specified format.

    Args:
        graph: Graph to render
        format: Output format (text, json, markdown)

    Returns:
        Formatted string
    """
    if format == OutputFormat.TEXT:
        return render_text(graph)
    elif format == OutputFormat.JSON:
        return render_json(graph)
    elif format == OutputFormat.MARKDOWN:
        return render_markdown(graph)
    else:
        raise ValueError(f"Unknown output format: {format}")


# =============================================================================
# Schema-based serialization (single source of truth)
# =============================================================================


def graph_to_schema(graph: "PlanGraph", node_width: float | None = None) -> PlanGraphSchema:
    """Convert a PlanGraph to the Pydantic schema model."""
    node_width = node_width if node_width is not None else DEFAULT_LAYOUT.node_width
    index = {node.id: node for node in graph.nodes}

    nodes = [_node_to_schema(graph, node, node_width) for node in graph.nodes]
    edges = [
        EdgeSchema(
            id=f"edge-{i}",
            source=edge.source,
            target=edge.target,
            rows=index[edge.source].rows if edge.source in index else 0,
            is_critical_path=(
                edge.source in index
                and edge.target in index
                and index[edge.source].is_critical_path
                and index[edge.target].is_critical_path
            ),
        )
        for i, edge in enumerate(graph.edges)
    ]

    critical_cost = graph.cumulative_costs.get(graph.critical_path[0], 0.0) if graph.critical_path else 0.0

    return PlanGraphSchema(
        summary=SummarySchema(
            node_count=len(graph.nodes),
            edge_count=len(graph.edges),
            root_count=len(graph.roots),
            total_cost=graph.total_cost,
            max_cost=max([node.cost for node in graph.nodes] + [1.0]),
            critical_path_cost=critical_cost,
        ),
        nodes=nodes,
        edges=edges,
        critical_path=list(graph.critical_path),
        corrupt_fields=[
            CorruptFieldSchema(node_id=cf.node_id, field=cf.field, value=repr(cf.value))
            for cf in graph.corrupt_fields
        ],
    )


def _node_to_schema(graph: "PlanGraph", node: "PlanNode", node_width: float) -> NodeSchema:
    position = graph.positions.get(node.id)
    access = node.access
    return NodeSchema(
        id=node.id,
        kind=node.kind.value,
        label=node.label,
        cost=node.cost,
        cumulative_cost=graph.cumulative_costs.get(node.id, node.cost),
        rows=node.rows,
        table=node.table,
        access_type=node.access_type,
        access_severity=access.severity if access else None,
        key=node.key,
        key_parts=node.key_parts,
        condition=node.condition,
        tags=list(node.tags),
        children=list(node.children),
        is_critical_path=node.is_critical_path,
        position=(
            PositionSchema(x=position.x - node_width / 2, y=position.y, center_x=position.x)
            if position
            else None
        ),
        raw=node.raw,
    )


def graph_to_dict(graph: "PlanGraph") -> dict[str, Any]:
    """Convert a PlanGraph to a dictionary via the schema model."""
    return graph_to_schema(graph).model_dump(mode="json")


# =============================================================================
# Text renderer (terminal)
# =============================================================================


def _describe(node: "PlanNode") -> str:
    parts = [f"{node.label} [{node.kind.value}]", f"cost={node.cost:,.2f}", f"rows={node.rows:,}"]
    if node.access_type:
        parts.append(f"access={node.access_type}")
    if node.key:
        parts.append(f"key={node.key}")
    if node.tags:
        parts.append("(" + "; ".join(node.tags) + ")")
    return " ".join(parts)


def render_text(graph: "PlanGraph") -> str:
    """
    Render a plan graph as an indented plain-text tree.

    Each root is printed with its producers nested beneath it; critical
    path nodes are prefixed with ``*``.
    """
    index = {node.id: node for node in graph.nodes}
    lines: list[str] = []

    lines.append("=" * 60)
    lines.append("Query Plan Graph")
    lines.append("=" * 60)
    lines.append(f"Nodes: {len(graph.nodes)}  Edges: {len(graph.edges)}")
    lines.append(f"Total cost: {graph.total_cost:,.2f}")
    lines.append("")

    def walk(node_id: str, prefix: str, is_last: bool, top: bool) -> None:
        node = index[node_id]
        marker = "* " if node.is_critical_path else ""
        connector = "" if top else ("└── " if is_last else "├── ")
        lines.append(f"{prefix}{connector}{marker}{_describe(node)}")
        child_prefix = prefix if top else prefix + ("    " if is_last else "│   ")
        for i, child in enumerate(node.children):
            if child in index:
                walk(child, child_prefix, i == len(node.children) - 1, False)

    for root in graph.roots:
        walk(root.id, "", True, True)

    if not graph.nodes:
        lines.append("(empty plan)")

    if graph.corrupt_fields:
        lines.append("")
        lines.append("Corrupt fields (zeroed):")
        for cf in graph.corrupt_fields:
            lines.append(f"  {cf.node_id}: {cf.field}={cf.value!r}")

    lines.append("")
    lines.append("=" * 60)
    return "\n".join(lines)


def build_rich_tree(graph: "PlanGraph") -> Tree:
    """
    Build a rich Tree for terminal display.

    Access types are coloured by severity; the critical path is bold.
    """
    index = {node.id: node for node in graph.nodes}
    tree = Tree(Text(f"Query plan (total cost {graph.total_cost:,.2f})", style="bold"))

    def label(node: "PlanNode") -> Text:
        text = Text(node.label, style="bold red" if node.is_critical_path else "bold")
        text.append(f" [{node.kind.value}]", style="dim")
        text.append(f"  cost {node.cost:,.2f}  rows {node.rows:,}")
        access = AccessType.from_value(node.access_type)
        if node.access_type:
            style = SEVERITY_STYLES.get(access.severity, "") if access else ""
            text.append(f"  {node.access_type}", style=style)
        for tag in node.tags:
            text.append(f"  {tag}", style="yellow")
        return text

    def add(parent: Tree, node_id: str) -> None:
        node = index[node_id]
        branch = parent.add(label(node))
        for child in node.children:
            if child in index:
                add(branch, child)

    for root in graph.roots:
        add(tree, root.id)

    return tree


# =============================================================================
# JSON renderer (uses schema models)
# =============================================================================


def render_json(graph: "PlanGraph", indent: int = 2) -> str:
    """
    Render a plan graph as stable JSON schema.

    Uses Pydantic schema models for guaranteed consistency.
    """
    return json.dumps(graph_to_dict(graph), indent=indent, default=str)


# =============================================================================
# Markdown renderer
# =============================================================================


def render_markdown(graph: "PlanGraph") -> str:
    """
    Render the critical path and node table as Markdown.

    Suitable for GitHub comments/issues and documentation.
    """
    lines: list[str] = []

    lines.append("# Query Plan Graph")
    lines.append("")
    lines.append("| Metric | Value |")
    lines.append("|--------|-------|")
    lines.append(f"| Nodes | {len(graph.nodes)} |")
    lines.append(f"| Edges | {len(graph.edges)} |")
    lines.append(f"| Total Cost | {graph.total_cost:,.2f} |")
    lines.append("")

    if graph.critical_path:
        lines.append("## Critical Path")
        lines.append("")
        for i, node in enumerate(graph.iter_critical(), 1):
            lines.append(f"{i}. **{node.label}** (`{node.kind.value}`), cost {node.cost:,.2f}")
        lines.append("")

    if graph.nodes:
        lines.append("## Nodes")
        lines.append("")
        lines.append("| Id | Kind | Label | Cost | Rows | Access | Tags |")
        lines.append("|----|------|-------|------|------|--------|------|")
        for node in graph.nodes:
            tags = ", ".join(node.tags)
            lines.append(
                f"| {node.id} | {node.kind.value} | {node.label} | {node.cost:,.2f} "
                f"| {node.rows:,} | {node.access_type or ''} | {tags} |"
            )
        lines.append("")

    return "\n".join(lines)
