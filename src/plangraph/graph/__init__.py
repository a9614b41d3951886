"""
Normalized plan graph: construction, critical path and layout.

Pipeline stages, in order:
- builder.PlanGraphBuilder: nested QueryBlock -> flat nodes + edges
- critical_path.mark_critical_path: flag the most expensive chain
- layout.compute_layout: 2-D coordinates for every node
"""

from plangraph.graph.builder import (
    BlockShape,
    BuildResult,
    IdAllocator,
    PlanGraphBuilder,
    build_graph,
    classify_block,
)
from plangraph.graph.critical_path import CriticalPath, mark_critical_path
from plangraph.graph.layout import Layout, compute_layout
from plangraph.graph.models import (
    AccessType,
    CorruptField,
    Edge,
    NodeKind,
    PlanGraph,
    PlanNode,
    Position,
)

__all__ = [
    # Models
    "AccessType",
    "CorruptField",
    "Edge",
    "NodeKind",
    "PlanGraph",
    "PlanNode",
    "Position",
    # Builder
    "BlockShape",
    "BuildResult",
    "IdAllocator",
    "PlanGraphBuilder",
    "build_graph",
    "classify_block",
    # Critical path
    "CriticalPath",
    "mark_critical_path",
    # Layout
    "Layout",
    "compute_layout",
]
