"""
JSON Schema definitions for the rendering layer.

Provides a versioned schema for:
- Front-ends that draw the graph (nodes, edges, positions)
- CI/CD or scripts that inspect plan cost

The schema is stable across minor versions.
Breaking changes only in major versions.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class PositionSchema(BaseModel):
    """Schema for node coordinates."""

    model_config = ConfigDict(frozen=True)

    x: float = Field(..., description="Left edge of the node box")
    y: float = Field(..., description="Top edge of the node box")
    center_x: float = Field(..., description="Horizontal centre of the node box")


class NodeSchema(BaseModel):
    """Schema for a single plan operation."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Node id, unique within one graph")
    kind: str = Field(..., description="Operation kind (table/join/sort/...)")
    label: str = Field(..., description="Display label")
    cost: float = Field(0.0, description="Node's own cost")
    cumulative_cost: float = Field(0.0, description="Own cost plus most expensive producer chain")
    rows: int = Field(0, description="Row estimate")
    table: str | None = Field(None, description="Table name for table accesses")
    access_type: str | None = Field(None, description="MySQL access type (ALL, ref, ...)")
    access_severity: str | None = Field(None, description="bad/warning/neutral/good")
    key: str | None = Field(None, description="Index used")
    key_parts: list[str] | None = Field(None, description="Index columns used")
    condition: str | None = Field(None, description="Attached filter condition")
    tags: list[str] = Field(default_factory=list, description="Operational flags")
    children: list[str] = Field(default_factory=list, description="Producer node ids")
    is_critical_path: bool = Field(False, description="Whether the node is on the critical path")
    position: PositionSchema | None = Field(None, description="Layout coordinates")
    raw: dict[str, Any] = Field(default_factory=dict, description="Original EXPLAIN record")


class EdgeSchema(BaseModel):
    """Schema for a producer -> consumer edge."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Edge id")
    source: str = Field(..., description="Producer node id")
    target: str = Field(..., description="Consumer node id")
    rows: int = Field(0, description="Row estimate flowing along the edge")
    is_critical_path: bool = Field(False, description="Both ends lie on the critical path")


class CorruptFieldSchema(BaseModel):
    """Schema for a numeric field that was zeroed."""

    model_config = ConfigDict(frozen=True)

    node_id: str
    field: str
    value: str = Field(..., description="repr() of the original value")


class SummarySchema(BaseModel):
    """Schema for graph totals."""

    model_config = ConfigDict(frozen=True)

    node_count: int = Field(0, description="Total nodes")
    edge_count: int = Field(0, description="Total edges")
    root_count: int = Field(0, description="Nodes that feed nothing")
    total_cost: float = Field(0.0, description="Flat sum of node costs")
    max_cost: float = Field(1.0, description="Largest node cost (at least 1), for colour scaling")
    critical_path_cost: float = Field(0.0, description="Cumulative cost of the critical path")


class PlanGraphSchema(BaseModel):
    """
    Top-level schema for a plan graph.

    This schema is stable across minor versions.
    Breaking changes require major version bump.
    """

    model_config = ConfigDict(frozen=True)

    version: str = Field("1.0", description="Schema version")
    summary: SummarySchema = Field(..., description="Graph totals")
    nodes: list[NodeSchema] = Field(default_factory=list, description="Nodes in discovery order")
    edges: list[EdgeSchema] = Field(default_factory=list, description="Edges in attachment order")
    critical_path: list[str] = Field(default_factory=list, description="Critical path, root first")
    corrupt_fields: list[CorruptFieldSchema] = Field(
        default_factory=list, description="Numeric fields that were zeroed"
    )


def get_json_schema() -> dict[str, Any]:
    """Get the JSON Schema for API documentation."""
    return PlanGraphSchema.model_json_schema()


# Schema version - increment on breaking changes
SCHEMA_VERSION = "1.0"
