"""
Output module - Separates rendering from graph construction.

Design principle: Presentation ≠ domain logic.

Provides multiple output formats:
- render_text: Plain indented tree for logs and terminals
- render_json: Stable JSON schema for front-end renderers
- render_markdown: GitHub-friendly summary
- build_rich_tree: Coloured rich Tree for the CLI

Usage:
    from plangraph.output import render_json

    graph = build_plan_graph(explain_text)
    payload = render_json(graph)
"""

from plangraph.output.renderers import (
    OutputFormat,
    build_rich_tree,
    graph_to_dict,
    graph_to_schema,
    render,
    render_json,
    render_markdown,
    render_text,
)
from plangraph.output.schema import (
    EdgeSchema,
    NodeSchema,
    SCHEMA_VERSION,
    PlanGraphSchema,
    get_json_schema,
)

__all__ = [
    "OutputFormat",
    "render",
    "render_text",
    "render_json",
    "render_markdown",
    "build_rich_tree",
    "graph_to_dict",
    "graph_to_schema",
    "EdgeSchema",
    "NodeSchema",
    "PlanGraphSchema",
    "SCHEMA_VERSION",
    "get_json_schema",
]
