"""
PlanGraphService - orchestration layer for plangraph.

The single entry point for turning EXPLAIN output into a renderable graph.
CLI and any embedding application should use this service rather than
calling the individual stages themselves.

Pipeline:
    validate/parse -> build graph -> mark critical path -> layout

Every stage is a pure, synchronous function of its input. The service
holds configuration only, so one instance may be shared freely.

Usage:
    from plangraph.engine import PlanGraphService

    service = PlanGraphService()
    graph = service.build(explain_text)

    for node in graph.nodes:
        print(node.label, graph.positions[node.id])
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Any

from plangraph.config import Config, get_config
from plangraph.graph.builder import PlanGraphBuilder
from plangraph.graph.critical_path import mark_critical_path
from plangraph.graph.layout import compute_layout
from plangraph.graph.models import PlanGraph
from plangraph.parser.models import ExplainDocument
from plangraph.parser.parser import parse_explain

logger = logging.getLogger(__name__)


class PlanGraphService:
    """Runs the full parse -> graph -> critical path -> layout pipeline."""

    def __init__(self, config: Config | None = None) -> None:
        self.config = config or get_config()

    def build(self, source: str | Path | dict[str, Any]) -> PlanGraph:
        """
        Build a plan graph from EXPLAIN JSON text, a file path or a dict.

        Raises:
            ParseError: Input is malformed, lacks query_block, or is too large
            CorruptFieldError: Non-numeric statistic with strict_numbers on
        """
        document = parse_explain(source, self.config.parser)
        return self.build_from_document(document)

    def build_from_document(self, document: ExplainDocument) -> PlanGraph:
        """Build a plan graph from an already validated document."""
        start = time.perf_counter()

        built = PlanGraphBuilder(self.config.parser).build(document.query_block)
        critical = mark_critical_path(built.nodes)
        layout = compute_layout(built.nodes, built.edges, self.config.layout)

        graph = PlanGraph(
            nodes=built.nodes,
            edges=built.edges,
            positions=layout.positions,
            critical_path=critical.node_ids,
            cumulative_costs=critical.cumulative_costs,
            corrupt_fields=built.corrupt_fields,
        )

        logger.debug(
            "Plan graph ready in %.2fms: %d nodes, %d edges, total cost %.2f",
            (time.perf_counter() - start) * 1000,
            len(graph.nodes),
            len(graph.edges),
            graph.total_cost,
        )
        return graph


def build_plan_graph(
    source: str | Path | dict[str, Any],
    config: Config | None = None,
) -> PlanGraph:
    """Convenience wrapper around PlanGraphService.build()."""
    return PlanGraphService(config).build(source)
