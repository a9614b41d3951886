"""
Tests for the plan tree -> graph builder.

These tests verify:
- Each recognized block shape emits the right nodes
- Edges point producer -> consumer
- Shape precedence on mixed levels
- Discovery-order ids and per-build id reset
- Lenient vs strict handling of corrupt numbers
"""

from __future__ import annotations

import pytest

from plangraph.config import ParserConfig
from plangraph.exceptions import CorruptFieldError, ResourceLimitError
from plangraph.graph.builder import (
    BlockShape,
    IdAllocator,
    PlanGraphBuilder,
    build_graph,
    classify_block,
    join_row_estimate,
)
from plangraph.graph.models import Edge, NodeKind
from plangraph.parser import parse_explain
from plangraph.parser.models import QueryBlock


def build(data: dict, config: ParserConfig | None = None):
    return build_graph(parse_explain(data).query_block, config)


def edge_pairs(result) -> list[tuple[str, str]]:
    return [(edge.source, edge.target) for edge in result.edges]


# =============================================================================
# Shape classification
# =============================================================================


class TestClassifyBlock:
    """Priority-ordered shape detection."""

    def test_plain(self) -> None:
        assert classify_block(QueryBlock()) == BlockShape.PLAIN

    def test_ordering_beats_everything(self) -> None:
        block = QueryBlock.model_validate({
            "ordering_operation": {},
            "grouping_operation": {},
            "duplicates_removal": {},
            "union_result": {},
            "table": {"table_name": "t"},
        })
        assert classify_block(block) == BlockShape.ORDERING

    def test_grouping_before_dedup(self) -> None:
        block = QueryBlock.model_validate({"grouping_operation": {}, "duplicates_removal": {}})
        assert classify_block(block) == BlockShape.GROUPING

    def test_dedup_before_union(self) -> None:
        block = QueryBlock.model_validate({"duplicates_removal": {}, "union_result": {}})
        assert classify_block(block) == BlockShape.DEDUPLICATION

    def test_union(self) -> None:
        block = QueryBlock.model_validate({"union_result": {}, "table": {"table_name": "t"}})
        assert classify_block(block) == BlockShape.UNION


# =============================================================================
# Tables and joins
# =============================================================================


class TestTables:
    """Single table accesses."""

    def test_single_table(self, plan) -> None:
        result = build(plan("single_table"))

        assert len(result.nodes) == 1
        assert result.edges == []

        node = result.nodes[0]
        assert node.id == "node-1"
        assert node.kind == NodeKind.TABLE
        assert node.label == "users"
        assert node.cost == pytest.approx(10.5)
        assert node.rows == 100
        assert node.access_type == "ALL"
        assert node.table == "users"
        assert node.children == []
        assert node.is_critical_path is False

    def test_table_details(self) -> None:
        result = build({
            "query_block": {
                "table": {
                    "table_name": "indexed_table",
                    "access_type": "ref",
                    "key": "idx_name",
                    "used_key_parts": ["name"],
                    "using_index": True,
                    "attached_condition": "(`indexed_table`.`status` = 'active')",
                }
            }
        })

        node = result.nodes[0]
        assert node.key == "idx_name"
        assert node.key_parts == ["name"]
        assert node.tags == ["Using index"]
        assert "status" in node.condition

    def test_raw_snapshot(self, plan) -> None:
        node = build(plan("single_table")).nodes[0]

        assert node.raw["table_name"] == "users"
        assert node.raw["used_columns"] == ["id", "name", "email"]

    def test_unnamed_table(self) -> None:
        node = build({"query_block": {"table": {"access_type": "ALL"}}}).nodes[0]

        assert node.label == "Unknown Table"
        assert node.table is None

    def test_materialized_subquery(self, plan) -> None:
        result = build(plan("materialized"))

        derived, source = result.nodes
        assert derived.label == "recent"
        assert source.label == "orders"
        assert edge_pairs(result) == [(source.id, derived.id)]
        assert derived.children == [source.id]


class TestNestedLoop:
    """Multi-way nested-loop joins."""

    def test_two_table_join(self, plan) -> None:
        result = build(plan("nested_loop_join"))

        assert [n.kind for n in result.nodes] == [NodeKind.JOIN, NodeKind.TABLE, NodeKind.TABLE]
        join, orders, customers = result.nodes
        assert join.label == "Nested Loop Join"
        assert join.cost == pytest.approx(50.0)
        assert edge_pairs(result) == [(orders.id, join.id), (customers.id, join.id)]
        assert join.children == [orders.id, customers.id]

    def test_join_rows_are_product_of_produced_rows(self, plan) -> None:
        join = build(plan("nested_loop_join")).nodes[0]

        # 1000 produced by orders * 1000 produced by customers
        assert join.rows == 1_000_000

    def test_join_rows_restart_after_missing_estimate(self) -> None:
        result = build({
            "query_block": {
                "nested_loop": [
                    {"table": {"table_name": "a", "rows_produced_per_join": 5}},
                    {"table": {"table_name": "b"}},
                    {"table": {"table_name": "c", "rows_examined_per_scan": 3}},
                ]
            }
        })

        # 5 * 0 drops the running product to 0; c starts it again
        assert result.nodes[0].rows == 3

    def test_join_rows_leading_missing_estimate(self) -> None:
        result = build({
            "query_block": {
                "nested_loop": [
                    {"table": {"table_name": "a"}},
                    {"table": {"table_name": "b", "rows_produced_per_join": 4}},
                    {"table": {"table_name": "c", "rows_produced_per_join": 2}},
                ]
            }
        })

        assert result.nodes[0].rows == 8

    @pytest.mark.parametrize(
        "estimates, expected",
        [
            ([], 0),
            ([7], 7),
            ([5, 0, 3], 3),
            ([0, 4, 2], 8),
            ([2, 3, 0], 0),
            ([10, 10, 10], 1000),
        ],
    )
    def test_join_row_estimate(self, estimates, expected) -> None:
        assert join_row_estimate(estimates) == expected

    def test_single_entry_skips_join_node(self) -> None:
        result = build({
            "query_block": {
                "nested_loop": [{"table": {"table_name": "only", "access_type": "ALL"}}]
            }
        })

        assert len(result.nodes) == 1
        assert result.nodes[0].kind == NodeKind.TABLE

    def test_entries_without_table_are_ignored(self) -> None:
        result = build({"query_block": {"nested_loop": [{}, {}]}})

        assert result.nodes == []


# =============================================================================
# Stages
# =============================================================================


class TestStages:
    """ORDER BY / GROUP BY / DISTINCT / UNION / buffer stages."""

    def test_ordering_with_filesort(self, plan) -> None:
        result = build(plan("ordering_filesort"))

        sort, table = result.nodes
        assert sort.kind == NodeKind.SORT
        assert sort.label == "ORDER BY"
        assert sort.tags == ["Using filesort"]
        assert table.kind == NodeKind.TABLE
        assert table.table == "products"
        assert edge_pairs(result) == [(table.id, sort.id)]

    def test_group_by(self) -> None:
        result = build({
            "query_block": {
                "grouping_operation": {
                    "using_temporary_table": True,
                    "using_filesort": True,
                    "table": {"table_name": "sales", "access_type": "ALL"},
                }
            }
        })

        group, table = result.nodes
        assert group.kind == NodeKind.GROUP
        assert group.tags == ["Using filesort", "Using temporary table"]
        assert edge_pairs(result) == [(table.id, group.id)]

    def test_order_group_join_chain(self, plan) -> None:
        result = build(plan("order_group_join"))

        kinds = [n.kind for n in result.nodes]
        assert kinds == [
            NodeKind.SORT,
            NodeKind.GROUP,
            NodeKind.JOIN,
            NodeKind.TABLE,
            NodeKind.TABLE,
            NodeKind.TABLE,
        ]
        sort, group, join, orders, customers, items = result.nodes
        assert edge_pairs(result) == [
            (group.id, sort.id),
            (join.id, group.id),
            (orders.id, join.id),
            (customers.id, join.id),
            (items.id, join.id),
        ]
        assert sort.cost == 0.0  # only sort_cost present
        assert group.tags == ["Using temporary table"]
        assert join.cost == pytest.approx(625.0)

    def test_group_with_buffer(self) -> None:
        result = build({
            "query_block": {
                "grouping_operation": {
                    "buffer_result": {
                        "using_temporary_table": True,
                        "nested_loop": [
                            {"table": {"table_name": "a"}},
                            {"table": {"table_name": "b"}},
                        ],
                    }
                }
            }
        })

        kinds = [n.kind for n in result.nodes]
        assert kinds == [NodeKind.GROUP, NodeKind.BUFFER, NodeKind.JOIN, NodeKind.TABLE, NodeKind.TABLE]
        group, buffer, join, _, _ = result.nodes
        assert buffer.label == "Buffer Result"
        assert buffer.tags == ["Using temporary table"]
        assert group.children == [buffer.id]
        assert buffer.children == [join.id]

    def test_distinct(self) -> None:
        result = build({
            "query_block": {
                "duplicates_removal": {
                    "using_temporary_table": True,
                    "table": {"table_name": "tags", "access_type": "index"},
                }
            }
        })

        distinct, table = result.nodes
        assert distinct.kind == NodeKind.DISTINCT
        assert distinct.label == "DISTINCT"
        assert distinct.tags == ["Using temporary table"]
        assert edge_pairs(result) == [(table.id, distinct.id)]

    def test_ordering_over_distinct(self) -> None:
        result = build({
            "query_block": {
                "ordering_operation": {
                    "using_filesort": False,
                    "duplicates_removal": {"table": {"table_name": "t"}},
                }
            }
        })

        assert [n.kind for n in result.nodes] == [NodeKind.SORT, NodeKind.DISTINCT, NodeKind.TABLE]
        assert result.nodes[0].tags == []

    def test_union_branches(self, plan) -> None:
        result = build(plan("union"))

        union, customers, suppliers = result.nodes
        assert union.kind == NodeKind.UNION
        assert union.cost == 0.0
        assert union.tags == ["Using temporary table"]
        assert [customers.label, suppliers.label] == ["customers", "suppliers"]
        assert union.children == [customers.id, suppliers.id]

    def test_ordering_hides_same_level_table(self) -> None:
        result = build({
            "query_block": {
                "ordering_operation": {"using_filesort": True},
                "table": {"table_name": "ignored"},
                "grouping_operation": {"table": {"table_name": "also_ignored"}},
            }
        })

        assert len(result.nodes) == 1
        assert result.nodes[0].kind == NodeKind.SORT


# =============================================================================
# Plain blocks, subqueries and messages
# =============================================================================


class TestPlainBlocks:
    """Subqueries, nested blocks and diagnostic messages."""

    def test_subqueries_attach_to_same_point(self, plan) -> None:
        result = build(plan("subqueries"))

        employees, salaries, message = result.nodes
        assert employees.label == "employees"
        assert salaries.label == "salaries"
        assert message.kind == NodeKind.SUBQUERY
        assert message.label == "no matching row in const table"
        # Top level has no attachment point: three independent roots
        assert result.edges == []

    def test_subqueries_inside_derived_table(self) -> None:
        result = build({
            "query_block": {
                "table": {
                    "table_name": "derived",
                    "materialized_from_subquery": {
                        "query_block": {
                            "table": {"table_name": "inner_t"},
                            "optimized_away_subqueries": [
                                {"query_block": {"table": {"table_name": "lookup"}}},
                            ],
                        }
                    },
                }
            }
        })

        derived, inner, lookup = result.nodes
        assert derived.children == [inner.id, lookup.id]
        assert edge_pairs(result) == [(inner.id, derived.id), (lookup.id, derived.id)]

    def test_nested_query_block(self) -> None:
        result = build({
            "query_block": {
                "ordering_operation": {
                    "table": {
                        "table_name": "derived",
                        "materialized_from_subquery": {
                            "query_block": {
                                "query_block": {"table": {"table_name": "deep"}},
                            }
                        },
                    }
                }
            }
        })

        sort, derived, deep = result.nodes
        assert edge_pairs(result) == [(derived.id, sort.id), (deep.id, derived.id)]

    def test_message_only(self, plan) -> None:
        result = build(plan("impossible_where"))

        assert len(result.nodes) == 1
        node = result.nodes[0]
        assert node.kind == NodeKind.SELECT
        assert node.label == "Impossible WHERE"
        assert node.cost == 0.0
        assert node.raw == {"select_id": 1, "message": "Impossible WHERE"}

    def test_message_ignored_when_nodes_emitted(self) -> None:
        result = build({
            "query_block": {
                "message": "Using where",
                "table": {"table_name": "t"},
            }
        })

        assert [n.label for n in result.nodes] == ["t"]

    def test_empty_block_emits_nothing(self) -> None:
        result = build({"query_block": {}})

        assert result.nodes == []
        assert result.edges == []


# =============================================================================
# Ids, edges and determinism
# =============================================================================


class TestIds:
    """Discovery-order ids, reset per build."""

    def test_ids_follow_discovery_order(self, plan) -> None:
        result = build(plan("order_group_join"))

        assert [n.id for n in result.nodes] == [f"node-{i}" for i in range(1, 7)]

    def test_ids_reset_between_builds(self, plan) -> None:
        builder = PlanGraphBuilder()
        block = parse_explain(plan("nested_loop_join")).query_block

        first = builder.build(block)
        second = builder.build(block)

        assert [n.id for n in first.nodes] == [n.id for n in second.nodes]
        assert first.nodes is not second.nodes
        assert first.edges == second.edges

    def test_separate_builders_are_independent(self, plan) -> None:
        block = parse_explain(plan("union")).query_block
        a = PlanGraphBuilder()
        b = PlanGraphBuilder()

        result_a = a.build(block)
        result_b = b.build(block)

        assert [n.id for n in result_a.nodes] == [n.id for n in result_b.nodes]

    def test_attach_keeps_children_and_edges_in_sync(self, plan) -> None:
        result = build(plan("order_group_join"))

        for node in result.nodes:
            feeding = [e.source for e in result.edges if e.target == node.id]
            assert node.children == feeding

    def test_edges_are_edge_objects(self, plan) -> None:
        result = build(plan("nested_loop_join"))
        assert all(isinstance(edge, Edge) for edge in result.edges)


class TestIdAllocator:
    """Per-build id allocation."""

    def test_sequence(self) -> None:
        ids = IdAllocator()
        assert [ids.allocate() for _ in range(3)] == ["node-1", "node-2", "node-3"]
        assert ids.issued == 3

    def test_limit(self) -> None:
        ids = IdAllocator(limit=2)
        ids.allocate()
        ids.allocate()

        with pytest.raises(ResourceLimitError):
            ids.allocate()

    def test_builder_enforces_max_nodes(self, plan) -> None:
        with pytest.raises(ResourceLimitError, match="Plan too large"):
            build(plan("order_group_join"), ParserConfig(max_nodes=3))


# =============================================================================
# Corrupt numeric fields
# =============================================================================


class TestCorruptFields:
    """Non-numeric statistics degrade to zero unless strict."""

    CORRUPT = {
        "query_block": {
            "nested_loop": [
                {"table": {"table_name": "a", "cost_info": {"read_cost": "n/a"}, "rows_examined_per_scan": 10}},
                {"table": {"table_name": "b", "cost_info": {"read_cost": "4.0"}, "rows_examined_per_scan": "many"}},
            ]
        }
    }

    def test_lenient_zeroes_and_records(self) -> None:
        result = build(self.CORRUPT)

        join, a, b = result.nodes
        assert a.cost == 0.0
        assert a.rows == 10
        assert b.cost == pytest.approx(4.0)
        assert b.rows == 0
        assert join.cost == pytest.approx(4.0)
        # 10 from a, then b has nothing usable
        assert join.rows == 0

        recorded = [(cf.node_id, cf.field, cf.value) for cf in result.corrupt_fields]
        assert recorded == [
            (a.id, "read_cost", "n/a"),
            (b.id, "rows_examined_per_scan", "many"),
        ]

    def test_join_does_not_record_table_fields_again(self) -> None:
        result = build(self.CORRUPT)

        join = result.nodes[0]
        assert all(cf.node_id != join.id for cf in result.corrupt_fields)
        assert len(result.corrupt_fields) == 2

    @pytest.mark.parametrize("value", [[1], {"value": 1}, True, False])
    def test_non_scalar_cost_is_corrupt_not_malformed(self, value) -> None:
        result = build({
            "query_block": {
                "table": {
                    "table_name": "t",
                    "cost_info": {"read_cost": value},
                    "rows_examined_per_scan": 10,
                }
            }
        })

        (node,) = result.nodes
        assert node.cost == 0.0
        assert node.rows == 10
        assert [(cf.node_id, cf.field, cf.value) for cf in result.corrupt_fields] == [
            (node.id, "read_cost", value)
        ]

    def test_bool_rows_are_not_counted_as_one(self) -> None:
        result = build({
            "query_block": {"table": {"table_name": "t", "rows_examined_per_scan": True}}
        })

        assert result.nodes[0].rows == 0
        assert result.corrupt_fields[0].field == "rows_examined_per_scan"

    def test_non_scalar_cost_raises_when_strict(self) -> None:
        data = {"query_block": {"table": {"table_name": "t", "cost_info": {"read_cost": [1]}}}}

        with pytest.raises(CorruptFieldError):
            build(data, ParserConfig(strict_numbers=True))

    def test_corrupt_row_candidate_falls_back_to_next(self) -> None:
        result = build({
            "query_block": {
                "nested_loop": [
                    {"table": {"table_name": "a", "rows_produced_per_join": "x", "rows_examined_per_scan": 6}},
                    {"table": {"table_name": "b", "rows_produced_per_join": 2}},
                ]
            }
        })

        join, a, _ = result.nodes
        assert a.rows == 6
        assert join.rows == 12
        assert [(cf.node_id, cf.field) for cf in result.corrupt_fields] == [
            (a.id, "rows_produced_per_join")
        ]

    def test_other_fields_survive(self) -> None:
        result = build(self.CORRUPT)

        assert [n.label for n in result.nodes] == ["Nested Loop Join", "a", "b"]

    def test_strict_raises(self) -> None:
        with pytest.raises(CorruptFieldError):
            build(self.CORRUPT, ParserConfig(strict_numbers=True))
