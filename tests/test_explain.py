"""Tests for plan decoding."""

import json

import pytest

from typed_spi.duckdb_engine import normalize_plan
from typed_spi.errors import DecodeError
from typed_spi.explain import Explain, PlanNode

SELECT_ONE_PLAN = """
[{"Plan": {"Node Type": "Result", "Parallel Aware": false, "Plan Rows": 1,
           "Plan Width": 4, "Startup Cost": 0.0, "Total Cost": 0.01}}]
"""


class TestExplainParse:
    def test_parse_single_node(self):
        result = Explain.parse(SELECT_ONE_PLAN)
        assert result.root == PlanNode(
            node_type="Result",
            parallel_aware=False,
            plan_rows=1,
            plan_width=4,
            startup_cost=0.0,
            total_cost=0.01,
        )

    def test_structural_equality(self):
        """Plans compare by field values, not by the text they came from."""
        compact = json.dumps(json.loads(SELECT_ONE_PLAN), separators=(",", ":"))
        assert Explain.parse(compact) == Explain.parse(SELECT_ONE_PLAN)

    def test_differing_estimate_is_unequal(self):
        other = SELECT_ONE_PLAN.replace('"Plan Width": 4', '"Plan Width": 1')
        assert Explain.parse(other) != Explain.parse(SELECT_ONE_PLAN)

    def test_children_and_extra_fields(self):
        document = [{"Plan": {
            "Node Type": "Hash Join", "Parallel Aware": False, "Plan Rows": 10,
            "Plan Width": 8, "Startup Cost": 1.5, "Total Cost": 20.25,
            "Join Type": "Inner",
            "Plans": [
                {"Node Type": "Seq Scan", "Parallel Aware": True, "Plan Rows": 100,
                 "Plan Width": 4, "Startup Cost": 0.0, "Total Cost": 10.0},
                {"Node Type": "Hash", "Parallel Aware": False, "Plan Rows": 5,
                 "Plan Width": 4, "Startup Cost": 1.0, "Total Cost": 1.0},
            ],
        }}]
        root = Explain.from_json(document).root
        assert root.extra == {"Join Type": "Inner"}
        assert [n.node_type for n in root.walk()] == ["Hash Join", "Seq Scan", "Hash"]
        assert root.plans[0].parallel_aware is True

    def test_missing_field(self):
        with pytest.raises(DecodeError, match="Total Cost"):
            Explain.from_json([{"Plan": {
                "Node Type": "Result", "Parallel Aware": False, "Plan Rows": 1,
                "Plan Width": 4, "Startup Cost": 0.0,
            }}])

    def test_not_json(self):
        with pytest.raises(DecodeError):
            Explain.parse("Result  (cost=0.00..0.01 rows=1 width=4)")

    def test_entry_without_plan(self):
        with pytest.raises(DecodeError):
            Explain.from_json([{"Node Type": "Result"}])

    def test_bad_flag_type(self):
        with pytest.raises(DecodeError):
            Explain.from_json([{"Plan": {
                "Node Type": "Result", "Parallel Aware": "no", "Plan Rows": 1,
                "Plan Width": 4, "Startup Cost": 0.0, "Total Cost": 0.01,
            }}])

    def test_empty_root(self):
        with pytest.raises(DecodeError):
            Explain.from_json([]).root


class TestNormalizePlan:
    def test_duckdb_tree(self):
        """DuckDB operator trees are reshaped into the engine plan shape."""
        tree = [{
            "name": "PROJECTION",
            "children": [{"name": "DUMMY_SCAN", "children": [], "extra_info": {}}],
            "extra_info": {"Projections": "1", "Estimated Cardinality": "1"},
        }]
        result = Explain.from_json(normalize_plan(tree))
        root = result.root
        assert root.node_type == "PROJECTION"
        assert root.plan_rows == 1
        assert root.plan_width == 0
        assert root.startup_cost == 0.0 and root.total_cost == 0.0
        assert root.parallel_aware is False
        assert root.extra == {"Extra Info": {"Projections": "1"}}
        assert [n.node_type for n in root.walk()] == ["PROJECTION", "DUMMY_SCAN"]

    def test_cardinality_with_decoration(self):
        tree = {"name": "SEQ_SCAN ", "children": [], "extra_info": {"Estimated Cardinality": "~1,000"}}
        root = Explain.from_json(normalize_plan(tree)).root
        assert root.node_type == "SEQ_SCAN"
        assert root.plan_rows == 1000
