"""Tests for condition operators and condition-node evaluation."""

import logging

import pytest

from dagflow.workflow.conditions import (
    OperatorEvaluator,
    OperatorRegistry,
    check_condition,
    coerce_to_string,
    parse_number,
)
from dagflow.workflow.graph import Node, NodeKind

from graph_fixtures import condition


class TestCoercion:
    @pytest.mark.parametrize("value, expected", [
        (None, ""),
        (True, "true"),
        (False, "false"),
        (3, "3"),
        (2.5, "2.5"),
        ("text", "text"),
    ])
    def test_coerce_to_string(self, value, expected):
        assert coerce_to_string(value) == expected

    @pytest.mark.parametrize("text, expected", [
        ("5", 5.0),
        (" -1.5 ", -1.5),
        ("1e3", 1000.0),
        ("", None),
        ("   ", None),
        ("abc", None),
        ("nan", None),
        ("NaN", None),
        ("inf", None),
        ("-Infinity", None),
        ("1_000", None),
        ("١٢", None),
        ("+.5", 0.5),
        ("1.", 1.0),
    ])
    def test_parse_number(self, text, expected):
        assert parse_number(text) == expected


class TestOperators:
    def test_eq_and_neq(self):
        assert OperatorRegistry.evaluate("eq", "done", "done")
        assert not OperatorRegistry.evaluate("eq", "done", "Done")
        assert OperatorRegistry.evaluate("neq", "done", "Done")

    def test_contains(self):
        assert OperatorRegistry.evaluate("contains", "review approved", "approved")
        assert not OperatorRegistry.evaluate("contains", "", "approved")
        assert OperatorRegistry.evaluate("not_contains", "needs work", "approved")

    def test_gt_lt_numeric(self):
        assert OperatorRegistry.evaluate("gt", "10", "9.5")
        assert not OperatorRegistry.evaluate("gt", "9", "9")
        assert OperatorRegistry.evaluate("lt", "-2", "0")

    def test_numeric_compare_is_not_lexicographic(self):
        assert OperatorRegistry.evaluate("gt", "10", "9")
        assert not OperatorRegistry.evaluate("lt", "10", "9")

    @pytest.mark.parametrize("actual, expected", [
        ("abc", "5"),
        ("5", "abc"),
        ("", "5"),
        ("nan", "5"),
        ("inf", "5"),
        ("1_000", "5"),
    ])
    def test_parse_failure_is_false_both_ways(self, actual, expected):
        assert not OperatorRegistry.evaluate("gt", actual, expected)
        assert not OperatorRegistry.evaluate("lt", actual, expected)

    def test_unknown_operator_is_false(self, caplog):
        with caplog.at_level(logging.WARNING):
            assert not OperatorRegistry.evaluate("regex", "a", "a")

        assert "Unknown condition operator 'regex'" in caplog.text

    def test_evaluator_errors_are_false(self, caplog):
        class Exploding(OperatorEvaluator):
            def compare(self, actual, expected):
                raise RuntimeError("boom")

        OperatorRegistry.register("explode", Exploding())

        with caplog.at_level(logging.ERROR):
            assert not OperatorRegistry.evaluate("explode", "a", "b")

        assert "boom" in caplog.text

    def test_register_and_reset(self):
        class StartsWith(OperatorEvaluator):
            def compare(self, actual, expected):
                return actual.startswith(expected)

        OperatorRegistry.register("starts_with", StartsWith())
        assert OperatorRegistry.evaluate("starts_with", "feature/x", "feature/")

        OperatorRegistry.reset()
        assert not OperatorRegistry.evaluate("starts_with", "feature/x", "feature/")


class TestCheckCondition:
    def test_matching_context(self):
        node = condition("c", "status", "eq", "success")

        assert check_condition(node, {"status": "success"}) == "true"
        assert check_condition(node, {"status": "failed"}) == "false"

    def test_absent_context_is_false(self):
        node = condition("c", "status", "neq", "success")

        assert check_condition(node, None) == "false"

    def test_empty_context_is_still_evaluated(self):
        # Missing field reads as "" which is != "success"
        node = condition("c", "status", "neq", "success")

        assert check_condition(node, {}) == "true"

    def test_missing_condition_is_false(self):
        node = Node(id="c", kind=NodeKind.CONDITION)

        assert check_condition(node, {"status": "success"}) == "false"

    def test_empty_field_is_false(self):
        node = condition("c", "", "eq", "")

        assert check_condition(node, {"": ""}) == "false"

    def test_boolean_values_compare_as_strings(self):
        node = condition("c", "approved", "eq", "true")

        assert check_condition(node, {"approved": True}) == "true"
        assert check_condition(node, {"approved": False}) == "false"

    def test_none_value_reads_as_empty(self):
        node = condition("c", "result", "eq", "")

        assert check_condition(node, {"result": None}) == "true"
