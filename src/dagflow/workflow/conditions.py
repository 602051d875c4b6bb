"""Condition evaluation for condition-node routing.

Decision contexts are flat string-keyed maps. Every value is compared as a
string; ``gt``/``lt`` parse both sides as finite decimal numbers and treat
any parse failure (empty, non-numeric, NaN, infinity) as false for both
operators.
"""

import logging
import math
import re
from abc import ABC, abstractmethod
from typing import Any, Dict, Mapping, Optional

from .graph import BRANCH_FALSE, BRANCH_TRUE, ConditionOperator, Node

logger = logging.getLogger(__name__)

# ASCII decimal only: float() would also take "1_000", "nan" and non-ASCII digits
_DECIMAL_RE = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$", re.ASCII)


def coerce_to_string(value: Any) -> str:
    """Coerce a decision-context value to its comparison string."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def parse_number(text: str) -> Optional[float]:
    """Parse a finite decimal number, or None when the text is not one."""
    text = text.strip()
    if not _DECIMAL_RE.match(text):
        return None
    try:
        number = float(text)
    except ValueError:
        return None
    if not math.isfinite(number):
        return None
    return number


class OperatorEvaluator(ABC):
    """Base class for condition operators."""

    @abstractmethod
    def compare(self, actual: str, expected: str) -> bool:
        """Return True when ``actual <op> expected`` holds."""
        pass


class EqualsOperator(OperatorEvaluator):
    def compare(self, actual: str, expected: str) -> bool:
        return actual == expected


class NotEqualsOperator(OperatorEvaluator):
    def compare(self, actual: str, expected: str) -> bool:
        return actual != expected


class ContainsOperator(OperatorEvaluator):
    def compare(self, actual: str, expected: str) -> bool:
        return expected in actual


class NotContainsOperator(OperatorEvaluator):
    def compare(self, actual: str, expected: str) -> bool:
        return expected not in actual


class GreaterThanOperator(OperatorEvaluator):
    """Numeric comparison; unparseable operands never satisfy it."""

    def compare(self, actual: str, expected: str) -> bool:
        left, right = parse_number(actual), parse_number(expected)
        if left is None or right is None:
            return False
        return left > right


class LessThanOperator(OperatorEvaluator):
    """Numeric comparison; unparseable operands never satisfy it."""

    def compare(self, actual: str, expected: str) -> bool:
        left, right = parse_number(actual), parse_number(expected)
        if left is None or right is None:
            return False
        return left < right


def _default_operators() -> Dict[str, OperatorEvaluator]:
    """Build a fresh operator map so OperatorRegistry.register() in tests
    doesn't pollute global state."""
    return {
        ConditionOperator.EQ.value: EqualsOperator(),
        ConditionOperator.NEQ.value: NotEqualsOperator(),
        ConditionOperator.CONTAINS.value: ContainsOperator(),
        ConditionOperator.NOT_CONTAINS.value: NotContainsOperator(),
        ConditionOperator.GT.value: GreaterThanOperator(),
        ConditionOperator.LT.value: LessThanOperator(),
    }


class OperatorRegistry:
    """Registry mapping operator names to evaluators."""

    _operators: Dict[str, OperatorEvaluator] = _default_operators()

    @classmethod
    def evaluate(cls, operator: str, actual: str, expected: str) -> bool:
        """Evaluate an operator; unknown operators and evaluator errors are False."""
        evaluator = cls._operators.get(operator)
        if not evaluator:
            logger.warning(f"Unknown condition operator '{operator}', evaluating as false")
            return False

        try:
            return bool(evaluator.compare(actual, expected))
        except Exception as e:
            logger.error(f"Error evaluating condition operator {operator}: {e}")
            return False

    @classmethod
    def register(cls, operator: str, evaluator: OperatorEvaluator):
        """Register a custom operator."""
        cls._operators[operator] = evaluator

    @classmethod
    def reset(cls):
        """Restore default operators (useful in tests)."""
        cls._operators = _default_operators()


def check_condition(node: Node, context: Optional[Mapping[str, Any]]) -> str:
    """Evaluate a condition node against a decision context.

    Always returns ``"true"`` or ``"false"``; never raises.
    """
    condition = node.condition
    if context is None or condition is None or not condition.field:
        return BRANCH_FALSE

    actual = coerce_to_string(context.get(condition.field))
    matched = OperatorRegistry.evaluate(condition.operator, actual, condition.value)
    return BRANCH_TRUE if matched else BRANCH_FALSE
