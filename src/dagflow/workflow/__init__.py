"""Workflow engine for DAG-based task orchestration."""

from .graph import Condition, Edge, Graph, Node, NodeKind
from .engine import ValidationResult, entry_nodes, execution_order, next_nodes, validate
from .conditions import OperatorEvaluator, OperatorRegistry, check_condition
from .executor import ExecutionInstance, ExecutionOrchestrator, ExecutionState, InstanceStatus

__all__ = [
    "Condition",
    "Edge",
    "Graph",
    "Node",
    "NodeKind",
    "ValidationResult",
    "entry_nodes",
    "execution_order",
    "next_nodes",
    "validate",
    "OperatorEvaluator",
    "OperatorRegistry",
    "check_condition",
    "ExecutionInstance",
    "ExecutionOrchestrator",
    "ExecutionState",
    "InstanceStatus",
]
