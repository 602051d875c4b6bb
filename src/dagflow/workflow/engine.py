"""Pure graph algorithms over a workflow Graph.

Validation, topological layering, entry-node discovery and next-node
resolution. Every function is a function of its arguments only.
"""

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import AbstractSet, Any, Dict, List, Mapping, Optional

from .conditions import check_condition
from .graph import Graph, Node, NodeKind

logger = logging.getLogger(__name__)


@dataclass
class ValidationResult:
    """Outcome of structural validation."""
    valid: bool
    errors: List[str] = field(default_factory=list)


def validate(graph: Graph) -> ValidationResult:
    """Validate the workflow DAG.

    Checks run in order and later checks are skipped once an earlier one
    fails: non-empty node set, edge endpoints exist (all violations
    collected), at least one entry node, acyclic, every node reachable from
    an entry node.
    """
    errors: List[str] = []

    if not graph.nodes:
        errors.append("Workflow has no nodes")
        return ValidationResult(valid=False, errors=errors)

    for edge in graph.edges:
        if not graph.has_node(edge.source):
            errors.append(f'Edge "{edge.id}" references unknown source node "{edge.source}"')
        if not graph.has_node(edge.target):
            errors.append(f'Edge "{edge.id}" references unknown target node "{edge.target}"')

    # Routing checks below assume valid endpoints
    if errors:
        return ValidationResult(valid=False, errors=errors)

    entries = entry_nodes(graph)
    if not entries:
        errors.append("Workflow has no entry nodes (every node has incoming edges, likely a cycle)")
        return ValidationResult(valid=False, errors=errors)

    processed = sum(len(layer) for layer in execution_order(graph))
    if processed != len(graph.nodes):
        errors.append(
            f"Workflow contains a cycle ({len(graph.nodes) - processed} nodes "
            f"unreachable via topological sort)"
        )
        return ValidationResult(valid=False, errors=errors)

    reachable = set()
    queue = deque(node.id for node in entries)
    while queue:
        node_id = queue.popleft()
        if node_id in reachable:
            continue
        reachable.add(node_id)
        for edge in graph.outgoing(node_id):
            if edge.target not in reachable:
                queue.append(edge.target)

    if len(reachable) != len(graph.nodes):
        unreachable = [node.id for node in graph.nodes if node.id not in reachable]
        errors.append(f"Unreachable nodes: {', '.join(unreachable)}")

    return ValidationResult(valid=not errors, errors=errors)


def execution_order(graph: Graph) -> List[List[str]]:
    """Return the execution order as layers of parallel-executable nodes.

    Kahn's algorithm, grouping each zero-indegree frontier into one layer.
    Every node in layer k depends only on nodes in layers 0..k-1. Nodes on
    a cycle never reach indegree zero and are left out.
    """
    in_degree: Dict[str, int] = {node.id: graph.in_degree(node.id) for node in graph.nodes}

    layers: List[List[str]] = []
    current = [node_id for node_id, degree in in_degree.items() if degree == 0]

    while current:
        layers.append(current)
        following: List[str] = []
        for node_id in current:
            for edge in graph.outgoing(node_id):
                if edge.target not in in_degree:
                    continue
                in_degree[edge.target] -= 1
                if in_degree[edge.target] == 0:
                    following.append(edge.target)
        current = following

    return layers


def entry_nodes(graph: Graph) -> List[Node]:
    """Nodes with no incoming edges, in declaration order."""
    return [node for node in graph.nodes if graph.in_degree(node.id) == 0]


def next_nodes(
    graph: Graph,
    completed: AbstractSet[str],
    last_completed: str,
    decision_context: Optional[Mapping[str, Any]] = None,
) -> List[str]:
    """Determine which nodes become eligible after ``last_completed`` finishes.

    Condition nodes contribute only the targets on the evaluated branch,
    falling back to the first outgoing edge when no branch matches. Any
    other node contributes all of its targets. A candidate is eligible only
    once every one of its predecessors is in ``completed``, which is what
    makes merge nodes (and any multi-predecessor node) wait for all inputs.
    """
    node = graph.node(last_completed)
    if node is None:
        return []

    outgoing = graph.outgoing(last_completed)

    if node.kind == NodeKind.CONDITION:
        branch = check_condition(node, decision_context)
        candidates = [edge.target for edge in outgoing if edge.branch == branch]
        if not candidates and outgoing:
            logger.warning(
                f'Condition node "{node.id}" has no matching branch for "{branch}", '
                f"falling through to first edge"
            )
            candidates = [outgoing[0].target]
    else:
        candidates = [edge.target for edge in outgoing]

    eligible: List[str] = []
    for target_id in candidates:
        if target_id in eligible or not graph.has_node(target_id):
            continue
        if all(edge.source in completed for edge in graph.incoming(target_id)):
            eligible.append(target_id)
    return eligible
