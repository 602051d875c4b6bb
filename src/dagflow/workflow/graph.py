"""Workflow graph (DAG) representation."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple


class NodeKind(str, Enum):
    """Kinds of nodes in a workflow graph."""
    WORK = "agent"  # Dispatched to an external worker
    CONDITION = "condition"
    PARALLEL = "parallel"  # Structural fan-out point
    MERGE = "merge"  # Structural fan-in point


class ConditionOperator(str, Enum):
    """Comparison operators understood by condition nodes."""
    EQ = "eq"
    NEQ = "neq"
    CONTAINS = "contains"
    NOT_CONTAINS = "not_contains"
    GT = "gt"
    LT = "lt"


# Values of Edge.branch leaving a condition node
BRANCH_TRUE = "true"
BRANCH_FALSE = "false"


@dataclass(frozen=True)
class Condition:
    """Routing rule of a condition node: ``context[field] <operator> value``.

    ``operator`` is kept as the raw string so that an unrecognized operator
    survives loading and simply evaluates to false.
    """
    field: str
    operator: str
    value: str


@dataclass(frozen=True)
class Node:
    """A step in the workflow (node in the DAG)."""
    id: str
    kind: NodeKind
    label: str = ""
    assignee_id: Optional[str] = None  # Explicit worker for WORK nodes
    assignee_role_hint: Optional[str] = None  # Role to pick a worker from
    condition: Optional[Condition] = None  # None degrades to always-false

    @property
    def display_name(self) -> str:
        return self.label or self.id


@dataclass(frozen=True)
class Edge:
    """Directed edge ``source -> target``."""
    id: str
    source: str
    target: str
    branch: Optional[str] = None  # "true"/"false", only read for condition sources


@dataclass(frozen=True)
class Graph:
    """Immutable workflow template.

    Outgoing/incoming edge indices are built once at construction. Edges
    pointing at unknown nodes are kept in ``edges`` (validation reports them)
    but are left out of the indices.
    """
    nodes: Tuple[Node, ...]
    edges: Tuple[Edge, ...]
    name: str = ""
    _by_id: Dict[str, Node] = field(default_factory=dict, init=False, repr=False, compare=False)
    _outgoing: Dict[str, List[Edge]] = field(default_factory=dict, init=False, repr=False, compare=False)
    _incoming: Dict[str, List[Edge]] = field(default_factory=dict, init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "nodes", tuple(self.nodes))
        object.__setattr__(self, "edges", tuple(self.edges))

        for node in self.nodes:
            if node.id in self._by_id:
                raise ValueError(f"Duplicate node id '{node.id}' in workflow graph")
            self._by_id[node.id] = node
            self._outgoing[node.id] = []
            self._incoming[node.id] = []

        for edge in self.edges:
            if edge.source in self._outgoing:
                self._outgoing[edge.source].append(edge)
            if edge.target in self._incoming:
                self._incoming[edge.target].append(edge)

    def node(self, node_id: str) -> Optional[Node]:
        return self._by_id.get(node_id)

    def has_node(self, node_id: str) -> bool:
        return node_id in self._by_id

    def outgoing(self, node_id: str) -> List[Edge]:
        """Outgoing edges of a node, in declaration order."""
        return list(self._outgoing.get(node_id, ()))

    def incoming(self, node_id: str) -> List[Edge]:
        return list(self._incoming.get(node_id, ()))

    def in_degree(self, node_id: str) -> int:
        return len(self._incoming.get(node_id, ()))

    @property
    def node_ids(self) -> List[str]:
        return [node.id for node in self.nodes]
