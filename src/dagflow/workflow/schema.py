"""Persisted workflow document schema.

A workflow is stored as ``{"nodes": [...], "edges": [...]}`` using the
camelCase field names of the editor. Presentation-only keys (``position``)
and unknown keys are ignored.
"""

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .graph import Condition, Edge, Graph, Node, NodeKind

SCHEMA_VERSION = 1


class WorkflowNodeDefinition(BaseModel):
    """A node as persisted by the workflow editor."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str
    type: NodeKind
    label: str = ""
    agent_role: Optional[str] = Field(default=None, alias="agentRole")
    agent_id: Optional[str] = Field(default=None, alias="agentId")
    condition_field: Optional[str] = Field(default=None, alias="conditionField")
    condition_operator: Optional[str] = Field(default=None, alias="conditionOperator")
    condition_value: Optional[str] = Field(default=None, alias="conditionValue")

    @field_validator("id")
    @classmethod
    def validate_id(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("node id must not be empty")
        return v

    @field_validator("condition_value", mode="before")
    @classmethod
    def coerce_condition_value(cls, v):
        # Editors sometimes persist numeric thresholds as numbers
        if v is None or isinstance(v, str):
            return v
        if isinstance(v, bool):
            return "true" if v else "false"
        return str(v)

    def to_node(self) -> Node:
        condition = None
        if (
            self.type == NodeKind.CONDITION
            and self.condition_field
            and self.condition_operator
            and self.condition_value is not None
        ):
            condition = Condition(
                field=self.condition_field,
                operator=self.condition_operator,
                value=self.condition_value,
            )
        return Node(
            id=self.id,
            kind=self.type,
            label=self.label,
            assignee_id=self.agent_id or None,
            assignee_role_hint=self.agent_role or None,
            condition=condition,
        )


class WorkflowEdgeDefinition(BaseModel):
    """An edge as persisted by the workflow editor."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str
    source: str
    target: str
    label: Optional[str] = None
    condition_branch: Optional[Literal["true", "false"]] = Field(default=None, alias="conditionBranch")

    def to_edge(self) -> Edge:
        return Edge(id=self.id, source=self.source, target=self.target, branch=self.condition_branch)


class WorkflowDocument(BaseModel):
    """Top-level persisted workflow."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    schema_version: int = Field(default=SCHEMA_VERSION, alias="schemaVersion")
    id: Optional[str] = None
    name: str = ""
    description: Optional[str] = None
    nodes: List[WorkflowNodeDefinition] = Field(default_factory=list)
    edges: List[WorkflowEdgeDefinition] = Field(default_factory=list)

    @field_validator("schema_version")
    @classmethod
    def validate_schema_version(cls, v: int) -> int:
        if v != SCHEMA_VERSION:
            raise ValueError(f"Unsupported workflow schema version {v} (expected {SCHEMA_VERSION})")
        return v

    @model_validator(mode="after")
    def validate_unique_node_ids(self) -> "WorkflowDocument":
        seen = set()
        for node in self.nodes:
            if node.id in seen:
                raise ValueError(f"Duplicate node id '{node.id}'")
            seen.add(node.id)
        return self

    def to_graph(self, name: Optional[str] = None) -> Graph:
        """Build the immutable Graph for this document."""
        return Graph(
            nodes=tuple(node.to_node() for node in self.nodes),
            edges=tuple(edge.to_edge() for edge in self.edges),
            name=name or self.name or self.id or "",
        )
