"""Core models, collaborator contracts and configuration."""

from .task import OwnerRecord, TaskStatus, can_transition
from .config import DagflowConfig, OrchestratorConfig, WorkerDefinition, load_config
from .collaborators import EventSink, GraphStore, TaskCollaborator, WorkerDispatcher
from .events import ExecutionEvent, ExecutionEventType, JsonlEventSink, NullEventSink
from .task_board import InMemoryTaskBoard

__all__ = [
    "OwnerRecord",
    "TaskStatus",
    "can_transition",
    "DagflowConfig",
    "OrchestratorConfig",
    "WorkerDefinition",
    "load_config",
    "EventSink",
    "GraphStore",
    "TaskCollaborator",
    "WorkerDispatcher",
    "ExecutionEvent",
    "ExecutionEventType",
    "JsonlEventSink",
    "NullEventSink",
    "InMemoryTaskBoard",
]
