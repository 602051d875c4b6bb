"""Contracts for the systems the orchestrator talks to.

The orchestrator only ever calls these interfaces; concrete implementations
live elsewhere (see ``dagflow.store``, ``dagflow.core.task_board`` and
``dagflow.dispatch`` for in-process ones).
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, List, Optional

if TYPE_CHECKING:
    from ..workflow.graph import Graph, Node
    from .events import ExecutionEvent
    from .task import OwnerRecord


class GraphStore(ABC):
    """Source of workflow templates."""

    @abstractmethod
    def load_graph(self, workflow_id: str) -> Optional["Graph"]:
        """Return the graph for ``workflow_id``, or None if absent or malformed."""
        pass


class TaskCollaborator(ABC):
    """The task system that owns workflow instances."""

    @abstractmethod
    def get_owner(self, owner_id: str) -> Optional["OwnerRecord"]:
        pass

    @abstractmethod
    def transition_owner(self, owner_id: str, new_phase: str, note: str) -> bool:
        """Move the owner to ``new_phase`` with a human-readable note.

        Returns False when the move is refused.
        """
        pass


class WorkerDispatcher(ABC):
    """Creates and places external work items.

    Completion is reported back through
    ``ExecutionOrchestrator.on_external_completion`` once ``dispatch_work``
    has returned the work item id.
    """

    @abstractmethod
    def dispatch_work(self, owner: "OwnerRecord", node: "Node") -> str:
        """Create a work item for ``node`` and return its id."""
        pass

    @abstractmethod
    def auto_assign(self, work_item_id: str) -> None:
        """Place the work item on any available worker."""
        pass

    @abstractmethod
    def assign(self, work_item_id: str, assignee_id: str) -> None:
        pass

    @abstractmethod
    def is_busy(self, assignee_id: str) -> bool:
        pass

    @abstractmethod
    def is_active(self, assignee_id: str) -> bool:
        """Whether the worker exists and may still receive work."""
        pass

    @abstractmethod
    def list_eligible(self, role_hint: str) -> List[str]:
        """Active workers matching a role, in roster order."""
        pass


class EventSink(ABC):
    """Fire-and-forget observer of workflow progress."""

    @abstractmethod
    def emit(self, event: "ExecutionEvent") -> None:
        pass
