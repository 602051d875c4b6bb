"""In-process worker dispatcher.

Keeps work items in memory and places them on a static worker roster.
Nothing is executed: callers drive progress with ``finish``, which reports
the outcome to whoever was bound as the completion handler (normally
``ExecutionOrchestrator.on_external_completion``).
"""

import logging
import threading
import uuid
from datetime import UTC, datetime
from enum import Enum
from typing import Callable, Dict, List, Optional

from pydantic import BaseModel, Field

from ..core.collaborators import WorkerDispatcher
from ..core.config import WorkerDefinition
from ..core.task import OwnerRecord
from ..workflow.graph import Node

logger = logging.getLogger(__name__)

CompletionHandler = Callable[..., bool]


class WorkItemStatus(str, Enum):
    OPEN = "open"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class WorkItem(BaseModel):
    """A unit of external work created for one Work node."""
    id: str
    owner_id: str
    node_id: str
    title: str
    role_hint: Optional[str] = None
    assignee_id: Optional[str] = None
    status: WorkItemStatus = WorkItemStatus.OPEN
    result: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class LocalDispatcher(WorkerDispatcher):
    """Work item registry backed by a worker roster."""

    def __init__(self, workers: Optional[List[WorkerDefinition]] = None):
        self._workers: List[WorkerDefinition] = list(workers or [])
        self._items: Dict[str, WorkItem] = {}
        self._lock = threading.Lock()
        self._on_complete: Optional[CompletionHandler] = None

    def bind(self, handler: CompletionHandler) -> None:
        """Set the callback invoked by ``finish``."""
        self._on_complete = handler

    # -- WorkerDispatcher ----------------------------------------------------

    def dispatch_work(self, owner: OwnerRecord, node: Node) -> str:
        item = WorkItem(
            id=f"wi-{uuid.uuid4().hex[:10]}",
            owner_id=owner.id,
            node_id=node.id,
            title=f"{owner.title}: {node.display_name}",
            role_hint=node.assignee_role_hint,
        )
        with self._lock:
            self._items[item.id] = item
        logger.debug(f"Created work item {item.id} for node {node.id} of task {owner.id}")
        return item.id

    def assign(self, work_item_id: str, assignee_id: str) -> None:
        with self._lock:
            item = self._items.get(work_item_id)
            if item is None:
                raise KeyError(f"Unknown work item {work_item_id}")
            if self._worker(assignee_id) is None:
                raise ValueError(f"Unknown worker {assignee_id}")
            item.assignee_id = assignee_id
        logger.debug(f"Assigned {work_item_id} to {assignee_id}")

    def auto_assign(self, work_item_id: str) -> None:
        with self._lock:
            item = self._items.get(work_item_id)
            if item is None:
                raise KeyError(f"Unknown work item {work_item_id}")
            active = [w for w in self._workers if w.active]
            if not active:
                logger.warning(f"No active workers, {work_item_id} stays unassigned")
                return
            idle = next((w for w in active if not self._is_busy_locked(w.id)), None)
            item.assignee_id = (idle or active[0]).id
        logger.debug(f"Auto-assigned {work_item_id} to {item.assignee_id}")

    def is_busy(self, assignee_id: str) -> bool:
        with self._lock:
            return self._is_busy_locked(assignee_id)

    def is_active(self, assignee_id: str) -> bool:
        worker = self._worker(assignee_id)
        return worker is not None and worker.active

    def list_eligible(self, role_hint: str) -> List[str]:
        return [w.id for w in self._workers if w.active and w.role == role_hint]

    # -- simulation controls -------------------------------------------------

    def get(self, work_item_id: str) -> Optional[WorkItem]:
        with self._lock:
            return self._items.get(work_item_id)

    def pending(self) -> List[WorkItem]:
        """Open work items in dispatch order."""
        with self._lock:
            return [item for item in self._items.values() if item.status == WorkItemStatus.OPEN]

    def finish(self, work_item_id: str, result: Optional[str] = None, succeeded: bool = True) -> bool:
        """Close a work item and report it to the bound completion handler."""
        with self._lock:
            item = self._items.get(work_item_id)
            if item is None or item.status != WorkItemStatus.OPEN:
                return False
            item.status = WorkItemStatus.SUCCEEDED if succeeded else WorkItemStatus.FAILED
            item.result = result

        if self._on_complete is None:
            logger.warning(f"Work item {work_item_id} finished with no completion handler bound")
            return False
        # Reported outside the lock; the handler may dispatch new work here
        return self._on_complete(work_item_id, result, succeeded=succeeded)

    def _worker(self, worker_id: str) -> Optional[WorkerDefinition]:
        return next((w for w in self._workers if w.id == worker_id), None)

    def _is_busy_locked(self, worker_id: str) -> bool:
        return any(
            item.assignee_id == worker_id and item.status == WorkItemStatus.OPEN
            for item in self._items.values()
        )
