"""Workflow execution orchestrator.

Runs one ``ExecutionInstance`` per owner task: WORK nodes become external
work items, structural and condition nodes resolve on the spot, and
external completions advance the graph until nothing is eligible or in
flight.
"""

import logging
import threading
import uuid
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Set

from pydantic import BaseModel, Field

from ..core.collaborators import EventSink, GraphStore, TaskCollaborator, WorkerDispatcher
from ..core.config import OrchestratorConfig
from ..core.events import ExecutionEvent, ExecutionEventType, NullEventSink
from .engine import entry_nodes, next_nodes, validate
from .graph import Graph, Node, NodeKind

logger = logging.getLogger(__name__)


class InstanceStatus(str, Enum):
    """Lifecycle of an execution instance. RUNNING is the only live state."""
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class ExecutionInstance:
    """Mutable state of one workflow run.

    Every read or write of the mutable fields happens under ``lock``. The
    lock is reentrant because structural nodes complete synchronously from
    inside ``execute_node`` on the same thread.
    """
    workflow_id: str
    owner_id: str
    graph: Graph
    project_id: str = ""
    context: Dict[str, Any] = field(default_factory=dict)
    instance_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    status: InstanceStatus = InstanceStatus.RUNNING
    completed: Set[str] = field(default_factory=set)
    active: Set[str] = field(default_factory=set)
    results: Dict[str, str] = field(default_factory=dict)
    correlations: Dict[str, str] = field(default_factory=dict)  # work_item_id -> node_id
    completion_order: List[str] = field(default_factory=list)
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    finished_at: Optional[datetime] = None
    lock: threading.RLock = field(default_factory=threading.RLock, repr=False, compare=False)

    @property
    def is_running(self) -> bool:
        return self.status == InstanceStatus.RUNNING

    @property
    def workflow_name(self) -> str:
        return self.graph.name or self.workflow_id


class ExecutionState(BaseModel):
    """Serializable snapshot of an execution instance."""
    workflow_id: str
    owner_id: str
    instance_id: str
    status: InstanceStatus
    completed_node_ids: List[str] = Field(default_factory=list)
    active_node_ids: List[str] = Field(default_factory=list)
    completion_order: List[str] = Field(default_factory=list)
    node_results: Dict[str, str] = Field(default_factory=dict)
    started_at: datetime
    finished_at: Optional[datetime] = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def capture(cls, instance: ExecutionInstance) -> "ExecutionState":
        with instance.lock:
            return cls(
                workflow_id=instance.workflow_id,
                owner_id=instance.owner_id,
                instance_id=instance.instance_id,
                status=instance.status,
                completed_node_ids=sorted(instance.completed),
                active_node_ids=sorted(instance.active),
                completion_order=list(instance.completion_order),
                node_results=dict(instance.results),
                started_at=instance.started_at,
                finished_at=instance.finished_at,
            )


class ExecutionOrchestrator:
    """Drives workflow instances from start to finalization.

    Constructed once per process and shared by reference. The registry
    (owner_id -> instance) and the work item index (work_item_id -> owner_id)
    are the only structures shared across instances and are guarded by
    ``_registry_lock``; everything else is per-instance.
    """

    def __init__(
        self,
        store: GraphStore,
        tasks: TaskCollaborator,
        dispatcher: WorkerDispatcher,
        events: Optional[EventSink] = None,
        config: Optional[OrchestratorConfig] = None,
    ):
        self.store = store
        self.tasks = tasks
        self.dispatcher = dispatcher
        self.events = events or NullEventSink()
        self.config = config or OrchestratorConfig()
        self._instances: Dict[str, ExecutionInstance] = {}
        self._work_items: Dict[str, str] = {}
        self._finished: "OrderedDict[str, ExecutionState]" = OrderedDict()
        self._registry_lock = threading.Lock()

    # -- entry points --------------------------------------------------------

    def start(
        self,
        workflow_id: str,
        owner_id: str,
        initial_context: Optional[Dict[str, Any]] = None,
    ) -> bool:
        """Start executing a workflow for an owner task.

        Returns True once the entry nodes have been dispatched; it does not
        wait for the workflow to finish. Returns False when the workflow or
        owner is unknown, the graph is invalid, the owner already runs a
        workflow, or seeding failed.
        """
        graph = self.store.load_graph(workflow_id)
        if graph is None:
            logger.error(f"Workflow {workflow_id} not found")
            return False

        validation = validate(graph)
        if not validation.valid:
            logger.error(
                f'Workflow "{graph.name or workflow_id}" validation failed: '
                f"{'; '.join(validation.errors)}"
            )
            return False

        owner = self.tasks.get_owner(owner_id)
        if owner is None:
            logger.error(f"Task {owner_id} not found for workflow execution")
            return False

        instance = ExecutionInstance(
            workflow_id=workflow_id,
            owner_id=owner_id,
            graph=graph,
            project_id=owner.project_id,
            context=dict(initial_context or {}),
        )

        with self._registry_lock:
            if owner_id in self._instances:
                logger.warning(f"Task {owner_id} is already running a workflow, not starting another")
                return False
            self._instances[owner_id] = instance

        logger.info(f'Starting workflow "{instance.workflow_name}" for task {owner_id}')

        with instance.lock:
            self._emit(instance, ExecutionEventType.STARTED,
                       detail=f"Running custom workflow: {instance.workflow_name}")
            self._transition_owner(
                owner_id, self.config.start_phase,
                f'Custom workflow "{instance.workflow_name}" started',
            )

            entries = entry_nodes(graph)
            # Mark every entry active first so one that resolves synchronously
            # cannot finalize the instance before its siblings are seeded
            instance.active.update(node.id for node in entries)
            for node in entries:
                self.execute_node(instance, node)

            return instance.status != InstanceStatus.FAILED

    def on_external_completion(
        self,
        work_item_id: str,
        result_payload: Optional[str] = None,
        *,
        succeeded: bool = True,
    ) -> bool:
        """Handle a finished work item reported by the dispatcher.

        Returns False for unknown, already-consumed or cancelled work items;
        late and duplicate callbacks are expected and are not errors.
        """
        with self._registry_lock:
            owner_id = self._work_items.get(work_item_id)
            instance = self._instances.get(owner_id) if owner_id else None

        if instance is None:
            logger.debug(f"Ignoring completion for unknown work item {work_item_id}")
            return False

        with instance.lock:
            node_id = instance.correlations.pop(work_item_id, None)
            if node_id is None or not instance.is_running:
                logger.debug(f"Ignoring completion for consumed work item {work_item_id}")
                return False
            with self._registry_lock:
                self._work_items.pop(work_item_id, None)

            if result_payload:
                instance.results[node_id] = result_payload

            if not succeeded and self.config.failure_stops_workflow:
                self._fail(instance, f'Node "{node_id}" reported failure')
                return True

            if not succeeded:
                logger.info(
                    f"Node {node_id} of task {instance.owner_id} reported failure; "
                    f"advancing (failure_stops_workflow is off)"
                )
            self.complete_node(instance, node_id)
        return True

    def cancel(self, owner_id: str, reason: str = "") -> bool:
        """Stop a running workflow. Later completions for it become no-ops."""
        with self._registry_lock:
            instance = self._instances.get(owner_id)
        if instance is None:
            return False

        with instance.lock:
            if not instance.is_running:
                return False
            instance.status = InstanceStatus.CANCELLED
            instance.finished_at = datetime.now(timezone.utc)
            self._deregister(instance)
            logger.info(f"Workflow for task {owner_id} cancelled{': ' + reason if reason else ''}")
            self._emit(instance, ExecutionEventType.CANCELLED, detail=reason or "Workflow cancelled")
        return True

    # -- graph advancement ---------------------------------------------------

    def execute_node(self, instance: ExecutionInstance, node: Node) -> None:
        """Dispatch or resolve a single node.

        WORK nodes become external work items; PARALLEL and MERGE nodes only
        shape the graph and complete at once; CONDITION nodes complete at
        once with a decision context built from the owner and prior results.
        """
        with instance.lock:
            if not instance.is_running:
                return

            instance.active.add(node.id)
            logger.info(
                f'Executing workflow node "{node.display_name}" ({node.kind.value}) '
                f"for task {instance.owner_id}"
            )

            if node.kind == NodeKind.WORK:
                self._dispatch_work(instance, node)
            elif node.kind in (NodeKind.PARALLEL, NodeKind.MERGE):
                self.complete_node(instance, node.id)
            elif node.kind == NodeKind.CONDITION:
                self.complete_node(instance, node.id, self._decision_context(instance))

    def complete_node(
        self,
        instance: ExecutionInstance,
        node_id: str,
        decision_context: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Mark a node completed and advance to whatever became eligible.

        Marking, the next-node computation and the finalization check run
        under the instance lock so concurrent sibling completions cannot both
        observe a join as ready, or both miss it.
        """
        with instance.lock:
            if not instance.is_running:
                return

            instance.completed.add(node_id)
            instance.active.discard(node_id)
            instance.completion_order.append(node_id)

            following = [
                next_id
                for next_id in next_nodes(instance.graph, instance.completed, node_id, decision_context)
                if next_id not in instance.completed and next_id not in instance.active
            ]

            if not following and not instance.active:
                self._finalize(instance)
                return

            # Claim every successor before running any of them; see start()
            instance.active.update(following)
            for next_id in following:
                node = instance.graph.node(next_id)
                if node is not None:
                    self.execute_node(instance, node)

    # -- queries -------------------------------------------------------------

    def is_running(self, owner_id: str) -> bool:
        with self._registry_lock:
            return owner_id in self._instances

    def is_workflow_work_item(self, work_item_id: str) -> bool:
        with self._registry_lock:
            return work_item_id in self._work_items

    def get_execution_state(self, owner_id: str) -> Optional[ExecutionState]:
        with self._registry_lock:
            instance = self._instances.get(owner_id)
        if instance is None:
            return None
        return ExecutionState.capture(instance)

    def active_owner_ids(self) -> List[str]:
        with self._registry_lock:
            return sorted(self._instances)

    def last_finished_state(self, owner_id: str) -> Optional[ExecutionState]:
        """Final snapshot of the most recent finished run for an owner, if retained."""
        with self._registry_lock:
            return self._finished.get(owner_id)

    # -- internals -----------------------------------------------------------

    def _dispatch_work(self, instance: ExecutionInstance, node: Node) -> None:
        owner = self.tasks.get_owner(instance.owner_id)
        if owner is None:
            self._fail(instance, f"Task {instance.owner_id} disappeared while dispatching {node.id}")
            return

        try:
            work_item_id = self.dispatcher.dispatch_work(owner, node)
        except Exception as e:
            logger.error(f"Failed to dispatch work for node {node.id} of task {instance.owner_id}: {e}")
            self._fail(instance, f'Dispatch failed for node "{node.id}": {e}')
            return

        instance.correlations[work_item_id] = node.id
        with self._registry_lock:
            self._work_items[work_item_id] = instance.owner_id

        self._assign(work_item_id, node)
        self._emit(
            instance, ExecutionEventType.NODE_DISPATCHED,
            node_id=node.id, work_item_id=work_item_id,
            detail=f"Dispatched {node.display_name}",
        )

    def _assign(self, work_item_id: str, node: Node) -> None:
        """Assign explicitly when a worker can be resolved, else auto-assign."""
        try:
            assignee = self._resolve_assignee(node)
            if assignee:
                self.dispatcher.assign(work_item_id, assignee)
            else:
                logger.warning(
                    f'No worker found for node "{node.display_name}" '
                    f"(role: {node.assignee_role_hint}), auto-assigning"
                )
                self.dispatcher.auto_assign(work_item_id)
        except Exception as e:
            # The work item exists; the dispatcher can still place it later
            logger.warning(f"Failed to assign work item {work_item_id} for node {node.id}: {e}")

    def _resolve_assignee(self, node: Node) -> Optional[str]:
        if node.assignee_id and self.dispatcher.is_active(node.assignee_id):
            return node.assignee_id

        if node.assignee_role_hint:
            candidates = self.dispatcher.list_eligible(node.assignee_role_hint)
            if candidates:
                idle = next((c for c in candidates if not self.dispatcher.is_busy(c)), None)
                return idle or candidates[0]

        return None

    def _decision_context(self, instance: ExecutionInstance) -> Dict[str, Any]:
        """Initial context, then owner snapshot, then node results (later wins)."""
        context: Dict[str, Any] = dict(instance.context)
        owner = self.tasks.get_owner(instance.owner_id)
        if owner is not None:
            context.update(owner.decision_snapshot())
        prefix = self.config.result_key_prefix
        for node_id, result in instance.results.items():
            context[f"{prefix}{node_id}"] = result
        return context

    def _finalize(self, instance: ExecutionInstance) -> None:
        instance.status = InstanceStatus.COMPLETED
        instance.finished_at = datetime.now(timezone.utc)
        self._deregister(instance)

        logger.info(f"Custom workflow completed for task {instance.owner_id}")
        self._emit(instance, ExecutionEventType.COMPLETED, detail="Custom workflow completed")
        self._transition_owner(instance.owner_id, self.config.completion_phase, "Custom workflow completed")

    def _fail(self, instance: ExecutionInstance, reason: str) -> None:
        instance.status = InstanceStatus.FAILED
        instance.finished_at = datetime.now(timezone.utc)
        self._deregister(instance)

        logger.error(f"Custom workflow failed for task {instance.owner_id}: {reason}")
        self._emit(instance, ExecutionEventType.FAILED, detail=reason)
        self._transition_owner(instance.owner_id, self.config.failure_phase, reason)

    def _deregister(self, instance: ExecutionInstance) -> None:
        final_state = ExecutionState.capture(instance)
        with self._registry_lock:
            self._finished.pop(instance.owner_id, None)
            self._finished[instance.owner_id] = final_state
            while len(self._finished) > self.config.history_size:
                self._finished.popitem(last=False)

            if self._instances.get(instance.owner_id) is instance:
                del self._instances[instance.owner_id]
            for work_item_id in instance.correlations:
                self._work_items.pop(work_item_id, None)
        instance.correlations.clear()

    def _transition_owner(self, owner_id: str, phase: str, note: str) -> None:
        try:
            self.tasks.transition_owner(owner_id, phase, note)
        except Exception as e:
            logger.error(f"Failed to transition task {owner_id} to {phase}: {e}")

    def _emit(self, instance: ExecutionInstance, event_type: ExecutionEventType, **fields: Any) -> None:
        event = ExecutionEvent(
            type=event_type,
            owner_id=instance.owner_id,
            workflow_id=instance.workflow_id,
            instance_id=instance.instance_id,
            project_id=instance.project_id,
            **fields,
        )
        try:
            self.events.emit(event)
        except Exception as e:
            logger.warning(f"Event sink failed for {event_type.value} (non-fatal): {e}")
