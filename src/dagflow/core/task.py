"""Owner task model: the higher-level unit of work a workflow instance serves."""

from datetime import UTC, datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer


class TaskStatus(str, Enum):
    """Owner task status values."""
    CREATED = "created"
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    REVIEW = "review"
    CHANGES_REQUESTED = "changes_requested"
    DONE = "done"
    BLOCKED = "blocked"
    FAILED = "failed"


# Allowed status moves; anything else is rejected by the task board
TASK_TRANSITIONS: Dict[TaskStatus, List[TaskStatus]] = {
    TaskStatus.CREATED: [TaskStatus.ASSIGNED, TaskStatus.IN_PROGRESS],
    TaskStatus.ASSIGNED: [TaskStatus.IN_PROGRESS, TaskStatus.BLOCKED],
    TaskStatus.IN_PROGRESS: [
        TaskStatus.REVIEW, TaskStatus.BLOCKED, TaskStatus.FAILED, TaskStatus.CREATED,
    ],
    TaskStatus.REVIEW: [TaskStatus.DONE, TaskStatus.CHANGES_REQUESTED, TaskStatus.CREATED],
    TaskStatus.CHANGES_REQUESTED: [TaskStatus.IN_PROGRESS, TaskStatus.CREATED],
    TaskStatus.DONE: [],
    TaskStatus.BLOCKED: [TaskStatus.CREATED, TaskStatus.ASSIGNED],
    TaskStatus.FAILED: [TaskStatus.CREATED],
}


def can_transition(current: str, target: str) -> bool:
    """Check whether ``current -> target`` is an allowed status move."""
    try:
        return TaskStatus(target) in TASK_TRANSITIONS[TaskStatus(current)]
    except ValueError:
        return False


class StatusChange(BaseModel):
    """Record of a single status transition."""
    from_status: str
    to_status: str
    note: str = ""
    changed_at: datetime


class OwnerRecord(BaseModel):
    """The task a workflow instance runs on behalf of."""

    model_config = ConfigDict(use_enum_values=True)

    id: str
    title: str
    description: Optional[str] = None
    status: TaskStatus = Field(default=TaskStatus.CREATED, validate_default=True)
    priority: str = "medium"
    category: Optional[str] = None
    project_id: str = ""
    result: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    history: List[StatusChange] = Field(default_factory=list)

    @field_serializer("created_at")
    def serialize_datetime(self, v: Optional[datetime]) -> Optional[str]:
        return v.isoformat() if v else None

    def decision_snapshot(self) -> Dict[str, Any]:
        """Fields exposed to condition nodes."""
        return {
            "status": self.status or "",
            "result": self.result or "",
            "category": self.category or "",
            "priority": self.priority or "",
        }

    def record_transition(self, new_status: str, note: str = "") -> None:
        """Apply a status change and keep it in the history."""
        self.history.append(StatusChange(
            from_status=self.status,
            to_status=new_status,
            note=note,
            changed_at=datetime.now(UTC),
        ))
        self.status = new_status
