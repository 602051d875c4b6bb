"""Workflow definition storage."""

from .workflow_store import FileWorkflowStore, WorkflowLoadError, WorkflowNotFoundError

__all__ = ["FileWorkflowStore", "WorkflowLoadError", "WorkflowNotFoundError"]
