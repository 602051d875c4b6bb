"""Worker dispatch implementations."""

from .local_dispatcher import LocalDispatcher, WorkItem, WorkItemStatus

__all__ = ["LocalDispatcher", "WorkItem", "WorkItemStatus"]
