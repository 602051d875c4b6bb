"""Workflow progress events and sinks.

Events are purely observational: the orchestrator never depends on a sink
succeeding. ``JsonlEventSink`` appends one JSON object per line so a run can
be inspected after the fact.
"""

import logging
import threading
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field

from ..utils.stream_parser import parse_jsonl_to_models
from .collaborators import EventSink

logger = logging.getLogger(__name__)


class ExecutionEventType(str, Enum):
    """Lifecycle events of a workflow instance."""
    STARTED = "started"
    NODE_DISPATCHED = "node_dispatched"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class ExecutionEvent(BaseModel):
    """Event for the workflow progress stream."""
    type: ExecutionEventType
    owner_id: str
    workflow_id: str
    instance_id: str
    project_id: str = ""
    node_id: Optional[str] = None
    work_item_id: Optional[str] = None
    detail: str = ""
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class NullEventSink(EventSink):
    """Discards every event."""

    def emit(self, event: ExecutionEvent) -> None:
        return None


class RecordingEventSink(EventSink):
    """Keeps events in memory, in emission order."""

    def __init__(self):
        self.events: List[ExecutionEvent] = []

    def emit(self, event: ExecutionEvent) -> None:
        self.events.append(event)

    def of_type(self, event_type: ExecutionEventType) -> List[ExecutionEvent]:
        return [e for e in self.events if e.type == event_type]


class JsonlEventSink(EventSink):
    """Append-only JSONL event log.

    The file is opened lazily and flushed after every event so the log
    survives crashes. Write failures are logged and dropped.
    """

    def __init__(self, path: Path, enabled: bool = True):
        self._path = Path(path)
        self._enabled = enabled
        self._file = None
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    @property
    def enabled(self) -> bool:
        return self._enabled

    def emit(self, event: ExecutionEvent) -> None:
        if not self._enabled:
            return
        line = event.model_dump_json() + "\n"
        with self._lock:
            try:
                self._ensure_open()
                self._file.write(line)
                self._file.flush()
            except OSError as e:
                logger.debug(f"Event log write failed (non-fatal): {e}")

    def close(self) -> None:
        with self._lock:
            if self._file:
                try:
                    self._file.close()
                except OSError as e:
                    logger.debug(f"Failed to close event log {self._path}: {e}")
                self._file = None

    def _ensure_open(self) -> None:
        # Caller holds _lock
        if self._file is None:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._file = open(self._path, "a")

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()


def read_events(path: Path) -> List[ExecutionEvent]:
    """Load events written by JsonlEventSink; unparseable lines are skipped."""
    path = Path(path)
    if not path.exists():
        return []
    return parse_jsonl_to_models(path.read_text(), ExecutionEvent)

