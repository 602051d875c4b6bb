"""Shared test fixtures for unit tests."""

import logging
from unittest.mock import MagicMock

import pytest

from dagflow.core.collaborators import GraphStore, TaskCollaborator, WorkerDispatcher
from dagflow.core.config import OrchestratorConfig, clear_config_cache
from dagflow.core.events import RecordingEventSink
from dagflow.core.task import OwnerRecord
from dagflow.workflow.conditions import OperatorRegistry
from dagflow.workflow.executor import ExecutionOrchestrator


@pytest.fixture(autouse=True)
def _reset_global_state():
    """Operator registry, config cache and CLI log handlers are process-wide."""
    yield
    OperatorRegistry.reset()
    clear_config_cache()
    package_logger = logging.getLogger("dagflow")
    for handler in package_logger.handlers[:]:
        handler.close()
        package_logger.removeHandler(handler)
    package_logger.setLevel(logging.NOTSET)


@pytest.fixture
def owner():
    return OwnerRecord(id="task-1", title="Build the thing", project_id="proj-1", priority="high")


@pytest.fixture
def store():
    return MagicMock(spec=GraphStore)


@pytest.fixture
def tasks(owner):
    board = MagicMock(spec=TaskCollaborator)
    board.get_owner.return_value = owner
    return board


@pytest.fixture
def dispatcher():
    """Dispatcher mock handing out wi-1, wi-2, ... in dispatch order."""
    mock = MagicMock(spec=WorkerDispatcher)
    counter = iter(range(1, 1000))
    mock.dispatch_work.side_effect = lambda owner, node: f"wi-{next(counter)}"
    mock.is_active.return_value = False
    mock.is_busy.return_value = False
    mock.list_eligible.return_value = []
    return mock


@pytest.fixture
def events():
    return RecordingEventSink()


@pytest.fixture
def make_orchestrator(store, tasks, dispatcher, events):
    """Build an orchestrator around the mocked collaborators for a given graph."""
    def _make(graph, **config_overrides):
        store.load_graph.return_value = graph
        return ExecutionOrchestrator(
            store, tasks, dispatcher, events, OrchestratorConfig(**config_overrides)
        )
    return _make
