"""Tests for the in-process LocalDispatcher."""

from unittest.mock import MagicMock

import pytest

from dagflow.core.config import WorkerDefinition
from dagflow.core.task import OwnerRecord
from dagflow.dispatch.local_dispatcher import LocalDispatcher, WorkItemStatus

from graph_fixtures import work


@pytest.fixture
def roster():
    return [
        WorkerDefinition(id="e1", role="engineer"),
        WorkerDefinition(id="e2", role="engineer"),
        WorkerDefinition(id="q1", role="qa"),
        WorkerDefinition(id="old", role="engineer", active=False),
    ]


@pytest.fixture
def owner():
    return OwnerRecord(id="task-1", title="Login page")


class TestRoster:
    def test_list_eligible_filters_role_and_active(self, roster):
        dispatcher = LocalDispatcher(roster)

        assert dispatcher.list_eligible("engineer") == ["e1", "e2"]
        assert dispatcher.list_eligible("designer") == []

    def test_is_active(self, roster):
        dispatcher = LocalDispatcher(roster)

        assert dispatcher.is_active("e1")
        assert not dispatcher.is_active("old")
        assert not dispatcher.is_active("nobody")


class TestWorkItems:
    def test_dispatch_creates_open_item(self, roster, owner):
        dispatcher = LocalDispatcher(roster)

        work_item_id = dispatcher.dispatch_work(owner, work("api", role="engineer", label="Build API"))

        item = dispatcher.get(work_item_id)
        assert item.status == WorkItemStatus.OPEN
        assert item.owner_id == "task-1"
        assert item.node_id == "api"
        assert item.title == "Login page: Build API"
        assert item.role_hint == "engineer"
        assert dispatcher.pending() == [item]

    def test_assign_marks_worker_busy(self, roster, owner):
        dispatcher = LocalDispatcher(roster)
        work_item_id = dispatcher.dispatch_work(owner, work("api"))

        dispatcher.assign(work_item_id, "e1")

        assert dispatcher.get(work_item_id).assignee_id == "e1"
        assert dispatcher.is_busy("e1")
        assert not dispatcher.is_busy("e2")

    def test_assign_unknown_worker(self, roster, owner):
        dispatcher = LocalDispatcher(roster)
        work_item_id = dispatcher.dispatch_work(owner, work("api"))

        with pytest.raises(ValueError, match="Unknown worker"):
            dispatcher.assign(work_item_id, "ghost")

    def test_assign_unknown_item(self, roster):
        with pytest.raises(KeyError):
            LocalDispatcher(roster).assign("wi-missing", "e1")

    def test_auto_assign_prefers_idle_worker(self, roster, owner):
        dispatcher = LocalDispatcher(roster)
        first = dispatcher.dispatch_work(owner, work("a"))
        second = dispatcher.dispatch_work(owner, work("b"))

        dispatcher.auto_assign(first)
        dispatcher.auto_assign(second)

        assert dispatcher.get(first).assignee_id == "e1"
        assert dispatcher.get(second).assignee_id == "e2"

    def test_auto_assign_without_workers_leaves_item_unassigned(self, owner):
        dispatcher = LocalDispatcher()
        work_item_id = dispatcher.dispatch_work(owner, work("a"))

        dispatcher.auto_assign(work_item_id)

        assert dispatcher.get(work_item_id).assignee_id is None


class TestFinish:
    def test_finish_reports_to_handler(self, roster, owner):
        dispatcher = LocalDispatcher(roster)
        handler = MagicMock(return_value=True)
        dispatcher.bind(handler)
        work_item_id = dispatcher.dispatch_work(owner, work("a"))
        dispatcher.assign(work_item_id, "e1")

        assert dispatcher.finish(work_item_id, "done", succeeded=False) is True

        handler.assert_called_once_with(work_item_id, "done", succeeded=False)
        item = dispatcher.get(work_item_id)
        assert item.status == WorkItemStatus.FAILED
        assert item.result == "done"
        assert not dispatcher.is_busy("e1")
        assert dispatcher.pending() == []

    def test_finish_twice(self, roster, owner):
        dispatcher = LocalDispatcher(roster)
        dispatcher.bind(MagicMock(return_value=True))
        work_item_id = dispatcher.dispatch_work(owner, work("a"))

        assert dispatcher.finish(work_item_id)
        assert not dispatcher.finish(work_item_id)

    def test_finish_without_handler(self, roster, owner):
        dispatcher = LocalDispatcher(roster)
        work_item_id = dispatcher.dispatch_work(owner, work("a"))

        assert dispatcher.finish(work_item_id) is False
        assert dispatcher.get(work_item_id).status == WorkItemStatus.SUCCEEDED
