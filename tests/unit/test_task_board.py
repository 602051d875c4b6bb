"""Tests for owner records and the in-memory task board."""

import pytest

from dagflow.core.task import OwnerRecord, TaskStatus, can_transition
from dagflow.core.task_board import InMemoryTaskBoard
from dagflow.workflow.conditions import coerce_to_string


def _board(**owner_fields):
    return InMemoryTaskBoard([OwnerRecord(id="task-1", title="Task", **owner_fields)])


class TestTransitionTable:
    @pytest.mark.parametrize("current, target", [
        ("created", "in_progress"),
        ("created", "assigned"),
        ("in_progress", "review"),
        ("in_progress", "failed"),
        ("review", "done"),
        ("failed", "created"),
    ])
    def test_allowed(self, current, target):
        assert can_transition(current, target)

    @pytest.mark.parametrize("current, target", [
        ("created", "review"),
        ("done", "in_progress"),
        ("review", "in_progress"),
        ("created", "shipped"),
        ("bogus", "created"),
    ])
    def test_refused(self, current, target):
        assert not can_transition(current, target)


class TestOwnerRecord:
    def test_decision_snapshot(self):
        owner = OwnerRecord(id="t", title="T", category="bug", priority="high", result="ok")

        assert owner.decision_snapshot() == {
            "status": "created",
            "result": "ok",
            "category": "bug",
            "priority": "high",
        }

    def test_default_status_is_plain_value(self):
        owner = OwnerRecord(id="t", title="T")

        assert type(owner.status) is str
        assert coerce_to_string(owner.decision_snapshot()["status"]) == "created"

    def test_snapshot_blanks_missing_values(self):
        snapshot = OwnerRecord(id="t", title="T").decision_snapshot()

        assert snapshot["result"] == ""
        assert snapshot["category"] == ""

    def test_record_transition_keeps_history(self):
        owner = OwnerRecord(id="t", title="T")

        owner.record_transition("in_progress", "started")

        assert owner.status == "in_progress"
        assert owner.history[0].from_status == "created"
        assert owner.history[0].to_status == "in_progress"
        assert owner.history[0].note == "started"


class TestInMemoryTaskBoard:
    def test_get_owner(self):
        board = _board()

        assert board.get_owner("task-1").title == "Task"
        assert board.get_owner("nope") is None

    def test_duplicate_owner_rejected(self):
        board = _board()

        with pytest.raises(ValueError, match="already exists"):
            board.add_owner(OwnerRecord(id="task-1", title="Again"))

    def test_valid_transition(self):
        board = _board()

        assert board.transition_owner("task-1", "in_progress", "Custom workflow started") is True

        owner = board.get_owner("task-1")
        assert owner.status == TaskStatus.IN_PROGRESS.value
        assert owner.history[-1].note == "Custom workflow started"

    def test_illegal_transition_refused(self, caplog):
        board = _board()

        assert board.transition_owner("task-1", "done", "skip ahead") is False

        assert board.get_owner("task-1").status == "created"
        assert "Refusing transition" in caplog.text

    def test_same_status_is_a_no_op(self):
        board = _board(status=TaskStatus.IN_PROGRESS)

        assert board.transition_owner("task-1", "in_progress", "again") is True
        assert board.get_owner("task-1").history == []

    def test_unknown_owner(self):
        assert _board().transition_owner("ghost", "in_progress", "") is False

    def test_set_result(self):
        board = _board()

        assert board.set_result("task-1", "approved")
        assert board.get_owner("task-1").decision_snapshot()["result"] == "approved"
        assert not board.set_result("ghost", "x")

    def test_list_owners(self):
        board = _board()
        board.add_owner(OwnerRecord(id="task-2", title="Second"))

        assert [o.id for o in board.list_owners()] == ["task-1", "task-2"]
