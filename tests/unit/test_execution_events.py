"""Tests for execution events and the JSONL event sink."""

import json
import threading

from dagflow.core import events as events_module
from dagflow.core.events import (
    ExecutionEvent,
    ExecutionEventType,
    JsonlEventSink,
    NullEventSink,
    RecordingEventSink,
    read_events,
)


def _event(event_type=ExecutionEventType.STARTED, **overrides):
    fields = dict(owner_id="task-1", workflow_id="wf", instance_id="abc123")
    fields.update(overrides)
    return ExecutionEvent(type=event_type, **fields)


class TestSinks:
    def test_null_sink_discards(self):
        assert NullEventSink().emit(_event()) is None

    def test_recording_sink_keeps_order(self):
        sink = RecordingEventSink()
        sink.emit(_event())
        sink.emit(_event(ExecutionEventType.NODE_DISPATCHED, node_id="a", work_item_id="wi-1"))
        sink.emit(_event(ExecutionEventType.COMPLETED))

        assert [e.type for e in sink.events] == [
            ExecutionEventType.STARTED,
            ExecutionEventType.NODE_DISPATCHED,
            ExecutionEventType.COMPLETED,
        ]
        assert sink.of_type(ExecutionEventType.NODE_DISPATCHED)[0].node_id == "a"


class TestJsonlEventSink:
    def test_appends_one_line_per_event(self, tmp_path):
        path = tmp_path / "logs" / "events.jsonl"

        with JsonlEventSink(path) as sink:
            sink.emit(_event())
            sink.emit(_event(ExecutionEventType.FAILED, detail="dispatch failed"))

        lines = path.read_text().splitlines()
        assert len(lines) == 2
        assert json.loads(lines[0])["type"] == "started"
        assert json.loads(lines[1])["detail"] == "dispatch failed"

    def test_appends_across_sinks(self, tmp_path):
        path = tmp_path / "events.jsonl"
        with JsonlEventSink(path) as sink:
            sink.emit(_event())
        with JsonlEventSink(path) as sink:
            sink.emit(_event(ExecutionEventType.COMPLETED))

        assert [e.type for e in read_events(path)] == [
            ExecutionEventType.STARTED,
            ExecutionEventType.COMPLETED,
        ]

    def test_disabled_sink_writes_nothing(self, tmp_path):
        path = tmp_path / "events.jsonl"

        with JsonlEventSink(path, enabled=False) as sink:
            sink.emit(_event())

        assert not path.exists()
        assert sink.enabled is False

    def test_write_errors_are_swallowed(self, tmp_path):
        # A directory where the file should be makes open() fail
        path = tmp_path / "events.jsonl"
        path.mkdir()

        sink = JsonlEventSink(path)
        sink.emit(_event())
        sink.close()

    def test_file_opened_lazily(self, tmp_path):
        path = tmp_path / "events.jsonl"
        sink = JsonlEventSink(path)

        assert not path.exists()
        assert sink.path == path
        sink.close()

    def test_concurrent_first_emits_share_one_handle(self, tmp_path, monkeypatch):
        path = tmp_path / "events.jsonl"
        opened = []

        def counting_open(*args, **kwargs):
            handle = open(*args, **kwargs)
            opened.append(handle)
            return handle

        monkeypatch.setattr(events_module, "open", counting_open, raising=False)
        sink = JsonlEventSink(path)
        barrier = threading.Barrier(8)

        def emit(i):
            barrier.wait()
            sink.emit(_event(instance_id=f"inst-{i}"))

        threads = [threading.Thread(target=emit, args=(i,)) for i in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=5)
        sink.close()

        assert len(opened) == 1
        assert sorted(e.instance_id for e in read_events(path)) == [f"inst-{i}" for i in range(8)]


class TestReadEvents:
    def test_missing_file(self, tmp_path):
        assert read_events(tmp_path / "none.jsonl") == []

    def test_skips_unparseable_lines(self, tmp_path):
        path = tmp_path / "events.jsonl"
        path.write_text(
            _event().model_dump_json() + "\n"
            "not json\n"
            "\n"
            '{"type": "mystery"}\n'
            + _event(ExecutionEventType.CANCELLED).model_dump_json() + "\n"
        )

        assert [e.type for e in read_events(path)] == [
            ExecutionEventType.STARTED,
            ExecutionEventType.CANCELLED,
        ]
