from __future__ import annotations

import json
from pathlib import Path

from eve_engine.events import EventWriter


def test_event_writer(tmp_path: Path) -> None:
    path = tmp_path / "events.jsonl"
    writer = EventWriter(path, "session-123")
    writer.emit("turn_completed", credential_label="Key A", attempts=1)
    lines = path.read_text(encoding="utf-8").strip().splitlines()
    assert len(lines) == 1
    payload = json.loads(lines[0])
    assert payload["type"] == "turn_completed"
    assert payload["session_id"] == "session-123"
    assert payload["seq"] == 1
    assert "ts" in payload
    assert payload["attempts"] == 1


def test_event_writer_redacts_secrets_and_inline_images(tmp_path: Path) -> None:
    writer = EventWriter(tmp_path / "events.jsonl", "s")
    writer.emit("notice", api_key="sk-live", image="data:image/png;base64," + "A" * 400, nested={"secret": "x"})
    event = writer.read()[0]
    assert event["api_key"] == "<redacted>"
    assert event["image"] == "<image/png inline, 422 chars>"
    assert event["nested"] == {"secret": "<redacted>"}


def test_events_keep_order(tmp_path: Path) -> None:
    writer = EventWriter(tmp_path / "events.jsonl", "s")
    for name in ("session_started", "session_initialized", "turn_completed"):
        writer.emit(name)
    events = writer.read()
    assert [event["type"] for event in events] == ["session_started", "session_initialized", "turn_completed"]
    assert [event["seq"] for event in events] == [1, 2, 3]


def test_read_filters_by_type_and_session(tmp_path: Path) -> None:
    path = tmp_path / "events.jsonl"
    first = EventWriter(path, "first")
    second = EventWriter(path, "second")
    first.emit("visual_requested", message_id="m1")
    second.emit("visual_requested", message_id="m2")
    first.emit("visual_completed", message_id="m1", applied=True)
    assert [event["message_id"] for event in first.read("visual_requested")] == ["m1"]
    assert [event["type"] for event in second.read()] == ["visual_requested"]
    assert second.read()[0]["seq"] == 1
