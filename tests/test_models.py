"""Tests for stream event models."""

from __future__ import annotations

import json

import pytest
from pydantic import ValidationError

from agentwire.protocol.models import (
    STREAM_EVENT_ADAPTER,
    SessionCreatedEvent,
    StatusEvent,
    TextEvent,
    ToolOutputEvent,
    ToolUseEvent,
)


class TestEventShapes:
    """Events serialise to the camelCase shapes consumers expect."""

    def test_text_event_alias(self) -> None:
        event = TextEvent(text="hi\n", partial=True, is_answered=True)
        data = json.loads(event.model_dump_json(by_alias=True))
        assert data == {"type": "text", "text": "hi\n", "partial": True, "isAnswered": True}

    def test_text_event_omits_unset_answered(self) -> None:
        event = TextEvent(text="hi\n")
        data = event.model_dump(by_alias=True, exclude_none=True)
        assert "isAnswered" not in data
        assert data["partial"] is True

    def test_session_created_alias(self) -> None:
        event = SessionCreatedEvent(session_id="g3-1", timestamp=123)
        assert event.model_dump(by_alias=True) == {
            "type": "session_created",
            "sessionId": "g3-1",
            "timestamp": 123,
        }

    def test_events_are_immutable(self) -> None:
        event = ToolUseEvent(name="x", params={})
        with pytest.raises(ValidationError):
            event.name = "y"  # type: ignore[misc]

    def test_extra_fields_rejected(self) -> None:
        with pytest.raises(ValidationError):
            StatusEvent(message="m", timestamp="t", extra="nope")  # type: ignore[call-arg]


class TestDiscriminatedUnion:
    @pytest.mark.parametrize(
        ("raw", "cls"),
        [
            ({"type": "text", "text": "a", "partial": True}, TextEvent),
            ({"type": "tool_use", "name": "n", "params": {"k": "v"}}, ToolUseEvent),
            ({"type": "tool_output", "name": "n", "output": "o"}, ToolOutputEvent),
            ({"type": "status", "message": "m", "timestamp": "t"}, StatusEvent),
            ({"type": "session_created", "sessionId": "s", "timestamp": 1}, SessionCreatedEvent),
        ],
    )
    def test_validates_each_kind(self, raw: dict[str, object], cls: type) -> None:
        assert isinstance(STREAM_EVENT_ADAPTER.validate_python(raw), cls)

    def test_unknown_type_rejected(self) -> None:
        with pytest.raises(ValidationError):
            STREAM_EVENT_ADAPTER.validate_python({"type": "mystery"})

