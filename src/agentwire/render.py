"""Plain-text rendering of stream events for the terminal."""

from __future__ import annotations

from typing import assert_never

from agentwire.protocol.models import (
    SessionCreatedEvent,
    StatusEvent,
    StreamEvent,
    TextEvent,
    ToolOutputEvent,
    ToolUseEvent,
)

#: Max characters of a tool argument value shown inline.
_ARG_PREVIEW_LEN = 80


def _preview(value: str) -> str:
    if len(value) <= _ARG_PREVIEW_LEN:
        return value
    return value[: _ARG_PREVIEW_LEN - 3] + "..."


def stderr_tail(stderr_text: str, max_lines: int = 5) -> str:
    """Last *max_lines* non-blank lines of agent stderr, joined for an indented block."""
    lines = [line for line in stderr_text.splitlines() if line.strip()]
    return "\n  ".join(lines[-max_lines:])


def format_event(event: StreamEvent) -> str:
    """Render *event* as terminal text.

    Text fragments are returned verbatim (they carry their own newline);
    everything else is rendered as one bracketed, newline-terminated line.
    """
    match event:
        case TextEvent():
            return event.text
        case ToolUseEvent():
            args = ", ".join(f"{k}={_preview(v)}" for k, v in event.params.items())
            return f"[tool] {event.name}({args})\n"
        case ToolOutputEvent():
            lines = event.output.count("\n")
            return f"[tool] {event.name} produced {lines} line(s) of output\n"
        case StatusEvent():
            return f"[status] {event.message}\n"
        case SessionCreatedEvent():
            return f"[session] {event.session_id} started\n"
        case _:
            assert_never(event)
