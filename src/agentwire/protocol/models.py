"""Pydantic v2 models for events parsed from the agent's stdout."""

from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Discriminator, Field, Tag, TypeAdapter


class _EventBase(BaseModel):
    """Immutable base for every stream event."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid", frozen=True)


class TextEvent(_EventBase):
    """A fragment of streamed narration (agent response or final answer)."""

    type: Literal["text"] = "text"
    text: str = Field(description="Narration text including its line terminator")
    partial: bool = Field(
        default=True,
        description="Whether more text for the same message may follow",
    )
    is_answered: bool | None = Field(
        default=None,
        alias="isAnswered",
        description="Set on fragments of the final answer block",
    )


class ToolUseEvent(_EventBase):
    """A tool invocation, emitted once all of its arguments are known."""

    type: Literal["tool_use"] = "tool_use"
    name: str = Field(description="Tool name")
    params: dict[str, str] = Field(description="Resolved tool arguments")


class ToolOutputEvent(_EventBase):
    """Collected output of a tool block (only when the parser is asked for it)."""

    type: Literal["tool_output"] = "tool_output"
    name: str = Field(description="Tool that produced the output")
    output: str = Field(description="Raw output lines, newline-terminated")


class StatusEvent(_EventBase):
    """Context status line reported by the agent while idle."""

    type: Literal["status"] = "status"
    message: str = Field(description="Status message")
    timestamp: str = Field(description="ISO 8601 UTC timestamp with milliseconds")


class SessionCreatedEvent(_EventBase):
    """Emitted by the process handler as soon as the subprocess is running."""

    type: Literal["session_created"] = "session_created"
    session_id: str = Field(alias="sessionId", description="Session identifier")
    timestamp: int = Field(description="Epoch milliseconds")


def _event_discriminator(v: Any) -> str:
    """Extract the discriminator value from raw data or a model instance."""
    if isinstance(v, dict):
        return str(v.get("type", ""))
    return str(getattr(v, "type", ""))


StreamEvent = Annotated[
    Annotated[TextEvent, Tag("text")]
    | Annotated[ToolUseEvent, Tag("tool_use")]
    | Annotated[ToolOutputEvent, Tag("tool_output")]
    | Annotated[StatusEvent, Tag("status")]
    | Annotated[SessionCreatedEvent, Tag("session_created")],
    Discriminator(_event_discriminator),
]
"""Discriminated union of all stream event types."""

#: Validates raw dicts (e.g. from a JSONL transcript) into stream events.
STREAM_EVENT_ADAPTER: TypeAdapter[StreamEvent] = TypeAdapter(StreamEvent)
