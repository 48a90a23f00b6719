"""Marker protocol — event models and the streaming parser."""

from agentwire.protocol.models import (
    STREAM_EVENT_ADAPTER,
    SessionCreatedEvent,
    StatusEvent,
    StreamEvent,
    TextEvent,
    ToolOutputEvent,
    ToolUseEvent,
)
from agentwire.protocol.parser import MarkerParser, ParseResult, ParseState

__all__ = [
    "STREAM_EVENT_ADAPTER",
    "MarkerParser",
    "ParseResult",
    "ParseState",
    "SessionCreatedEvent",
    "StatusEvent",
    "StreamEvent",
    "TextEvent",
    "ToolOutputEvent",
    "ToolUseEvent",
]
