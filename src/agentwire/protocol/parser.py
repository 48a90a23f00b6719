"""Streaming parser for the agent's line-oriented marker protocol.

The agent writes plain text to stdout.  Lines whose trimmed content matches
one of the marker literals below switch the parser between blocks; every
other line is payload whose meaning depends on the current block:

    AGENT_RESPONSE:           narration follows (streamed as text)
    TOOL_CALL:<name>          tool invocation begins
    TOOL_ARG:<key>=<value>    one argument of the current tool call
    TOOL_OUTPUT:              arguments done, tool output follows
    END_TOOL_OUTPUT           tool output done
    FINAL_OUTPUT:             final answer follows (streamed as text)
    CONTEXT_STATUS:<message>  status line, only honoured while idle

Chunks may split lines (and markers) anywhere; the unterminated tail of each
chunk is buffered until the next call.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from agentwire.protocol.models import (
    StatusEvent,
    StreamEvent,
    TextEvent,
    ToolOutputEvent,
    ToolUseEvent,
)
from agentwire.timestamps import iso_now

logger = logging.getLogger(__name__)

AGENT_RESPONSE = "AGENT_RESPONSE:"
TOOL_CALL = "TOOL_CALL:"
TOOL_ARG = "TOOL_ARG:"
TOOL_OUTPUT = "TOOL_OUTPUT:"
END_TOOL_OUTPUT = "END_TOOL_OUTPUT"
FINAL_OUTPUT = "FINAL_OUTPUT:"
CONTEXT_STATUS = "CONTEXT_STATUS:"


class ParseState(enum.Enum):
    """Block the parser is currently inside."""

    IDLE = "idle"
    AGENT_RESPONSE = "agent_response"
    TOOL_ARGS = "tool_args"
    TOOL_OUTPUT = "tool_output"
    FINAL_OUTPUT = "final_output"


@dataclass
class ParseResult:
    """Events derived from one ``parse`` call plus the retained partial line."""

    events: list[StreamEvent] = field(default_factory=list)
    remaining_buffer: str = ""


class MarkerParser:
    """Incremental marker-protocol parser, one instance per session.

    Performs no I/O.  ``parse`` may be called with arbitrarily split chunks
    as long as they arrive in stream order.

    Args:
        emit_tool_output: Also emit a ``ToolOutputEvent`` with the collected
            output when a tool block ends.  Off by default: the output is
            collected but not surfaced.
        clock: Returns the timestamp stamped on status events.
    """

    def __init__(
        self,
        emit_tool_output: bool = False,
        clock: Callable[[], str] | None = None,
    ) -> None:
        self._emit_tool_output = emit_tool_output
        self._clock = clock or iso_now
        self._buffer = ""
        self._state = ParseState.IDLE
        self._tool_name: str | None = None
        self._tool_args: dict[str, str] = {}
        self._tool_output = ""

    # ------------------------------------------------------------------ #
    # Inspection
    # ------------------------------------------------------------------ #

    @property
    def state(self) -> ParseState:
        return self._state

    @property
    def buffer(self) -> str:
        """Unterminated tail carried over to the next ``parse`` call."""
        return self._buffer

    @property
    def current_tool_name(self) -> str | None:
        return self._tool_name

    @property
    def current_tool_args(self) -> dict[str, str]:
        return dict(self._tool_args)

    @property
    def current_tool_output(self) -> str:
        return self._tool_output

    # ------------------------------------------------------------------ #
    # Parsing
    # ------------------------------------------------------------------ #

    def parse(self, chunk: str) -> ParseResult:
        """Consume *chunk* and return the events of every line it completes."""
        self._buffer += chunk
        lines = self._buffer.split("\n")
        # Last element has no terminator yet.
        self._buffer = lines.pop()

        events: list[StreamEvent] = []
        for line in lines:
            # CRLF streams: the carriage return belongs to the terminator.
            if line.endswith("\r"):
                line = line[:-1]
            self._handle_line(line, events)

        return ParseResult(events=events, remaining_buffer=self._buffer)

    def flush(self) -> ParseResult:
        """End of stream: discard any unterminated trailing line."""
        if self._buffer:
            logger.debug(
                "Discarding %d chars of unterminated output at end of stream",
                len(self._buffer),
            )
        self._buffer = ""
        return ParseResult()

    def reset(self) -> None:
        """Drop all buffered input and tool state and return to idle."""
        self._buffer = ""
        self._state = ParseState.IDLE
        self._tool_name = None
        self._tool_args = {}
        self._tool_output = ""

    # ------------------------------------------------------------------ #
    # Internal
    # ------------------------------------------------------------------ #

    def _handle_line(self, line: str, events: list[StreamEvent]) -> None:
        trimmed = line.strip()

        if self._handle_marker(trimmed, events):
            return

        match self._state:
            case ParseState.AGENT_RESPONSE:
                events.append(TextEvent(text=line + "\n", partial=True))
            case ParseState.TOOL_ARGS:
                self._handle_tool_arg(trimmed)
            case ParseState.TOOL_OUTPUT:
                self._tool_output += line + "\n"
            case ParseState.FINAL_OUTPUT:
                events.append(
                    TextEvent(text=line + "\n", partial=True, is_answered=True)
                )
            case ParseState.IDLE:
                if trimmed.startswith(CONTEXT_STATUS):
                    message = trimmed[len(CONTEXT_STATUS) :].strip()
                    events.append(StatusEvent(message=message, timestamp=self._clock()))

    def _handle_marker(self, trimmed: str, events: list[StreamEvent]) -> bool:
        """Apply a marker line.  Returns ``False`` if *trimmed* is not a marker."""
        if trimmed == AGENT_RESPONSE:
            self._state = ParseState.AGENT_RESPONSE

        elif trimmed.startswith(TOOL_CALL):
            self._state = ParseState.TOOL_ARGS
            self._tool_name = trimmed[len(TOOL_CALL) :].strip()
            self._tool_args = {}
            self._tool_output = ""

        elif trimmed.startswith(TOOL_OUTPUT):
            # The single point where a tool call is surfaced: all of its
            # TOOL_ARG lines have been consumed by now.
            if self._tool_name:
                events.append(
                    ToolUseEvent(name=self._tool_name, params=dict(self._tool_args))
                )
            self._state = ParseState.TOOL_OUTPUT
            self._tool_output = ""

        elif trimmed == END_TOOL_OUTPUT:
            if self._emit_tool_output and self._tool_name:
                events.append(
                    ToolOutputEvent(name=self._tool_name, output=self._tool_output)
                )
            self._state = ParseState.IDLE
            self._tool_name = None
            self._tool_args = {}
            self._tool_output = ""

        elif trimmed == FINAL_OUTPUT:
            self._state = ParseState.FINAL_OUTPUT

        else:
            return False
        return True

    def _handle_tool_arg(self, trimmed: str) -> None:
        if not trimmed.startswith(TOOL_ARG):
            return
        content = trimmed[len(TOOL_ARG) :].strip()
        key, sep, value = content.partition("=")
        if not sep:
            return
        self._tool_args[key.strip()] = value.strip()
