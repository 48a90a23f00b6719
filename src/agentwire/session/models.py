"""Pydantic v2 models for session bookkeeping."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

SessionStatus = Literal["creating", "running", "done", "error"]


class SessionRecord(BaseModel):
    """Registry entry for one agent session."""

    model_config = ConfigDict(extra="forbid")

    session_id: str = Field(description="Unique session identifier")
    prompt: str = Field(default="", description="Prompt the session was started with")
    label: str | None = Field(default=None, description="Display label")
    created_at: int = Field(description="Epoch milliseconds")
    status: SessionStatus = Field(default="creating", description="Lifecycle status")
    pid: int | None = Field(default=None, description="Agent subprocess PID")
    exit_code: int | None = Field(
        default=None,
        description="Exit code once the subprocess has exited",
    )
