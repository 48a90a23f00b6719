"""Session registry — tracks status and PIDs of agent sessions."""

from __future__ import annotations

import logging
from typing import Protocol, runtime_checkable

from agentwire.session.models import SessionRecord, SessionStatus
from agentwire.timestamps import epoch_ms

logger = logging.getLogger(__name__)


@runtime_checkable
class SessionRegistry(Protocol):
    """What the process handler needs from session bookkeeping."""

    def create_session(
        self,
        session_id: str,
        prompt: str,
        created_at: int,
        label_override: str | None = None,
    ) -> None:
        """Record a brand new session."""
        ...

    def update_session_status(
        self,
        session_id: str,
        status: SessionStatus,
        exit_code: int | None = None,
    ) -> None:
        """Move a session to *status*, optionally with its exit code."""
        ...

    def set_session_pid(self, session_id: str, pid: int) -> None:
        """Attach the subprocess PID to a session."""
        ...


class InMemorySessionRegistry:
    """Process-local ``SessionRegistry`` backed by a dict."""

    def __init__(self) -> None:
        self._sessions: dict[str, SessionRecord] = {}

    @property
    def sessions(self) -> list[SessionRecord]:
        """All known sessions, oldest first."""
        return sorted(self._sessions.values(), key=lambda r: r.created_at)

    def get(self, session_id: str) -> SessionRecord | None:
        return self._sessions.get(session_id)

    def create_session(
        self,
        session_id: str,
        prompt: str,
        created_at: int,
        label_override: str | None = None,
    ) -> None:
        if session_id in self._sessions:
            logger.warning("Session %s already exists, replacing it", session_id)
        self._sessions[session_id] = SessionRecord(
            session_id=session_id,
            prompt=prompt,
            label=label_override,
            created_at=created_at,
        )

    def update_session_status(
        self,
        session_id: str,
        status: SessionStatus,
        exit_code: int | None = None,
    ) -> None:
        record = self._ensure(session_id)
        record.status = status
        if exit_code is not None:
            record.exit_code = exit_code

    def set_session_pid(self, session_id: str, pid: int) -> None:
        self._ensure(session_id).pid = pid

    def _ensure(self, session_id: str) -> SessionRecord:
        # Resumed sessions may never have been created in this process.
        record = self._sessions.get(session_id)
        if record is None:
            record = SessionRecord(session_id=session_id, created_at=epoch_ms())
            self._sessions[session_id] = record
        return record
