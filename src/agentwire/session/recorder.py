"""Event recorder — append-only JSONL transcript of forwarded stream events."""

from __future__ import annotations

import json
import re
import threading
from datetime import UTC, datetime
from pathlib import Path
from typing import IO

from agentwire.protocol.models import STREAM_EVENT_ADAPTER, StreamEvent
from agentwire.timestamps import iso_now

#: Session ids end up in filenames — keep them to a safe alphabet.
_UNSAFE_CHARS_RE = re.compile(r"[^a-zA-Z0-9_.-]")


class EventRecorder:
    """Records stream events to one JSONL file per session.

    Thread-safe: all writes are serialized through a ``threading.Lock``.
    Crash-safe: the file is flushed after every event.
    """

    def __init__(self, session_id: str, sessions_dir: Path | None = None) -> None:
        self._session_id = session_id
        self._lock = threading.Lock()
        self._seq = 0
        self._closed = False

        if sessions_dir is None:
            sessions_dir = Path("sessions")
        sessions_dir.mkdir(parents=True, exist_ok=True)

        date_str = datetime.now(tz=UTC).strftime("%Y-%m-%d")
        safe_id = _UNSAFE_CHARS_RE.sub("_", session_id)
        self._session_file = sessions_dir / f"{date_str}_{safe_id}.jsonl"
        self._fh: IO[str] | None = self._session_file.open("a", encoding="utf-8")

    @property
    def session_file(self) -> Path:
        """Path to the JSONL transcript."""
        return self._session_file

    @property
    def event_count(self) -> int:
        """Number of events recorded so far."""
        return self._seq

    def record(self, event: StreamEvent) -> None:
        """Append *event* with a sequence number and timestamp.

        Silently drops events after the recorder has been closed.
        """
        with self._lock:
            if self._closed or self._fh is None:
                return
            entry = {
                "seq": self._seq,
                "ts": iso_now(),
                "session_id": self._session_id,
                "event": event.model_dump(mode="json", by_alias=True),
            }
            self._seq += 1
            self._fh.write(json.dumps(entry) + "\n")
            self._fh.flush()

    def close(self) -> None:
        """Close the transcript.  Idempotent."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            if self._fh is not None and not self._fh.closed:
                self._fh.close()


def load_transcript(path: Path) -> list[StreamEvent]:
    """Read the events of a transcript written by ``EventRecorder``.

    Blank lines are skipped; malformed lines raise ``ValueError``.
    """
    events: list[StreamEvent] = []
    with path.open(encoding="utf-8") as fh:
        for lineno, line in enumerate(fh, start=1):
            if not line.strip():
                continue
            try:
                entry = json.loads(line)
            except json.JSONDecodeError as exc:
                msg = f"{path.name}:{lineno}: invalid JSON"
                raise ValueError(msg) from exc
            if not isinstance(entry, dict) or "event" not in entry:
                msg = f"{path.name}:{lineno}: missing 'event'"
                raise ValueError(msg)
            events.append(STREAM_EVENT_ADAPTER.validate_python(entry["event"]))
    return events
