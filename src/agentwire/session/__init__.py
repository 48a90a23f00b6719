"""Session bookkeeping — registry, records and the JSONL event recorder."""

from agentwire.session.models import SessionRecord, SessionStatus
from agentwire.session.recorder import EventRecorder, load_transcript
from agentwire.session.registry import InMemorySessionRegistry, SessionRegistry

__all__ = [
    "EventRecorder",
    "InMemorySessionRegistry",
    "SessionRecord",
    "SessionRegistry",
    "SessionStatus",
    "load_transcript",
]
