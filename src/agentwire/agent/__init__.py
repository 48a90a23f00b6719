"""Agent subprocess management."""

from agentwire.agent.env import build_process_env, build_provider_env_overrides
from agentwire.agent.process_handler import (
    EventSink,
    ProcessHandler,
    ProcessHandlerCallbacks,
    SpawnOptions,
)

__all__ = [
    "EventSink",
    "ProcessHandler",
    "ProcessHandlerCallbacks",
    "SpawnOptions",
    "build_process_env",
    "build_provider_env_overrides",
]
