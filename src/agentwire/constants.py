"""Shared constants and type aliases for the agentwire runtime."""

from __future__ import annotations

#: Environment variable that disables ANSI colour in the agent's output.
NO_COLOR_ENV = "NO_COLOR"

#: Prefix for generated session identifiers (``g3-<epoch ms>``).
SESSION_ID_PREFIX = "g3"

#: Default executable name when the config does not name one.
DEFAULT_BINARY = "g3"
