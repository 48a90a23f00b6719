"""Pydantic v2 models for agentwire.yaml configuration."""

from __future__ import annotations

import re
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from agentwire.constants import DEFAULT_BINARY

_ENV_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

ProviderName = Literal["anthropic", "openai", "google", "openrouter", "ollama"]


class ProviderSettings(BaseModel):
    """LLM provider the agent subprocess should talk to."""

    model_config = ConfigDict(extra="forbid")

    provider: ProviderName = Field(description="Provider identifier")
    model: str | None = Field(
        default=None,
        description="Model name passed through to the agent, e.g. 'claude-sonnet-4-5'",
    )
    api_key: str | None = Field(
        default=None,
        description="Literal API key (prefer api_key_env)",
    )
    api_key_env: str | None = Field(
        default=None,
        description="Host env var holding the API key",
    )
    base_url: str | None = Field(
        default=None,
        description="Custom API endpoint (required for ollama)",
    )

    @model_validator(mode="after")
    def _validate_provider_fields(self) -> ProviderSettings:
        if self.api_key_env is not None and not _ENV_NAME_RE.match(self.api_key_env):
            msg = f"Invalid environment variable name '{self.api_key_env}'"
            raise ValueError(msg)
        if self.provider == "ollama" and not self.base_url:
            msg = "Provider 'ollama' requires 'base_url'"
            raise ValueError(msg)
        return self


class AgentwireConfig(BaseModel):
    """Top-level agentwire.yaml configuration."""

    model_config = ConfigDict(extra="forbid")

    version: str = Field(description="Config schema version")
    binary: str = Field(
        default=DEFAULT_BINARY,
        description="Agent executable (name on PATH or absolute path)",
    )
    workspace: str = Field(
        default=".",
        description="Workspace directory handed to the agent",
    )
    label: str | None = Field(
        default=None,
        description="Display label for sessions started from this config",
    )
    provider: ProviderSettings | None = Field(
        default=None,
        description="Provider settings turned into env overrides",
    )
    emit_tool_output: bool = Field(
        default=False,
        description="Surface collected tool output as tool_output events",
    )
    env: dict[str, str] = Field(
        default_factory=dict,
        description="Extra environment variables for the agent subprocess",
    )

    @model_validator(mode="after")
    def _validate_env_names(self) -> AgentwireConfig:
        bad = sorted(k for k in self.env if not _ENV_NAME_RE.match(k))
        if bad:
            joined = ", ".join(f"'{k}'" for k in bad)
            msg = f"Invalid environment variable names: {joined}"
            raise ValueError(msg)
        return self
