"""Configuration models and parser for agentwire.yaml."""

from agentwire.config.models import AgentwireConfig, ProviderSettings
from agentwire.config.parser import ConfigError, load_config

__all__ = [
    "AgentwireConfig",
    "ConfigError",
    "ProviderSettings",
    "load_config",
]
