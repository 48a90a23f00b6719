"""Environment construction for the agent subprocess."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping

from agentwire.config.models import ProviderSettings
from agentwire.constants import NO_COLOR_ENV

logger = logging.getLogger(__name__)

#: Env var each provider reads its API key from (``None``: no key needed).
_PROVIDER_KEY_ENV: dict[str, str | None] = {
    "anthropic": "ANTHROPIC_API_KEY",
    "openai": "OPENAI_API_KEY",
    "google": "GOOGLE_API_KEY",
    "openrouter": "OPENROUTER_API_KEY",
    "ollama": None,
}


def build_provider_env_overrides(
    settings: ProviderSettings | None,
    base_env: Mapping[str, str],
    on_log: Callable[[str], None] | None = None,
    debug_log: Callable[[str], None] | None = None,
) -> dict[str, str]:
    """Translate provider settings into env vars for the agent.

    The API key comes from ``settings.api_key`` or, failing that, from
    ``base_env[settings.api_key_env]``.  A missing key is reported through
    *on_log* rather than raised: the agent may have its own credentials.
    """
    if settings is None:
        return {}

    overrides: dict[str, str] = {"AGENT_PROVIDER": settings.provider}
    if settings.model:
        overrides["AGENT_MODEL"] = settings.model
    if settings.base_url:
        overrides["AGENT_BASE_URL"] = settings.base_url

    key_var = _PROVIDER_KEY_ENV[settings.provider]
    if key_var is None:
        return overrides

    api_key = settings.api_key
    if not api_key and settings.api_key_env:
        api_key = base_env.get(settings.api_key_env)

    if api_key:
        overrides[key_var] = api_key
        if debug_log:
            debug_log(f"provider {settings.provider}: {key_var} set from config")
    elif key_var not in base_env:
        source = settings.api_key_env or key_var
        msg = f"No API key for provider '{settings.provider}' (looked in {source})"
        logger.warning(msg)
        if on_log:
            on_log(msg)

    return overrides


def build_process_env(
    base_env: Mapping[str, str],
    overrides: Mapping[str, str],
    extra: Mapping[str, str] | None = None,
) -> dict[str, str]:
    """Host env, then config extras, then provider overrides, colour disabled."""
    env = dict(base_env)
    if extra:
        env.update(extra)
    env.update(overrides)
    env[NO_COLOR_ENV] = "1"
    return env
