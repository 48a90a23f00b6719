"""Load agentwire.yaml into an ``AgentwireConfig`` ready for spawning."""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from pydantic import ValidationError

from agentwire.config.models import AgentwireConfig

DEFAULT_CONFIG_NAME = "agentwire.yaml"

#: Replacement wording for pydantic error types users hit most.
_ERROR_WORDING = {
    "missing": "required but not set",
    "extra_forbidden": "unknown key",
    "bool_parsing": "expected true or false",
}


class ConfigError(Exception):
    """User-facing configuration error."""


def load_config(path: Path | None = None) -> AgentwireConfig:
    """Find, parse and validate agentwire.yaml.

    *path* defaults to ``agentwire.yaml`` in the current directory.  The
    returned config has an absolute, existing ``workspace`` and the
    ``.env`` beside the file (if any) has been loaded into ``os.environ``.

    Raises:
        ConfigError: Missing file, bad YAML, invalid fields or a workspace
            that does not exist.
    """
    config_path = find_config(path)
    config = _validate(_load_yaml(config_path), config_path)
    return _prepare(config, config_path.parent)


def find_config(path: Path | None = None) -> Path:
    """Return the config file to use, or raise ``ConfigError``."""
    candidate = Path(path) if path is not None else Path.cwd() / DEFAULT_CONFIG_NAME
    if candidate.is_file():
        return candidate
    if path is not None:
        msg = f"Config file not found: {candidate}"
    else:
        msg = (
            f"No {DEFAULT_CONFIG_NAME} found in {candidate.parent}. "
            "Run `agentwire init` to create one."
        )
    raise ConfigError(msg)


def _load_yaml(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as exc:
        msg = f"Cannot read {path}: {exc}"
        raise ConfigError(msg) from exc
    except yaml.YAMLError as exc:
        mark = getattr(exc, "problem_mark", None)
        where = f" at line {mark.line + 1}, column {mark.column + 1}" if mark else ""
        msg = f"Invalid YAML in {path.name}{where}"
        raise ConfigError(msg) from exc

    if data is None:
        msg = f"{path.name} is empty; it needs at least `version: \"1\"`"
        raise ConfigError(msg)
    if not isinstance(data, dict):
        msg = f"Expected a YAML mapping in {path.name}, got {type(data).__name__}"
        raise ConfigError(msg)
    return data


def _describe(error: Mapping[str, Any]) -> str:
    # Model-level validators report against the enclosing section.
    where = ".".join(str(part) for part in error["loc"]) or "(top level)"
    wording = _ERROR_WORDING.get(error["type"])
    if wording is None:
        wording = error["msg"].removeprefix("Value error, ")
    return f"  {where}: {wording}"


def _validate(raw: dict[str, Any], path: Path) -> AgentwireConfig:
    try:
        return AgentwireConfig.model_validate(raw)
    except ValidationError as exc:
        details = "\n".join(_describe(err) for err in exc.errors())
        msg = f"Config validation failed for {path.name}:\n{details}"
        raise ConfigError(msg) from exc


def _prepare(config: AgentwireConfig, config_dir: Path) -> AgentwireConfig:
    """Load the sibling ``.env`` and pin the workspace to an existing directory.

    A relative workspace is taken relative to the config file, not the
    current directory.
    """
    env_file = config_dir / ".env"
    if env_file.is_file():
        load_dotenv(env_file)

    workspace = Path(config.workspace).expanduser()
    if not workspace.is_absolute():
        workspace = config_dir / workspace
    workspace = workspace.resolve()
    if not workspace.is_dir():
        msg = f"Workspace directory does not exist: {workspace}"
        raise ConfigError(msg)
    return config.model_copy(update={"workspace": str(workspace)})
