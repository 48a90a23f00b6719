"""agentwire init — scaffold an agentwire.yaml in the current directory."""

from __future__ import annotations

from pathlib import Path

import click

CONFIG_FILENAME = "agentwire.yaml"
ENV_EXAMPLE_FILENAME = ".env.example"

TEMPLATE_YAML = """\
# agentwire configuration
version: "1"

# Agent executable (name on PATH or absolute path)
binary: g3

# Workspace handed to the agent via --workspace (relative to this file)
workspace: .

# Optional display label for sessions
# label: my-project

# Provider settings, turned into environment variables for the agent
provider:
  provider: anthropic
  model: claude-sonnet-4-5
  api_key_env: ANTHROPIC_API_KEY
  # base_url: http://localhost:11434   # required for ollama

# Surface collected tool output as tool_output events
# emit_tool_output: false

# Extra environment variables for the agent subprocess
# env:
#   RUST_LOG: info
"""

TEMPLATE_ENV_EXAMPLE = """\
# API keys for the provider configured in agentwire.yaml.
# Copy this file to .env and fill in your keys.

ANTHROPIC_API_KEY=
OPENAI_API_KEY=
GOOGLE_API_KEY=
OPENROUTER_API_KEY=
"""


@click.command()
@click.option(
    "--force",
    is_flag=True,
    help="Overwrite existing agentwire.yaml if it exists.",
)
def init(force: bool) -> None:
    """Scaffold a new agentwire config in the current directory."""
    cwd = Path.cwd()
    config_path = cwd / CONFIG_FILENAME
    env_example_path = cwd / ENV_EXAMPLE_FILENAME

    if config_path.exists() and not force:
        raise click.ClickException(
            f"{CONFIG_FILENAME} already exists. Use --force to overwrite."
        )

    try:
        config_path.write_text(TEMPLATE_YAML, encoding="utf-8")
    except OSError as exc:
        raise click.ClickException(f"Cannot write {CONFIG_FILENAME}: {exc}") from exc
    click.echo(f"  Created {CONFIG_FILENAME}")

    if not env_example_path.exists() or force:
        try:
            env_example_path.write_text(TEMPLATE_ENV_EXAMPLE, encoding="utf-8")
        except OSError as exc:
            raise click.ClickException(
                f"Cannot write {ENV_EXAMPLE_FILENAME}: {exc}"
            ) from exc
        click.echo(f"  Created {ENV_EXAMPLE_FILENAME}")
    else:
        click.echo(f"  Skipped {ENV_EXAMPLE_FILENAME} (already exists)")

    click.echo()
    click.echo("Next steps:")
    click.echo(f"  1. Edit {CONFIG_FILENAME} to point at your agent binary")
    click.echo("  2. Copy .env.example to .env and add your API key")
    click.echo('  3. Run `agentwire run "your task"`')
