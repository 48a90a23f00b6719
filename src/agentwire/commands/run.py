"""agentwire run — run one agent session and stream its events to the terminal."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import click

from agentwire.agent.process_handler import (
    ProcessHandler,
    ProcessHandlerCallbacks,
    SpawnOptions,
)
from agentwire.config.models import AgentwireConfig
from agentwire.config.parser import ConfigError, load_config
from agentwire.protocol.models import StreamEvent
from agentwire.render import format_event, stderr_tail
from agentwire.session.recorder import EventRecorder
from agentwire.session.registry import InMemorySessionRegistry

_STDERR_PREFIX = "stderr: "


@click.command()
@click.argument("prompt", required=False, default="")
@click.option(
    "-f", "--file", "config_file", type=click.Path(), help="Config file path."
)
@click.option("--binary", default=None, help="Agent executable (overrides config).")
@click.option(
    "--workspace",
    type=click.Path(file_okay=False),
    default=None,
    help="Workspace directory (overrides config).",
)
@click.option(
    "--session-id",
    default=None,
    help="Resume an existing session instead of creating one.",
)
@click.option(
    "--record",
    "record_dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Write a JSONL transcript of all events to this directory.",
)
@click.option("-v", "--verbose", is_flag=True, help="Show agent stderr and debug logs.")
def run(
    prompt: str,
    config_file: str | None,
    binary: str | None,
    workspace: str | None,
    session_id: str | None,
    record_dir: Path | None,
    verbose: bool,
) -> None:
    """Run the agent on PROMPT and stream its events."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )

    try:
        config = load_config(Path(config_file) if config_file else None)
    except ConfigError as exc:
        # A binary on the command line is enough to run without a config file.
        if binary is None or config_file is not None:
            click.echo(f"Error: {exc}", err=True)
            raise SystemExit(1) from exc
        config = AgentwireConfig(version="1")

    updates: dict[str, str] = {}
    if binary is not None:
        updates["binary"] = binary
    if workspace is not None:
        updates["workspace"] = str(Path(workspace).resolve())
    if updates:
        config = config.model_copy(update=updates)

    exit_code = asyncio.run(_run_session(config, prompt, session_id, record_dir, verbose))
    raise SystemExit(exit_code)


async def _run_session(
    config: AgentwireConfig,
    prompt: str,
    session_id: str | None,
    record_dir: Path | None,
    verbose: bool,
) -> int:
    """Spawn the agent, render its events until it exits, return its exit code."""
    registry = InMemorySessionRegistry()
    stderr_chunks: list[str] = []
    failures: list[Exception] = []
    recorder: EventRecorder | None = None

    def on_debug_log(message: str) -> None:
        if message.startswith(_STDERR_PREFIX):
            stderr_chunks.append(message[len(_STDERR_PREFIX) :])
        if verbose:
            click.echo(message.rstrip("\n"), err=True)

    def on_log(message: str) -> None:
        click.echo(message, err=True)

    async def on_event(sid: str, event: StreamEvent) -> None:
        nonlocal recorder
        if record_dir is not None and recorder is None:
            recorder = EventRecorder(sid, record_dir)
        if recorder is not None:
            recorder.record(event)
        click.echo(format_event(event), nl=False)

    handler = ProcessHandler(
        registry,
        ProcessHandlerCallbacks(
            on_log=on_log,
            on_debug_log=on_debug_log,
            on_start_session_failed=failures.append,
        ),
        emit_tool_output=config.emit_tool_output,
    )
    options = SpawnOptions(
        session_id=session_id,
        label=config.label,
        provider=config.provider,
        extra_env=dict(config.env),
    )

    try:
        sid = await handler.spawn(
            config.binary, config.workspace, prompt, options, on_event
        )
        if failures:
            click.echo(
                f"Error: failed to start agent '{config.binary}': {failures[0]}",
                err=True,
            )
            return 1
        returncode = await handler.wait(sid)
    finally:
        await handler.shutdown()
        if recorder is not None:
            recorder.close()

    if returncode is None:
        click.echo(f"Session {sid} was stopped.", err=True)
        return 1

    if returncode != 0:
        preview = stderr_tail("".join(stderr_chunks))
        error_msg = f"Agent exited with code {returncode}."
        if preview:
            error_msg += f" Stderr:\n  {preview}"
        click.echo(error_msg, err=True)

    if recorder is not None:
        click.echo(f"Log: {recorder.session_file}", err=True)
    return returncode
