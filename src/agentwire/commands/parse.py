"""agentwire parse — run captured agent output through the marker parser."""

from __future__ import annotations

from typing import TextIO

import click

from agentwire.protocol.parser import MarkerParser


@click.command()
@click.argument("source", type=click.File("r", encoding="utf-8"), default="-")
@click.option(
    "--chunk-size",
    type=click.IntRange(min=1),
    default=4096,
    show_default=True,
    help="Characters fed to the parser per call.",
)
@click.option(
    "--emit-tool-output",
    is_flag=True,
    help="Also print tool_output events.",
)
def parse(source: TextIO, chunk_size: int, emit_tool_output: bool) -> None:
    """Parse agent output from SOURCE (default: stdin) and print events as JSONL."""
    parser = MarkerParser(emit_tool_output=emit_tool_output)
    while True:
        chunk = source.read(chunk_size)
        if not chunk:
            break
        for event in parser.parse(chunk).events:
            click.echo(event.model_dump_json(by_alias=True, exclude_none=True))
    parser.flush()
