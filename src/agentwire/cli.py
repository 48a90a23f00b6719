"""Root CLI group and version flag."""

import click

from agentwire import __version__
from agentwire.commands.init import init
from agentwire.commands.parse import parse
from agentwire.commands.run import run


@click.group()
@click.version_option(version=__version__, prog_name="agentwire")
def cli() -> None:
    """agentwire — run marker-protocol agents and stream their events."""


cli.add_command(init)
cli.add_command(run)
cli.add_command(parse)
