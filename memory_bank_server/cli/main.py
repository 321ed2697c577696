"""Main CLI entry point for the memory bank server."""

from pathlib import Path

import click
from rich.console import Console

from memory_bank_server import __version__
from memory_bank_server.cli.commands.audit import audit
from memory_bank_server.cli.commands.documents import (
    export,
    health,
    read,
    resources,
    status,
    tools,
    update,
    validate,
)
from memory_bank_server.cli.commands.server import serve
from memory_bank_server.models.config import ServerSettings

console = Console()


@click.group(invoke_without_command=True)
@click.option("-v", "--version", is_flag=True, help="Show version information")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="YAML config file (default: ~/.memory-bank/config.yaml)",
)
@click.pass_context
def cli(ctx, version, config_path):
    """Memory Bank - versioned project context for editors and AI assistants.

    Serves six markdown documents over a streaming protocol and manages
    them from the command line.

    Examples:
        memory-bank serve                         # Start the server
        memory-bank status                        # Show document versions
        memory-bank read activeContext.md         # Print one document
        memory-bank update progress.md notes.md   # Replace a document
        memory-bank export --format markdown      # Export everything
        memory-bank audit                         # Check the security policy
    """
    if version:
        console.print(f"Memory Bank Server v{__version__}")
        ctx.exit()

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())
        ctx.exit()

    ctx.ensure_object(dict)
    ctx.obj["settings"] = ServerSettings.load_from_file(config_path)


for command in (
    serve, health, status, resources, tools, read, update, export, validate, audit
):
    cli.add_command(command)


if __name__ == "__main__":
    cli()
