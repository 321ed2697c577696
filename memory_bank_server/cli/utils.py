"""Utility functions for the memory bank CLI."""

import asyncio
from typing import Any, Awaitable

import click
from rich.console import Console
from rich.table import Table

from memory_bank_server.models.config import ServerSettings
from memory_bank_server.protocol.client import MemoryBankClient, MemoryBankClientError

console = Console()


def get_settings(ctx: click.Context) -> ServerSettings:
    """Settings loaded by the root command."""
    return ctx.find_root().obj["settings"]


def get_client(ctx: click.Context) -> MemoryBankClient:
    """Client pointed at the configured server."""
    settings = get_settings(ctx)
    return MemoryBankClient(base_url=f"http://{settings.host}:{settings.port}")


def run_remote(awaitable: Awaitable[Any]) -> Any:
    """Run a client coroutine, turning client errors into a CLI exit."""
    try:
        return asyncio.run(awaitable)
    except MemoryBankClientError as e:
        code = f" [{e.code}]" if e.code else ""
        echo_error(f"{e.message}{code}")
        raise SystemExit(1)


def print_table(
    data: list[dict], title: str = "", headers: list[str] | None = None
) -> None:
    """Print data as a rich table."""
    if not data:
        console.print(f"[yellow]No {title.lower()} found.[/yellow]")
        return

    table = Table(title=title)
    columns = headers or list(data[0].keys())
    for column in columns:
        table.add_column(column)
    for row in data:
        table.add_row(*[str(row.get(column, "")) for column in columns])

    console.print(table)


def format_size(size_bytes: int) -> str:
    """Format byte size as human readable string."""
    if size_bytes == 0:
        return "0 B"

    size = float(size_bytes)
    for unit in ["B", "KB", "MB", "GB"]:
        if size < 1024.0:
            return f"{size:.1f} {unit}"
        size /= 1024.0

    return f"{size:.1f} TB"


def echo_success(message: str) -> None:
    """Print success message."""
    console.print(f"[green]✓ {message}[/green]")


def echo_error(message: str) -> None:
    """Print error message."""
    console.print(f"[red]✗ {message}[/red]")


def echo_warning(message: str) -> None:
    """Print warning message."""
    console.print(f"[yellow]⚠ {message}[/yellow]")


def echo_info(message: str) -> None:
    """Print info message."""
    console.print(f"[blue]ℹ {message}[/blue]")
