"""Document commands for the memory bank CLI."""

import json
from pathlib import Path

import click
from rich.console import Console
from rich.markdown import Markdown

from memory_bank_server.cli.utils import (
    echo_error,
    echo_info,
    echo_success,
    echo_warning,
    format_size,
    get_client,
    print_table,
    run_remote,
)
from memory_bank_server.models.domain import DocumentKey

console = Console()

DOCUMENT_KEYS = click.Choice([key.value for key in DocumentKey.ordered()])


@click.command()
@click.pass_context
def health(ctx):
    """Check that the server is up."""
    client = get_client(ctx)
    result = run_remote(client.health())
    echo_success(
        f"Server {result['status']} (v{result['version']}, {result['platform']})"
    )


@click.command()
@click.option("--json", "as_json", is_flag=True, help="Print raw JSON")
@click.pass_context
def status(ctx, as_json):
    """Show per-document versions, sizes and checksums."""
    client = get_client(ctx)
    result = run_remote(client.status())

    if as_json:
        console.print_json(json.dumps(result))
        return

    if not result["initialized"]:
        echo_warning("Memory bank is not initialized")
        return

    print_table(
        [
            {
                "Document": doc["key"],
                "Version": doc["version"],
                "Size": format_size(doc["size"]),
                "Checksum": doc["checksum"][:12],
                "Modified": doc["modifiedAt"],
            }
            for doc in result["documents"]
        ],
        title="Documents",
    )
    echo_info(
        f"{result['documentCount']} documents, {format_size(result['totalSize'])} total, "
        f"{result['openConnections']} open connections"
    )

    requests = result.get("performance", {}).get("requests")
    if requests and requests["total"]:
        echo_info(
            f"{requests['total']} requests, {requests['errorRate']:.1%} failed "
            f"({requests['timedOut']} timed out), "
            f"{requests['averageResponseMs']:.1f}ms average response"
        )


@click.command()
@click.pass_context
def resources(ctx):
    """List the documents the server exposes as resources."""
    client = get_client(ctx)
    print_table(
        [
            {"URI": item["uri"], "Description": item.get("description", "")}
            for item in run_remote(client.list_resources())
        ],
        title="Resources",
    )


@click.command()
@click.pass_context
def tools(ctx):
    """List the tools callable through tools/call."""
    client = get_client(ctx)
    print_table(
        [
            {"Tool": tool["name"], "Description": tool.get("description", "")}
            for tool in run_remote(client.list_tools())
        ],
        title="Tools",
    )


@click.command()
@click.argument("key", type=DOCUMENT_KEYS)
@click.option("--raw", is_flag=True, help="Print without markdown rendering")
@click.pass_context
def read(ctx, key, raw):
    """Print one document.

    Args:
        key: Document key, e.g. activeContext.md
    """
    client = get_client(ctx)
    content = run_remote(client.read_document(key))
    if raw:
        click.echo(content)
    else:
        console.print(Markdown(content))


@click.command()
@click.argument("key", type=DOCUMENT_KEYS)
@click.argument("file", type=click.File("r", encoding="utf-8"))
@click.pass_context
def update(ctx, key, file):
    """Replace a document with the contents of FILE ('-' for stdin).

    Examples:
        memory-bank update progress.md progress-draft.md
        echo "# Active Context" | memory-bank update activeContext.md -
    """
    client = get_client(ctx)
    result = run_remote(client.update_document(key, file.read()))
    echo_success(f"Updated {result['key']} to version {result['version']}")


@click.command()
@click.option(
    "--format",
    "output_format",
    default="json",
    type=click.Choice(["json", "markdown"]),
    help="Snapshot format",
)
@click.option("--metadata/--no-metadata", default=True, help="Include document metadata")
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write to a file instead of stdout",
)
@click.pass_context
def export(ctx, output_format, metadata, output):
    """Export all documents as one snapshot."""
    client = get_client(ctx)
    snapshot = run_remote(client.export_snapshot(output_format, include_metadata=metadata))

    if output is None:
        click.echo(snapshot)
        return

    output.write_text(snapshot, encoding="utf-8")
    echo_success(f"Exported memory bank to {output}")


@click.command()
@click.pass_context
def validate(ctx):
    """Check every document against its file on disk."""
    client = get_client(ctx)
    report = run_remote(client.validate_integrity())

    for error in report["errors"]:
        echo_error(error)
    for warning in report["warnings"]:
        echo_warning(warning)

    if report["isValid"]:
        echo_success("Memory bank integrity check passed")
    else:
        echo_error("Memory bank integrity check failed")
        raise SystemExit(1)
