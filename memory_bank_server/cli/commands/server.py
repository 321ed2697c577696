"""Server commands for the memory bank CLI."""

from pathlib import Path

import click

from memory_bank_server.cli.utils import echo_info, get_settings
from memory_bank_server.core.logging import setup_logging


@click.command()
@click.option("--host", default=None, help="Interface to bind (default from config)")
@click.option("--port", type=int, default=None, help="Port to listen on (default 7331)")
@click.option(
    "--workspace",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Workspace whose memory-bank/ directory is served",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=None,
)
@click.pass_context
def serve(ctx, host, port, workspace, log_level):
    """Start the memory bank server.

    Documents live in <workspace>/memory-bank and are created from
    templates on first start.

    Examples:
        memory-bank serve                          # Serve the current directory
        memory-bank serve --workspace ~/my-project # Serve another workspace
        memory-bank serve --port 7400
    """
    import uvicorn

    from memory_bank_server.api.main import create_app
    from memory_bank_server.core.context import ServerContext

    overrides = {
        name: value
        for name, value in {
            "host": host,
            "port": port,
            "workspace_root": workspace,
            "log_level": log_level.upper() if log_level else None,
        }.items()
        if value is not None
    }
    settings = get_settings(ctx).model_copy(update=overrides)

    setup_logging(settings.log_level, settings.log_file)
    echo_info(f"Serving {settings.memory_bank_dir}")
    echo_info(f"Listening on http://{settings.host}:{settings.port}")

    app = create_app(ServerContext.create(settings))
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())
