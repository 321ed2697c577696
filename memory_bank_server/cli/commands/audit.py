"""Local security self-audit command."""

from pathlib import Path

import click
from rich.console import Console
from rich.markdown import Markdown

from memory_bank_server.cli.utils import echo_error, echo_success, get_settings
from memory_bank_server.core.security import SecurityGate, run_self_audit

console = Console()


@click.command()
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Also write the markdown report to a file",
)
@click.pass_context
def audit(ctx, output):
    """Check the configured security policy against known-bad inputs.

    Runs locally against the policy from the config file; no server is
    needed. Exits with status 1 when the policy does not pass.
    """
    settings = get_settings(ctx)
    gate = SecurityGate(settings.policy, settings.memory_bank_dir)
    result = run_self_audit(gate)
    report = result.to_markdown()

    console.print(Markdown(report))
    if output is not None:
        output.write_text(report, encoding="utf-8")

    if result.passed:
        echo_success(f"Security audit passed (score {result.score}/100)")
    else:
        echo_error(f"Security audit failed (score {result.score}/100)")
        raise SystemExit(1)
