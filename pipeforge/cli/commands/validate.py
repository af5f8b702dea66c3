"""``pipeforge validate DEFINITION``: report every problem in a definition."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from pipeforge.cli.common import assemble_or_exit

console = Console()


def validate_cmd(
    definition: Path = typer.Argument(
        ...,
        help="Definition file (.yaml, .yml or .json).",
    ),
    region: str = typer.Option(None, "--region", help="Override PIPEFORGE_REGION."),
    account: str = typer.Option(None, "--account", help="Override PIPEFORGE_ACCOUNT."),
    partition: str = typer.Option(None, "--partition", help="Override PIPEFORGE_PARTITION."),
) -> None:
    """Assemble a definition and list all failures, exiting 1 if there are any."""
    graph = assemble_or_exit(
        definition, console, region=region, account=account, partition=partition
    )
    console.print(
        f"[bold green]Valid:[/bold green] {graph.name} "
        f"[dim]{graph.fingerprint}[/dim]"
    )
