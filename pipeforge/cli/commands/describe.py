"""``pipeforge describe DEFINITION``: show stages, triggers and grants."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from pipeforge.cli.common import assemble_or_exit
from pipeforge.cli.renderer import GraphRenderer

console = Console()


def describe_cmd(
    definition: Path = typer.Argument(
        ...,
        help="Definition file (.yaml, .yml or .json).",
    ),
    region: str = typer.Option(None, "--region", help="Override PIPEFORGE_REGION."),
    account: str = typer.Option(None, "--account", help="Override PIPEFORGE_ACCOUNT."),
    partition: str = typer.Option(None, "--partition", help="Override PIPEFORGE_PARTITION."),
) -> None:
    """Assemble a definition and render it as tables."""
    graph = assemble_or_exit(
        definition, console, region=region, account=account, partition=partition
    )
    console.print()
    GraphRenderer(console).print_graph(graph)
