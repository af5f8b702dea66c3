"""``pipeforge synth DEFINITION``: assemble a definition and emit the graph.

The graph document is written as JSON (sorted keys) or YAML, to stdout or
to ``--output``.
"""

from __future__ import annotations

import json
from pathlib import Path

import typer
import yaml
from rich.console import Console

from pipeforge.cli.common import assemble_or_exit

console = Console()


def synth_cmd(
    definition: Path = typer.Argument(
        ...,
        help="Definition file (.yaml, .yml or .json).",
    ),
    output: Path = typer.Option(
        None,
        "--output",
        "-o",
        help="Write the graph here instead of stdout.",
    ),
    fmt: str = typer.Option(
        "json",
        "--format",
        "-f",
        help="Output format: json or yaml.",
    ),
    region: str = typer.Option(None, "--region", help="Override PIPEFORGE_REGION."),
    account: str = typer.Option(None, "--account", help="Override PIPEFORGE_ACCOUNT."),
    partition: str = typer.Option(None, "--partition", help="Override PIPEFORGE_PARTITION."),
) -> None:
    """Assemble a definition and emit the resource graph document."""
    if fmt not in ("json", "yaml"):
        console.print(f"[bold red]Unknown format:[/bold red] {fmt} (use json or yaml)")
        raise typer.Exit(code=2)

    graph = assemble_or_exit(
        definition, console, region=region, account=account, partition=partition
    )
    document = graph.to_document()
    if fmt == "json":
        text = json.dumps(document, indent=2, sort_keys=True) + "\n"
    else:
        text = yaml.safe_dump(document, sort_keys=True)

    if output is None:
        typer.echo(text, nl=False)
        return

    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(text, encoding="utf-8")
    console.print(
        f"[green]Wrote[/green] {output} "
        f"[dim]({len(graph.roles)} role(s), {graph.fingerprint})[/dim]"
    )
