"""``pipeforge presets`` and ``pipeforge init PRESET``: ready-made definitions.

``init`` writes a preset as a YAML definition that can be edited and then
fed to ``synth``.
"""

from __future__ import annotations

from pathlib import Path

import typer
import yaml
from rich.console import Console
from rich.table import Table

from pipeforge.core.errors import AssemblyError
from pipeforge.presets import PRESETS, get_preset

console = Console()


def presets_cmd() -> None:
    """List the available presets."""
    table = Table(title="Presets", show_header=True, header_style="bold cyan")
    table.add_column("Name", style="cyan")
    table.add_column("Description")
    for name, builder in PRESETS.items():
        summary = (builder.__doc__ or "").strip().splitlines()
        table.add_row(name, summary[0] if summary else "")
    console.print(table)


def init_cmd(
    preset: str = typer.Argument(..., help="Preset name (see 'pipeforge presets')."),
    name: str = typer.Option(..., "--name", "-n", help="Definition name, e.g. im-frontend."),
    repository: str = typer.Option(..., "--repository", "-r", help="Repository as owner/repo."),
    branch: str = typer.Option(None, "--branch", "-b", help="Source branch."),
    output: Path = typer.Option(
        Path("pipeline.yaml"), "--output", "-o", help="Where to write the definition."
    ),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing file."),
) -> None:
    """Write a preset definition as YAML."""
    try:
        builder = get_preset(preset)
    except KeyError as exc:
        console.print(f"[bold red]{exc.args[0]}[/bold red]")
        raise typer.Exit(code=1) from exc

    if output.exists() and not force:
        console.print(f"[bold red]Refusing to overwrite[/bold red] {output} (use --force)")
        raise typer.Exit(code=1)

    kwargs = {"repository": repository}
    if branch:
        kwargs["branch"] = branch
    try:
        definition = builder(name, **kwargs)
    except AssemblyError as exc:
        console.print(f"[bold red]Invalid preset arguments:[/bold red] {exc}")
        raise typer.Exit(code=1) from exc

    document = definition.model_dump(mode="json", exclude_defaults=True)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(yaml.safe_dump(document, sort_keys=False), encoding="utf-8")
    console.print(f"[green]Wrote[/green] {output} [dim](preset {preset})[/dim]")
