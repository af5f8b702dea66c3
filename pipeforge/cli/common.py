"""Helpers shared by the assembling commands."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from pipeforge.cli.renderer import GraphRenderer
from pipeforge.config import PipelineSettings
from pipeforge.core.assembler import Assembler
from pipeforge.core.definition_loader import load_definition
from pipeforge.core.errors import AssemblyError
from pipeforge.models.graph import ResourceGraph


def build_assembler(
    region: str | None = None,
    account: str | None = None,
    partition: str | None = None,
) -> Assembler:
    """Assembler from PIPEFORGE_* settings, with command-line overrides."""
    overrides = {
        key: value
        for key, value in (("region", region), ("account", account), ("partition", partition))
        if value is not None
    }
    return Assembler.from_settings(PipelineSettings(**overrides))


def assemble_or_exit(
    definition: Path,
    console: Console,
    *,
    region: str | None = None,
    account: str | None = None,
    partition: str | None = None,
) -> ResourceGraph:
    """Load and assemble ``definition``; render the failure and exit 1 otherwise."""
    try:
        assembler = build_assembler(region, account, partition)
        return assembler.assemble(load_definition(definition))
    except AssemblyError as exc:
        GraphRenderer(console).print_errors(exc)
        raise typer.Exit(code=1) from exc
