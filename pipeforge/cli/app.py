"""Main Typer application: imports and registers all CLI commands.

Entry point: ``pipeforge`` (configured via pyproject.toml scripts).

Commands: synth, validate, describe, presets, init.
"""

from __future__ import annotations

import logging

import typer
from rich.console import Console
from rich.logging import RichHandler

from pipeforge.cli.commands.describe import describe_cmd
from pipeforge.cli.commands.presets import init_cmd, presets_cmd
from pipeforge.cli.commands.synth import synth_cmd
from pipeforge.cli.commands.validate import validate_cmd

app = typer.Typer(
    name="pipeforge",
    help="Pipeforge: assemble CI/CD pipelines with least-privilege wiring.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)

# Register subcommands
app.command(name="synth", help="Assemble a definition and emit the resource graph.")(synth_cmd)
app.command(name="validate", help="Report every problem in a definition.")(validate_cmd)
app.command(name="describe", help="Show stages, triggers and role grants.")(describe_cmd)
app.command(name="presets", help="List the available presets.")(presets_cmd)
app.command(name="init", help="Write a preset as a YAML definition.")(init_cmd)


@app.callback()
def main_callback(
    log_level: str = typer.Option(
        "WARNING",
        "--log-level",
        envvar="PIPEFORGE_LOG_LEVEL",
        help="Logging level for diagnostics on stderr.",
    ),
) -> None:
    """Pipeforge command-line interface."""
    logging.basicConfig(
        level=log_level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
