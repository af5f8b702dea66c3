"""Pipeforge CLI: Typer-based command-line interface.

Provides the ``pipeforge`` command with subcommands for assembling,
validating and describing definitions, and for starting from a preset.

All output uses Rich for formatted terminal display.
"""
