"""Pipeforge: declarative CI/CD pipeline assembly.

Turns a declarative definition (storage, builds, functions, connections,
roles, access needs and a stage/action topology) into a frozen resource
graph with least-privilege role statements and webhook filter groups.
"""

__version__ = "0.1.0"
__description__ = "Declarative CI/CD pipeline assembler with permission synthesis"

from pipeforge.core.assembler import Assembler
from pipeforge.core.definition_loader import load_definition
from pipeforge.config import PipelineSettings
from pipeforge.cli.app import app as cli

__all__ = ["Assembler", "PipelineSettings", "load_definition", "cli", "__version__"]
