"""Definition loading: YAML or JSON documents -> ``PipelineDefinition``.

Files that cannot be read or parsed raise ``DefinitionLoadError``.  A
document that parses but does not validate raises ``AssemblyFailedError``
carrying one ``ValidationError`` per field problem, with its location.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError as PydanticValidationError

from pipeforge.core.errors import AssemblyFailedError, DefinitionLoadError
from pipeforge.core.resources import errors_from_pydantic
from pipeforge.models.definition import PipelineDefinition

logger = logging.getLogger(__name__)

YAML_SUFFIXES = frozenset({".yaml", ".yml"})
JSON_SUFFIXES = frozenset({".json"})


def validate_definition(data: Mapping[str, Any]) -> PipelineDefinition:
    """Validate a raw mapping; every field problem becomes one error."""
    try:
        return PipelineDefinition.model_validate(dict(data))
    except PydanticValidationError as exc:
        errors = errors_from_pydantic(exc)
        logger.error("Definition failed validation with %d error(s).", len(errors))
        raise AssemblyFailedError(errors) from exc


def parse_document(text: str, *, fmt: str = "yaml", source: str = "<string>") -> dict[str, Any]:
    """Parse YAML or JSON text into a mapping."""
    try:
        if fmt == "json":
            payload = json.loads(text)
        elif fmt == "yaml":
            payload = yaml.safe_load(text)
        else:
            raise DefinitionLoadError(f"unsupported definition format '{fmt}'", location=source)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise DefinitionLoadError(f"invalid {fmt.upper()}: {exc}", location=source) from exc

    if payload is None:
        raise DefinitionLoadError("definition document is empty", location=source)
    if not isinstance(payload, Mapping):
        raise DefinitionLoadError(
            f"definition must be a mapping, not {type(payload).__name__}", location=source
        )
    return dict(payload)


def parse_definition(text: str, *, fmt: str = "yaml", source: str = "<string>") -> PipelineDefinition:
    return validate_definition(parse_document(text, fmt=fmt, source=source))


def load_definition(path: str | Path) -> PipelineDefinition:
    """Load a ``.yaml``/``.yml`` or ``.json`` definition file."""
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix in YAML_SUFFIXES:
        fmt = "yaml"
    elif suffix in JSON_SUFFIXES:
        fmt = "json"
    else:
        raise DefinitionLoadError(
            f"unrecognized definition file type '{suffix or path.name}' "
            f"(expected .yaml, .yml or .json)",
            location=str(path),
        )

    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise DefinitionLoadError(f"cannot read definition: {exc}", location=str(path)) from exc

    definition = parse_definition(text, fmt=fmt, source=str(path))
    logger.info("Loaded definition '%s' from %s.", definition.name, path)
    return definition
