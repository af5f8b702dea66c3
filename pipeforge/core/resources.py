"""Validated constructors for the resource model.

Plain immutable value construction: each ``new_*`` function validates
everything at once and either returns a frozen model or raises one
``ValidationError`` naming every problem it found.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from pipeforge.core.errors import ValidationError
from pipeforge.models.build import BuildResource
from pipeforge.models.connection import Connection
from pipeforge.models.definition import PipelineDefinition
from pipeforge.models.function import FunctionResource
from pipeforge.models.iam import IdentityRole
from pipeforge.models.storage import StorageResource
from pipeforge.models.topology import PipelineResource

ModelT = TypeVar("ModelT", bound=BaseModel)

_VALUE_ERROR_PREFIX = "Value error, "


def _format_location(prefix: str, loc: tuple[Any, ...]) -> str:
    parts = [prefix] if prefix else []
    for item in loc:
        if isinstance(item, int) and parts:
            parts[-1] = f"{parts[-1]}[{item}]"
        else:
            parts.append(str(item))
    return ".".join(parts)


def errors_from_pydantic(
    exc: PydanticValidationError, *, prefix: str = ""
) -> list[ValidationError]:
    """One ``ValidationError`` per problem pydantic reported, with its location."""
    result: list[ValidationError] = []
    for err in exc.errors():
        message = str(err.get("msg", "invalid value"))
        if message.startswith(_VALUE_ERROR_PREFIX):
            message = message[len(_VALUE_ERROR_PREFIX):]
        result.append(
            ValidationError(message, location=_format_location(prefix, tuple(err.get("loc", ()))))
        )
    return result


def construct(
    model_type: type[ModelT], data: Mapping[str, Any] | None = None, **fields: Any
) -> ModelT:
    """Validate ``data``/``fields`` into ``model_type`` or raise ``ValidationError``."""
    payload = {**(data or {}), **fields}
    try:
        return model_type.model_validate(payload)
    except PydanticValidationError as exc:
        problems = errors_from_pydantic(exc)
        raise ValidationError(
            "; ".join(str(p) for p in problems),
            location=str(payload.get("logical_id") or model_type.__name__),
        ) from exc


def new_storage_resource(**fields: Any) -> StorageResource:
    """Fails if a website bucket has no index document, or a private bucket
    policy grants an anonymous principal."""
    return construct(StorageResource, **fields)


def new_connection(**fields: Any) -> Connection:
    return construct(Connection, **fields)


def new_identity_role(**fields: Any) -> IdentityRole:
    return construct(IdentityRole, **fields)


def new_build_resource(**fields: Any) -> BuildResource:
    return construct(BuildResource, **fields)


def new_function_resource(**fields: Any) -> FunctionResource:
    return construct(FunctionResource, **fields)


def new_pipeline(**fields: Any) -> PipelineResource:
    return construct(PipelineResource, **fields)


def new_definition(**fields: Any) -> PipelineDefinition:
    return construct(PipelineDefinition, **fields)
