"""Build project descriptors."""

from __future__ import annotations

import re
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator

from pipeforge.models.common import LOGICAL_ID_PATTERN
from pipeforge.models.triggers import TriggerSpec

ENV_VAR_NAME_PATTERN = r"^[A-Za-z_][A-Za-z0-9_]*$"
DEFAULT_BUILD_IMAGE = "aws/codebuild/amazonlinux2-x86_64-standard:5.0"
DEFAULT_BUILD_SPEC = "buildspec.yaml"


class SourceKind(str, Enum):
    PIPELINE = "pipeline"  # input artifacts handed over by a pipeline stage
    REPOSITORY = "repository"  # fetched straight from source control


class SourceReference(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: SourceKind = SourceKind.PIPELINE
    repository: str | None = None  # "owner/repo"
    branch: str | None = None
    connection: str | None = None  # Connection logical id
    clone_depth: int | None = Field(default=None, ge=0)

    @model_validator(mode="after")
    def _repository_fields(self) -> SourceReference:
        if self.kind == SourceKind.REPOSITORY and not self.repository:
            raise ValueError("repository sources require 'repository'")
        return self


class ComputeSize(str, Enum):
    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"
    X2LARGE = "2xlarge"


class ComputeProfile(BaseModel):
    model_config = ConfigDict(frozen=True)

    size: ComputeSize = ComputeSize.SMALL
    image: str = DEFAULT_BUILD_IMAGE
    privileged: bool = False
    environment_type: str = "linux-container"


class EnvironmentVariable(BaseModel):
    """A plaintext build variable: a literal, or the name of a resource."""

    model_config = ConfigDict(frozen=True)

    value: str | None = None
    resource: str | None = None  # logical id whose physical name is bound

    @model_validator(mode="after")
    def _exactly_one_source(self) -> EnvironmentVariable:
        if (self.value is None) == (self.resource is None):
            raise ValueError("environment variable needs exactly one of 'value' or 'resource'")
        return self


class LoggingSink(BaseModel):
    model_config = ConfigDict(frozen=True)

    enabled: bool = True
    group_name: str | None = None
    retention_days: int = Field(default=7, ge=1)


class BuildResource(BaseModel):
    """A build project and everything needed to wire it."""

    model_config = ConfigDict(frozen=True)

    logical_id: str = Field(pattern=LOGICAL_ID_PATTERN)
    project_name: str | None = Field(default=None, pattern=r"^[A-Za-z0-9][A-Za-z0-9_-]{1,254}$")
    description: str = ""
    source: SourceReference = SourceReference()
    build_spec: str = DEFAULT_BUILD_SPEC
    compute: ComputeProfile = ComputeProfile()
    timeout_minutes: int = Field(default=60, ge=5, le=2160)
    queued_timeout_minutes: int = Field(default=480, ge=5, le=480)
    auto_retry_limit: int = Field(default=0, ge=0, le=10)
    environment_variables: dict[str, EnvironmentVariable] = {}
    logging: LoggingSink = LoggingSink()
    service_role: str | None = Field(default=None, pattern=LOGICAL_ID_PATTERN)
    trigger: TriggerSpec | None = None
    badge: bool = False

    @model_validator(mode="after")
    def _check_wiring(self) -> BuildResource:
        problems: list[str] = []
        bad_names = sorted(
            n for n in self.environment_variables if not re.match(ENV_VAR_NAME_PATTERN, n)
        )
        if bad_names:
            problems.append(f"invalid environment variable names: {bad_names}")
        if self.trigger is not None and self.source.kind != SourceKind.REPOSITORY:
            problems.append("triggers are only valid on repository-sourced builds")
        if problems:
            raise ValueError("; ".join(problems))
        return self

    @property
    def resolved_project_name(self) -> str:
        return self.project_name or self.logical_id
