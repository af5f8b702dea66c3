"""Pipeline topology: ordered stages of parallel actions.

Cross-action rules (artifact hand-off, uniqueness, stage placement) are
checked by the ``TopologyBuilder`` so that every violation in a pipeline is
reported together.  Models only check what a single action or stage can
know about itself.
"""

from __future__ import annotations

import re
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator

from pipeforge.models.common import LOGICAL_ID_PATTERN

ACTION_NAME_PATTERN = r"^[A-Za-z0-9.@_-]{1,100}$"
ARTIFACT_NAME_PATTERN = r"^[A-Za-z0-9_-]{1,100}$"


class ActionKind(str, Enum):
    SOURCE = "source"
    BUILD = "build"
    DEPLOY = "deploy"


class Action(BaseModel):
    """One action in a stage.

    Either ``resource`` (the logical id of a declared Connection,
    BuildResource, StorageResource or FunctionResource) or ``provider``
    (a custom action the core does not grant anything for) is set.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(pattern=ACTION_NAME_PATTERN)
    kind: ActionKind
    resource: str | None = None
    provider: str | None = None
    inputs: list[str] = []
    outputs: list[str] = []
    configuration: dict[str, str] = {}

    @model_validator(mode="after")
    def _check_shape(self) -> Action:
        problems: list[str] = []
        if (self.resource is None) == (self.provider is None):
            problems.append("exactly one of 'resource' or 'provider' is required")
        if self.kind != ActionKind.SOURCE and len(self.outputs) > 1:
            problems.append(f"{self.kind.value} actions produce at most one output artifact")
        if self.kind == ActionKind.SOURCE and self.inputs:
            problems.append("source actions take no input artifacts")
        for label, names in (("inputs", self.inputs), ("outputs", self.outputs)):
            if len(set(names)) != len(names):
                problems.append(f"duplicate artifact names in {label}")
            bad = [n for n in names if not re.match(ARTIFACT_NAME_PATTERN, n)]
            if bad:
                problems.append(f"invalid artifact names in {label}: {bad}")
        if problems:
            raise ValueError(f"action '{self.name}': " + "; ".join(problems))
        return self


class Stage(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = Field(pattern=ACTION_NAME_PATTERN)
    actions: list[Action] = []


class PipelineResource(BaseModel):
    """The release pipeline.

    ``artifact_store`` names a private StorageResource used only as a blob
    store for hand-off artifacts.  ``role`` names the pipeline's identity;
    a deterministic id is derived when omitted.
    """

    model_config = ConfigDict(frozen=True)

    logical_id: str = Field(pattern=LOGICAL_ID_PATTERN)
    stages: list[Stage] = []
    artifact_store: str
    role: str | None = Field(default=None, pattern=LOGICAL_ID_PATTERN)
