"""The synthesized resource graph: the Assembler's output boundary.

A provider backend turns this into a vendor template; nothing here knows
about any vendor wire format.  The graph is frozen and its
``fingerprint`` is the content address of everything else in it, so two
assemblies of byte-identical input yield identical fingerprints.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict

from pipeforge.models.build import BuildResource
from pipeforge.models.environment import TargetEnvironment
from pipeforge.models.function import FunctionResource
from pipeforge.models.iam import Effect, IdentityRole
from pipeforge.models.storage import StorageResource
from pipeforge.models.topology import ActionKind
from pipeforge.models.triggers import TriggerConfiguration


class ResolvedPolicyStatement(BaseModel):
    model_config = ConfigDict(frozen=True)

    sid: str
    effect: Effect
    principal: str
    actions: tuple[str, ...]
    resources: tuple[str, ...]


class BucketPolicy(BaseModel):
    model_config = ConfigDict(frozen=True)

    bucket: str
    statements: list[ResolvedPolicyStatement] = []


class ResolvedStorage(BaseModel):
    model_config = ConfigDict(frozen=True)

    resource: StorageResource
    bucket_name: str
    arn: str


class ResolvedConnection(BaseModel):
    """A connection as exposed downstream: ARN only, never the raw id."""

    model_config = ConfigDict(frozen=True)

    logical_id: str
    provider: str
    connection_arn: str


class LogGroup(BaseModel):
    model_config = ConfigDict(frozen=True)

    logical_id: str
    name: str
    arn: str
    retention_days: int


class SynthesizedBuild(BaseModel):
    model_config = ConfigDict(frozen=True)

    resource: BuildResource
    project_name: str
    project_arn: str
    service_role: str
    log_group: str | None = None
    environment: dict[str, str] = {}
    trigger: TriggerConfiguration = TriggerConfiguration()


class SynthesizedFunction(BaseModel):
    model_config = ConfigDict(frozen=True)

    resource: FunctionResource
    function_name: str
    function_arn: str
    execution_role: str


class PlannedAction(BaseModel):
    model_config = ConfigDict(frozen=True)

    logical_id: str
    name: str
    kind: ActionKind
    resource: str | None = None
    resource_arn: str | None = None
    provider: str | None = None
    inputs: list[str] = []
    outputs: list[str] = []
    configuration: dict[str, str] = {}


class PlannedStage(BaseModel):
    model_config = ConfigDict(frozen=True)

    position: int
    name: str
    actions: list[PlannedAction] = []


class PipelinePlan(BaseModel):
    model_config = ConfigDict(frozen=True)

    logical_id: str
    role: str
    artifact_store: str
    artifact_store_arn: str
    stages: list[PlannedStage] = []

    @property
    def artifacts(self) -> dict[str, str]:
        """Artifact name -> logical id of the action producing it."""
        produced: dict[str, str] = {}
        for stage in self.stages:
            for action in stage.actions:
                for name in action.outputs:
                    produced[name] = action.logical_id
        return produced


class ResourceGraph(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    environment: TargetEnvironment
    pipeline: PipelinePlan | None = None
    storage: list[ResolvedStorage] = []
    bucket_policies: list[BucketPolicy] = []
    connections: list[ResolvedConnection] = []
    builds: list[SynthesizedBuild] = []
    functions: list[SynthesizedFunction] = []
    log_groups: list[LogGroup] = []
    roles: list[IdentityRole] = []
    fingerprint: str = ""

    def to_document(self) -> dict[str, Any]:
        """JSON-compatible dict of the whole graph."""
        return self.model_dump(mode="json")

    def role(self, logical_id: str) -> IdentityRole:
        for role in self.roles:
            if role.logical_id == logical_id:
                return role
        raise KeyError(logical_id)

    def build(self, logical_id: str) -> SynthesizedBuild:
        for build in self.builds:
            if build.resource.logical_id == logical_id:
                return build
        raise KeyError(logical_id)

    def bucket(self, logical_id: str) -> ResolvedStorage:
        for storage in self.storage:
            if storage.resource.logical_id == logical_id:
                return storage
        raise KeyError(logical_id)

    def bucket_policy(self, logical_id: str) -> BucketPolicy:
        for policy in self.bucket_policies:
            if policy.bucket == logical_id:
                return policy
        raise KeyError(logical_id)
