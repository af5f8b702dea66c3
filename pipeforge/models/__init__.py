"""Pipeforge data models: all Pydantic v2, all frozen (immutable)."""

from pipeforge.models.build import (
    BuildResource,
    ComputeProfile,
    ComputeSize,
    EnvironmentVariable,
    LoggingSink,
    SourceKind,
    SourceReference,
)
from pipeforge.models.common import ResourceKind
from pipeforge.models.connection import Connection
from pipeforge.models.definition import PipelineDefinition
from pipeforge.models.environment import TargetEnvironment
from pipeforge.models.function import FunctionResource
from pipeforge.models.graph import (
    BucketPolicy,
    LogGroup,
    PipelinePlan,
    PlannedAction,
    PlannedStage,
    ResolvedConnection,
    ResolvedPolicyStatement,
    ResolvedStorage,
    ResourceGraph,
    SynthesizedBuild,
    SynthesizedFunction,
)
from pipeforge.models.iam import (
    AccessNeed,
    Capability,
    Effect,
    IdentityRole,
    Permission,
    TrustPrincipal,
)
from pipeforge.models.storage import (
    BucketPolicyStatement,
    LifecycleRule,
    PolicyScope,
    RemovalPolicy,
    StorageResource,
    Visibility,
    WebsiteDocuments,
)
from pipeforge.models.topology import Action, ActionKind, PipelineResource, Stage
from pipeforge.models.triggers import (
    EventKind,
    FilterType,
    MatchMode,
    TriggerConfiguration,
    TriggerSpec,
    WebhookFilter,
)

__all__ = [
    # common
    "ResourceKind",
    # storage
    "Visibility",
    "RemovalPolicy",
    "PolicyScope",
    "BucketPolicyStatement",
    "LifecycleRule",
    "WebsiteDocuments",
    "StorageResource",
    # iam
    "Effect",
    "TrustPrincipal",
    "Capability",
    "Permission",
    "IdentityRole",
    "AccessNeed",
    # connections, builds, functions
    "Connection",
    "SourceKind",
    "SourceReference",
    "ComputeSize",
    "ComputeProfile",
    "EnvironmentVariable",
    "LoggingSink",
    "BuildResource",
    "FunctionResource",
    # triggers
    "EventKind",
    "MatchMode",
    "TriggerSpec",
    "FilterType",
    "WebhookFilter",
    "TriggerConfiguration",
    # topology
    "ActionKind",
    "Action",
    "Stage",
    "PipelineResource",
    # input / output
    "PipelineDefinition",
    "TargetEnvironment",
    "ResolvedStorage",
    "ResolvedPolicyStatement",
    "BucketPolicy",
    "ResolvedConnection",
    "LogGroup",
    "SynthesizedBuild",
    "SynthesizedFunction",
    "PlannedAction",
    "PlannedStage",
    "PipelinePlan",
    "ResourceGraph",
]
