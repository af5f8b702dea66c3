"""Assembler: the central coordinator for Pipeforge.

The Assembler wires together the ArnResolver, PermissionSynthesizer,
TriggerConfigurator and TopologyBuilder into a single pass that turns a
``PipelineDefinition`` into a frozen ``ResourceGraph``.

Phases run in a fixed order:

1. resource construction (ARNs, generated roles and log groups)
2. permission synthesis (declared needs, then intrinsic needs)
3. trigger configuration
4. topology build

Failures are collected and raised together as one ``AssemblyFailedError``.
A construction failure stops the run after phase 1, since later phases
would only report its echoes; the pipeline's structure and artifact
hand-off are still checked first, as they depend on nothing constructed.
Phases 2 to 4 always run together.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from pipeforge.config import PipelineSettings
from pipeforge.core.arns import ArnResolver
from pipeforge.core.definition_loader import validate_definition
from pipeforge.core.environment_guard import enforce_environment_constraints
from pipeforge.core.errors import (
    AssemblyError,
    AssemblyFailedError,
    ConfigurationError,
    UnknownResourceError,
    ValidationError,
)
from pipeforge.core.hasher import compute_graph_fingerprint, derive_logical_id
from pipeforge.core.permission_synthesizer import PermissionSynthesizer, ResourceRef
from pipeforge.core.topology_builder import TopologyBuilder
from pipeforge.core.trigger_configurator import TriggerConfigurator
from pipeforge.models.build import BuildResource, SourceKind
from pipeforge.models.common import ResourceKind
from pipeforge.models.definition import PipelineDefinition
from pipeforge.models.environment import TargetEnvironment
from pipeforge.models.function import FunctionResource
from pipeforge.models.graph import (
    BucketPolicy,
    LogGroup,
    PipelinePlan,
    ResolvedConnection,
    ResolvedPolicyStatement,
    ResolvedStorage,
    ResourceGraph,
    SynthesizedBuild,
    SynthesizedFunction,
)
from pipeforge.models.iam import Capability, IdentityRole, TrustPrincipal
from pipeforge.models.storage import PolicyScope, StorageResource
from pipeforge.models.triggers import TriggerConfiguration

logger = logging.getLogger(__name__)

DEFAULT_LOG_GROUP_PREFIX = "/aws/codebuild"


class Assembler:
    """Turns declarative definitions into resource graphs.

    Holds only the injected target configuration; each ``assemble`` call
    builds its state from scratch, so one Assembler can be reused.

    Parameters
    ----------
    environment:
        Partition, region and account every ARN is templated from.
    connections:
        Connection logical id -> connection id, for connections the
        definition declares without an id.
    log_group_prefix:
        Prefix for derived build log group names.
    """

    def __init__(
        self,
        environment: TargetEnvironment,
        *,
        connections: Mapping[str, str] | None = None,
        log_group_prefix: str = DEFAULT_LOG_GROUP_PREFIX,
    ) -> None:
        self.environment = environment
        self.connections: dict[str, str] = dict(connections or {})
        self.log_group_prefix = log_group_prefix.rstrip("/") or DEFAULT_LOG_GROUP_PREFIX
        self.arns = ArnResolver(environment)
        self.triggers = TriggerConfigurator()

    @classmethod
    def from_settings(cls, settings: PipelineSettings) -> Assembler:
        """Build an Assembler from validated settings.

        Raises ``ConfigurationError`` if the settings fail the guard.
        """
        enforce_environment_constraints(settings)
        return cls(
            settings.target_environment(),
            connections=settings.connections,
            log_group_prefix=settings.log_group_prefix,
        )

    def assemble(self, definition: PipelineDefinition | Mapping[str, Any]) -> ResourceGraph:
        """Assemble ``definition`` into a frozen graph.

        Raises ``AssemblyFailedError`` listing every failure found.
        """
        if not isinstance(definition, PipelineDefinition):
            definition = validate_definition(definition)
        return _AssemblyRun(self, definition).execute()


class _AssemblyRun:
    """State for a single ``Assembler.assemble`` call."""

    def __init__(self, assembler: Assembler, definition: PipelineDefinition) -> None:
        self.assembler = assembler
        self.arns = assembler.arns
        self.definition = definition
        self.synthesizer = PermissionSynthesizer()
        self.errors: list[AssemblyError] = []

        pipeline = definition.pipeline
        self.scope = pipeline.logical_id if pipeline is not None else definition.name

        self.storage: list[ResolvedStorage] = []
        self.bucket_policies: list[BucketPolicy] = []
        self.connections: list[ResolvedConnection] = []
        self.log_groups: dict[str, LogGroup] = {}  # build id -> log group
        self.build_roles: dict[str, str] = {}
        self.function_roles: dict[str, str] = {}
        self.physical_names: dict[str, str] = {}
        self.pipeline_role: str | None = None

    def collect(self, exc: AssemblyError, location: str = "") -> None:
        if location and not exc.location:
            exc.location = location
        self.errors.append(exc)

    def fail(self, phase: str) -> None:
        logger.error(
            "Assembly of '%s' failed in %s with %d error(s).",
            self.definition.name, phase, len(self.errors),
        )
        raise AssemblyFailedError(self.errors)

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------

    def execute(self) -> ResourceGraph:
        self.construct_resources()
        if self.errors:
            self.check_declared_topology()
            self.fail("resource construction")
        logger.info(
            "Constructed %d storage, %d build, %d function resource(s) for '%s'.",
            len(self.definition.storage), len(self.definition.builds),
            len(self.definition.functions), self.definition.name,
        )

        self.synthesize_needs()
        triggers = self.configure_triggers()
        plan = self.build_topology()
        if self.errors:
            self.fail("synthesis")

        try:
            roles = self.synthesizer.finalize()
        except AssemblyError as exc:
            self.collect(exc)
            self.fail("role finalization")

        graph = ResourceGraph(
            name=self.definition.name,
            environment=self.assembler.environment,
            pipeline=plan,
            storage=self.storage,
            bucket_policies=self.bucket_policies,
            connections=self.connections,
            builds=[self.synthesized_build(b, triggers) for b in self.definition.builds],
            functions=[self.synthesized_function(f) for f in self.definition.functions],
            log_groups=list(self.log_groups.values()),
            roles=roles,
        )
        fingerprint = compute_graph_fingerprint(graph.to_document())
        logger.info("Assembled '%s' (%s).", self.definition.name, fingerprint)
        return graph.model_copy(update={"fingerprint": fingerprint})

    # ------------------------------------------------------------------
    # Phase 1: resource construction
    # ------------------------------------------------------------------

    def construct_resources(self) -> None:
        definition = self.definition
        seen: set[str] = set()
        for logical_id in definition.logical_ids:
            if logical_id in seen:
                self.collect(ValidationError(
                    f"logical id '{logical_id}' is declared more than once", location=logical_id
                ))
            seen.add(logical_id)

        for role in definition.roles:
            if not self.synthesizer.has_role(role.logical_id):
                self.synthesizer.register_role(role)

        bucket_names: dict[str, str] = {}
        for storage in definition.storage:
            name = storage.resolved_bucket_name
            if name in bucket_names:
                self.collect(ValidationError(
                    f"bucket name '{name}' is already used by '{bucket_names[name]}'",
                    location=storage.logical_id,
                ))
                continue
            bucket_names[name] = storage.logical_id
            self.add_storage(storage)

        for connection in definition.connections:
            connection_id = connection.connection_id or self.assembler.connections.get(
                connection.logical_id
            )
            if not connection_id:
                self.collect(ConfigurationError(
                    "no connection id: set connection_id in the definition or map "
                    "this logical id in the injected connections",
                    location=connection.logical_id,
                ))
                continue
            arn = self.arns.connection_arn(connection_id)
            self.register(ResourceRef(
                logical_id=connection.logical_id, kind=ResourceKind.CONNECTION, arn=arn
            ))
            self.connections.append(ResolvedConnection(
                logical_id=connection.logical_id,
                provider=connection.provider,
                connection_arn=arn,
            ))

        for build in definition.builds:
            self.add_build(build)

        for function in definition.functions:
            self.add_function(function)

        if definition.pipeline is not None:
            pipeline = definition.pipeline
            role_id = pipeline.role or derive_logical_id(pipeline.logical_id, "PipelineRole")
            self.ensure_role(
                role_id, TrustPrincipal.PIPELINE,
                f"Role assumed by pipeline {pipeline.logical_id}",
                location=f"{pipeline.logical_id}.role",
            )
            self.pipeline_role = role_id

        declared = set(definition.logical_ids)
        for build in definition.builds:
            for name, variable in build.environment_variables.items():
                target = variable.resource
                if target is None or target in self.physical_names:
                    continue
                location = f"{build.logical_id}.environment_variables.{name}"
                if target in declared:
                    self.collect(ValidationError(
                        f"'{target}' has no physical name to bind; only storage, build "
                        f"and function resources can be bound",
                        location=location,
                    ))
                else:
                    self.collect(UnknownResourceError(target, location=location))

    def register(self, ref: ResourceRef) -> None:
        try:
            self.synthesizer.register_resource(ref)
        except AssemblyError as exc:
            self.collect(exc)

    def ensure_role(
        self, role_id: str, trust: TrustPrincipal, description: str, *, location: str
    ) -> None:
        """Use a declared role, or create an empty one trusted by ``trust``."""
        if self.synthesizer.has_role(role_id):
            existing = self.synthesizer.get_role(role_id)
            if existing.trust_principal != trust:
                self.collect(ValidationError(
                    f"role '{role_id}' trusts {existing.trust_principal.value} but is "
                    f"used as a {trust.value} role",
                    location=location,
                ))
            return
        self.synthesizer.register_role(
            IdentityRole(logical_id=role_id, trust_principal=trust, description=description)
        )

    def add_storage(self, storage: StorageResource) -> None:
        name = storage.resolved_bucket_name
        arn = self.arns.bucket_arn(name)
        self.register(ResourceRef(logical_id=storage.logical_id, kind=ResourceKind.STORAGE, arn=arn))
        self.physical_names[storage.logical_id] = name
        self.storage.append(ResolvedStorage(resource=storage, bucket_name=name, arn=arn))

        if storage.policy_statements:
            statements = [
                ResolvedPolicyStatement(
                    sid=s.sid,
                    effect=s.effect,
                    principal=s.principal,
                    actions=s.actions,
                    resources=(arn if s.scope == PolicyScope.BUCKET else self.arns.objects_arn(name),),
                )
                for s in storage.policy_statements
            ]
            self.bucket_policies.append(BucketPolicy(bucket=storage.logical_id, statements=statements))
        if storage.is_public:
            logger.warning(
                "Bucket %s (%s) is %s; objects are readable anonymously.",
                storage.logical_id, name, storage.visibility.value,
            )

    def add_build(self, build: BuildResource) -> None:
        project_name = build.resolved_project_name
        self.register(ResourceRef(
            logical_id=build.logical_id,
            kind=ResourceKind.BUILD,
            arn=self.arns.project_arn(project_name),
        ))
        self.physical_names[build.logical_id] = project_name

        role_id = build.service_role or derive_logical_id(self.scope, build.logical_id, "ServiceRole")
        self.ensure_role(
            role_id, TrustPrincipal.BUILD, f"Service role for build {build.logical_id}",
            location=f"{build.logical_id}.service_role",
        )
        self.build_roles[build.logical_id] = role_id

        if build.logging.enabled:
            group_name = build.logging.group_name or f"{self.assembler.log_group_prefix}/{project_name}"
            group_id = derive_logical_id(self.scope, build.logical_id, "LogGroup")
            arn = self.arns.log_group_arn(group_name)
            self.register(ResourceRef(logical_id=group_id, kind=ResourceKind.LOG_GROUP, arn=arn))
            self.log_groups[build.logical_id] = LogGroup(
                logical_id=group_id,
                name=group_name,
                arn=arn,
                retention_days=build.logging.retention_days,
            )

    def add_function(self, function: FunctionResource) -> None:
        function_name = function.resolved_function_name
        self.register(ResourceRef(
            logical_id=function.logical_id,
            kind=ResourceKind.FUNCTION,
            arn=self.arns.function_arn(function_name),
        ))
        self.physical_names[function.logical_id] = function_name

        role_id = function.execution_role or derive_logical_id(
            self.scope, function.logical_id, "ExecutionRole"
        )
        self.ensure_role(
            role_id, TrustPrincipal.FUNCTION,
            f"Execution role for function {function.logical_id}",
            location=f"{function.logical_id}.execution_role",
        )
        self.function_roles[function.logical_id] = role_id

    # ------------------------------------------------------------------
    # Phase 2: permission synthesis
    # ------------------------------------------------------------------

    def synthesize_needs(self) -> None:
        for index, need in enumerate(self.definition.needs):
            try:
                self.synthesizer.request(need, location=f"needs[{index}]")
            except AssemblyError as exc:
                self.collect(exc)

        for build in self.definition.builds:
            role_id = self.build_roles[build.logical_id]
            log_group = self.log_groups.get(build.logical_id)
            if log_group is not None:
                self.intrinsic(role_id, log_group.logical_id, Capability.WRITE_LOGS,
                               f"{build.logical_id}.logging")
            source = build.source
            if source.kind == SourceKind.REPOSITORY and source.connection:
                self.intrinsic(role_id, source.connection, Capability.USE,
                               f"{build.logical_id}.source.connection")

        for function in self.definition.functions:
            if function.code_bucket is not None:
                self.intrinsic(self.function_roles[function.logical_id], function.code_bucket,
                               Capability.READ, f"{function.logical_id}.code_bucket")

        logger.info(
            "Processed %d declared need(s) for '%s'.", len(self.definition.needs), self.definition.name
        )

    def intrinsic(self, role_id: str, resource: str, capability: Capability, location: str) -> None:
        try:
            self.synthesizer.grant(role_id, resource, capability)
        except AssemblyError as exc:
            exc.location = location
            self.errors.append(exc)

    # ------------------------------------------------------------------
    # Phase 3: triggers
    # ------------------------------------------------------------------

    def configure_triggers(self) -> dict[str, TriggerConfiguration]:
        configured: dict[str, TriggerConfiguration] = {}
        for build in self.definition.builds:
            try:
                configured[build.logical_id] = self.assembler.triggers.configure(
                    build.trigger, build.source.branch, location=f"{build.logical_id}.trigger"
                )
            except AssemblyError as exc:
                self.collect(exc)
        return configured

    # ------------------------------------------------------------------
    # Phase 4: topology
    # ------------------------------------------------------------------

    def topology_builder(self) -> TopologyBuilder | None:
        pipeline = self.definition.pipeline
        if pipeline is None or self.pipeline_role is None:
            return None
        return TopologyBuilder(
            pipeline,
            self.synthesizer,
            role_id=self.pipeline_role,
            build_roles=self.build_roles,
            storage={s.logical_id: s for s in self.definition.storage},
        )

    def check_declared_topology(self) -> None:
        """Hand-off checks that need no constructed resource."""
        builder = self.topology_builder()
        if builder is not None:
            self.errors.extend(builder.check_declared())

    def build_topology(self) -> PipelinePlan | None:
        builder = self.topology_builder()
        if builder is None:
            return None
        try:
            return builder.build()
        except AssemblyFailedError as exc:
            self.errors.extend(exc.errors)
            return None

    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------

    def bound_environment(self, build: BuildResource) -> dict[str, str]:
        resolved: dict[str, str] = {}
        for name, variable in build.environment_variables.items():
            if variable.value is not None:
                resolved[name] = variable.value
            else:
                resolved[name] = self.physical_names[variable.resource or ""]
        return resolved

    def synthesized_build(
        self, build: BuildResource, triggers: dict[str, TriggerConfiguration]
    ) -> SynthesizedBuild:
        log_group = self.log_groups.get(build.logical_id)
        return SynthesizedBuild(
            resource=build,
            project_name=build.resolved_project_name,
            project_arn=self.arns.project_arn(build.resolved_project_name),
            service_role=self.build_roles[build.logical_id],
            log_group=log_group.logical_id if log_group else None,
            environment=self.bound_environment(build),
            trigger=triggers[build.logical_id],
        )

    def synthesized_function(self, function: FunctionResource) -> SynthesizedFunction:
        return SynthesizedFunction(
            resource=function,
            function_name=function.resolved_function_name,
            function_arn=self.arns.function_arn(function.resolved_function_name),
            execution_role=self.function_roles[function.logical_id],
        )
