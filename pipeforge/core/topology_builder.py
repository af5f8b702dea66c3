"""Pipeline topology builder: validates and freezes the stage/action graph.

The builder enforces:
- Stage order is declaration order; actions within a stage are unordered.
- Every input artifact is produced by an action in a strictly earlier stage.
- Output artifact names are unique across the whole pipeline.
- Sources live in the first stage, and only there.
- Each action's resource exists and has a kind the action can drive.
- The artifact store is a private storage resource.

Every violation is collected before anything is granted or planned, so one
run reports the whole set.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

from pipeforge.core.errors import (
    AssemblyError,
    AssemblyFailedError,
    DanglingArtifactError,
    DuplicateArtifactError,
    UnknownResourceError,
    ValidationError,
)
from pipeforge.core.hasher import derive_logical_id
from pipeforge.core.permission_synthesizer import PermissionSynthesizer, ResourceRef
from pipeforge.models.common import ResourceKind
from pipeforge.models.graph import PipelinePlan, PlannedAction, PlannedStage
from pipeforge.models.iam import Capability
from pipeforge.models.storage import StorageResource
from pipeforge.models.topology import Action, ActionKind, PipelineResource

logger = logging.getLogger(__name__)

MIN_STAGES = 2

# Resource kinds each action kind may reference.
ACTION_RESOURCE_KINDS: dict[ActionKind, frozenset[ResourceKind]] = {
    ActionKind.SOURCE: frozenset({ResourceKind.CONNECTION}),
    ActionKind.BUILD: frozenset({ResourceKind.BUILD}),
    ActionKind.DEPLOY: frozenset({ResourceKind.STORAGE, ResourceKind.FUNCTION}),
}

# What the pipeline role needs on an action's resource.
ACTION_CAPABILITIES: dict[tuple[ActionKind, ResourceKind], Capability] = {
    (ActionKind.SOURCE, ResourceKind.CONNECTION): Capability.USE,
    (ActionKind.BUILD, ResourceKind.BUILD): Capability.INVOKE,
    (ActionKind.DEPLOY, ResourceKind.STORAGE): Capability.READ_WRITE,
    (ActionKind.DEPLOY, ResourceKind.FUNCTION): Capability.DEPLOY,
}


def action_location(stage: str, action: str) -> str:
    return f"{stage}/{action}"


class TopologyBuilder:
    """Validates a pipeline, grants its role's permissions and plans it.

    Parameters
    ----------
    pipeline:
        The declared pipeline.
    synthesizer:
        Synthesizer holding every registered resource and role.  Grants for
        the pipeline role and the build service roles go through it.
    role_id:
        Logical id of the pipeline's role (declared or derived).
    build_roles:
        Build logical id -> service role logical id.
    storage:
        Storage logical id -> descriptor, used for the artifact store check.
    """

    def __init__(
        self,
        pipeline: PipelineResource,
        synthesizer: PermissionSynthesizer,
        *,
        role_id: str,
        build_roles: Mapping[str, str] | None = None,
        storage: Mapping[str, StorageResource] | None = None,
    ) -> None:
        self._pipeline = pipeline
        self._synthesizer = synthesizer
        self._role_id = role_id
        self._build_roles = dict(build_roles or {})
        self._storage = dict(storage or {})

    @property
    def pipeline_id(self) -> str:
        return self._pipeline.logical_id

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate(self) -> list[AssemblyError]:
        """Return every topology defect found; empty means valid."""
        errors = self.check_declared()
        errors.extend(self._check_resources())
        errors.extend(self._check_artifact_store())
        return errors

    def check_declared(self) -> list[AssemblyError]:
        """Structure and artifact hand-off defects.

        These depend only on the declared stages, so they are valid even
        when no resource has been registered.
        """
        return self._check_structure() + self._check_artifacts()

    def _check_structure(self) -> list[AssemblyError]:
        errors: list[AssemblyError] = []
        stages = self._pipeline.stages
        if len(stages) < MIN_STAGES:
            errors.append(ValidationError(
                f"a pipeline needs at least {MIN_STAGES} stages, got {len(stages)}",
                location=self.pipeline_id,
            ))

        seen_stages: set[str] = set()
        for position, stage in enumerate(stages):
            if stage.name in seen_stages:
                errors.append(ValidationError(
                    f"duplicate stage name '{stage.name}'", location=self.pipeline_id
                ))
            seen_stages.add(stage.name)

            if not stage.actions:
                errors.append(ValidationError("stage has no actions", location=stage.name))

            seen_actions: set[str] = set()
            for action in stage.actions:
                location = action_location(stage.name, action.name)
                if action.name in seen_actions:
                    errors.append(ValidationError(
                        f"duplicate action name '{action.name}' in stage",
                        location=location,
                    ))
                seen_actions.add(action.name)

                if position == 0 and action.kind != ActionKind.SOURCE:
                    errors.append(ValidationError(
                        f"the first stage may only contain source actions, "
                        f"not {action.kind.value}",
                        location=location,
                    ))
                elif position > 0 and action.kind == ActionKind.SOURCE:
                    errors.append(ValidationError(
                        "source actions are only allowed in the first stage",
                        location=location,
                    ))
        return errors

    def _check_artifacts(self) -> list[AssemblyError]:
        errors: list[AssemblyError] = []
        # Outputs of strictly earlier stages only
        available: dict[str, str] = {}
        for stage in self._pipeline.stages:
            for action in stage.actions:
                for name in action.inputs:
                    if name not in available:
                        errors.append(DanglingArtifactError(
                            name, action.name,
                            location=action_location(stage.name, action.name),
                        ))

            produced_here: dict[str, str] = {}
            for action in stage.actions:
                for name in action.outputs:
                    first = available.get(name) or produced_here.get(name)
                    if first is not None:
                        errors.append(DuplicateArtifactError(
                            name, first, action.name,
                            location=action_location(stage.name, action.name),
                        ))
                        continue
                    produced_here[name] = action.name
            available.update(produced_here)
        return errors

    def _check_resources(self) -> list[AssemblyError]:
        errors: list[AssemblyError] = []
        for stage in self._pipeline.stages:
            for action in stage.actions:
                if action.resource is None:
                    continue
                location = action_location(stage.name, action.name)
                try:
                    ref = self._synthesizer.get_resource(action.resource)
                except UnknownResourceError:
                    errors.append(UnknownResourceError(action.resource, location=location))
                    continue
                allowed = ACTION_RESOURCE_KINDS[action.kind]
                if ref.kind not in allowed:
                    errors.append(ValidationError(
                        f"{action.kind.value} action cannot use {ref.kind.value} "
                        f"resource '{ref.logical_id}' (expected "
                        f"{' or '.join(sorted(k.value for k in allowed))})",
                        location=location,
                    ))
        return errors

    def _check_artifact_store(self) -> list[AssemblyError]:
        store_id = self._pipeline.artifact_store
        location = f"{self.pipeline_id}.artifact_store"
        storage = self._storage.get(store_id)
        if storage is None:
            try:
                self._synthesizer.get_resource(store_id)
            except UnknownResourceError:
                return [UnknownResourceError(store_id, location=location)]
            return [ValidationError(
                f"artifact store '{store_id}' is not a storage resource", location=location
            )]
        if storage.is_public:
            return [ValidationError(
                f"artifact store '{store_id}' must be private, not "
                f"{storage.visibility.value}",
                location=location,
            )]
        return []

    # ------------------------------------------------------------------
    # Permission grants
    # ------------------------------------------------------------------

    def grant_permissions(self) -> list[AssemblyError]:
        """Grant the pipeline role (and pipeline-driven build roles) what
        every action touches.  Returns the failures instead of raising."""
        errors: list[AssemblyError] = []
        store = self._pipeline.artifact_store

        def attempt(consumer: str, resource: str, capability: Capability, location: str) -> None:
            try:
                self._synthesizer.grant(consumer, resource, capability)
            except AssemblyError as exc:
                exc.location = exc.location or location
                errors.append(exc)

        attempt(self._role_id, store, Capability.READ_WRITE, f"{self.pipeline_id}.artifact_store")

        for stage in self._pipeline.stages:
            for action in stage.actions:
                if action.resource is None:
                    continue
                location = action_location(stage.name, action.name)
                ref = self._synthesizer.get_resource(action.resource)
                capability = ACTION_CAPABILITIES[(action.kind, ref.kind)]
                attempt(self._role_id, ref.logical_id, capability, location)
                if action.kind == ActionKind.BUILD and ref.logical_id in self._build_roles:
                    attempt(
                        self._build_roles[ref.logical_id], store, Capability.READ_WRITE, location
                    )
        logger.debug("Granted action permissions for pipeline %s.", self.pipeline_id)
        return errors

    # ------------------------------------------------------------------
    # Planning
    # ------------------------------------------------------------------

    def action_logical_id(self, stage: str, action: str) -> str:
        """Deterministic logical id for an action."""
        return derive_logical_id(self.pipeline_id, stage, action)

    def _plan_action(self, stage: str, action: Action) -> PlannedAction:
        ref: ResourceRef | None = None
        if action.resource is not None:
            ref = self._synthesizer.get_resource(action.resource)
        return PlannedAction(
            logical_id=self.action_logical_id(stage, action.name),
            name=action.name,
            kind=action.kind,
            resource=action.resource,
            resource_arn=ref.arn if ref else None,
            provider=action.provider,
            inputs=list(action.inputs),
            outputs=list(action.outputs),
            configuration=dict(action.configuration),
        )

    def plan(self) -> PipelinePlan:
        """Frozen plan of the pipeline.  Call only after a clean ``validate()``."""
        store = self._synthesizer.get_resource(self._pipeline.artifact_store)
        stages = [
            PlannedStage(
                position=position,
                name=stage.name,
                actions=[self._plan_action(stage.name, a) for a in stage.actions],
            )
            for position, stage in enumerate(self._pipeline.stages)
        ]
        return PipelinePlan(
            logical_id=self.pipeline_id,
            role=self._role_id,
            artifact_store=store.logical_id,
            artifact_store_arn=store.arn,
            stages=stages,
        )

    def build(self) -> PipelinePlan:
        """Validate, grant and plan; raises ``AssemblyFailedError`` on any defect."""
        errors = self.validate()
        if not errors:
            errors = self.grant_permissions()
        if errors:
            raise AssemblyFailedError(errors)
        plan = self.plan()
        logger.info(
            "Pipeline %s planned: %d stage(s), %d artifact(s).",
            self.pipeline_id, len(plan.stages), len(plan.artifacts),
        )
        return plan
