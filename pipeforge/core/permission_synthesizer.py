"""Permission synthesis: minimal grants for declared access needs.

Each need ``(consumer role, resource, capability class)`` is mapped through
a fixed table to concrete statements and merged into the consumer's
statement set, keyed by ``(effect, resource pattern)``.  Merging is a set
union, so synthesis is idempotent and commutative within a role: asking
for the same need twice leaves the same statements as asking once.

The synthesizer fails closed.  A need naming an unregistered role or
resource raises ``UnknownResourceError``; an unknown capability class, or
one with no meaning for the resource's kind, raises
``UnsupportedCapabilityError``.  Nothing ever falls back to a broader
grant.
"""

from __future__ import annotations

import logging
from enum import Enum

from pydantic import BaseModel, ConfigDict

from pipeforge.core.errors import (
    UnknownResourceError,
    UnsupportedCapabilityError,
    ValidationError,
)
from pipeforge.core.resources import construct
from pipeforge.models.common import ResourceKind
from pipeforge.models.iam import AccessNeed, Capability, Effect, IdentityRole, Permission

logger = logging.getLogger(__name__)


class GrantScope(str, Enum):
    """What a table row's actions apply to."""

    RESOURCE = "resource"  # the resource ARN itself
    CHILDREN = "children"  # objects in a bucket, streams in a log group


_CHILD_SUFFIX: dict[ResourceKind, str] = {
    ResourceKind.STORAGE: "/*",
    ResourceKind.LOG_GROUP: ":*",
}

_OBJECT_READ = frozenset({"get-object"})
_OBJECT_READ_WRITE = frozenset({"get-object", "put-object", "delete-object"})
_BUCKET_LIST = frozenset({"list-bucket", "get-bucket-location"})
_LOG_WRITE = frozenset({"create-log-group", "create-log-stream", "put-log-events"})

# (resource kind, capability) -> statements to grant.
CAPABILITY_TABLE: dict[
    tuple[ResourceKind, Capability], tuple[tuple[GrantScope, frozenset[str]], ...]
] = {
    (ResourceKind.STORAGE, Capability.READ): (
        (GrantScope.CHILDREN, _OBJECT_READ),
    ),
    (ResourceKind.STORAGE, Capability.READ_WRITE): (
        (GrantScope.CHILDREN, _OBJECT_READ_WRITE),
        (GrantScope.RESOURCE, _BUCKET_LIST),
    ),
    (ResourceKind.STORAGE, Capability.LIST): (
        (GrantScope.RESOURCE, _BUCKET_LIST),
    ),
    (ResourceKind.BUILD, Capability.INVOKE): (
        (GrantScope.RESOURCE, frozenset({"start-build", "batch-get-builds"})),
    ),
    (ResourceKind.CONNECTION, Capability.USE): (
        (GrantScope.RESOURCE, frozenset({"use-connection"})),
    ),
    (ResourceKind.LOG_GROUP, Capability.WRITE_LOGS): (
        (GrantScope.RESOURCE, _LOG_WRITE),
        (GrantScope.CHILDREN, _LOG_WRITE),
    ),
    (ResourceKind.FUNCTION, Capability.DEPLOY): (
        (
            GrantScope.RESOURCE,
            frozenset({
                "get-function",
                "get-function-configuration",
                "update-function-code",
                "update-function-configuration",
            }),
        ),
    ),
    (ResourceKind.FUNCTION, Capability.INVOKE): (
        (GrantScope.RESOURCE, frozenset({"invoke-function"})),
    ),
}


class ResourceRef(BaseModel):
    """What the synthesizer knows about a grantable resource."""

    model_config = ConfigDict(frozen=True)

    logical_id: str
    kind: ResourceKind
    arn: str

    def scoped(self, scope: GrantScope) -> str:
        if scope == GrantScope.CHILDREN:
            return f"{self.arn}{_CHILD_SUFFIX[self.kind]}"
        return self.arn


def parse_capability(value: str, *, location: str = "") -> Capability:
    try:
        return Capability(value)
    except ValueError:
        raise UnsupportedCapabilityError(value, location=location) from None


def map_capability(ref: ResourceRef, capability: Capability, *, location: str = "") -> list[Permission]:
    """Concrete statements for ``capability`` on ``ref`` (table lookup only)."""
    rows = CAPABILITY_TABLE.get((ref.kind, capability))
    if rows is None:
        raise UnsupportedCapabilityError(capability.value, ref.kind.value, location=location)
    return [Permission(actions=actions, resource=ref.scoped(scope)) for scope, actions in rows]


class PermissionSynthesizer:
    """Accumulates grants per role and emits the finished roles.

    All merging goes through ``_statements``, the single accumulation
    point, keyed by role id and then by ``(effect, resource)``.
    """

    def __init__(self) -> None:
        self._resources: dict[str, ResourceRef] = {}
        self._roles: dict[str, IdentityRole] = {}
        self._statements: dict[str, dict[tuple[Effect, str], set[str]]] = {}

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register_resource(self, ref: ResourceRef) -> None:
        existing = self._resources.get(ref.logical_id)
        if existing is not None and existing != ref:
            raise ValidationError(
                f"resource '{ref.logical_id}' registered twice with different references",
                location=ref.logical_id,
            )
        self._resources[ref.logical_id] = ref

    def register_role(self, role: IdentityRole) -> None:
        """Register a role; its declared statements seed the accumulator."""
        if role.logical_id in self._roles:
            raise ValidationError(
                f"role '{role.logical_id}' registered twice", location=role.logical_id
            )
        self._roles[role.logical_id] = role
        buckets: dict[tuple[Effect, str], set[str]] = {}
        for statement in role.statements:
            buckets.setdefault(statement.merge_key, set()).update(statement.actions)
        self._statements[role.logical_id] = buckets

    def has_role(self, role_id: str) -> bool:
        return role_id in self._roles

    def get_role(self, role_id: str) -> IdentityRole:
        try:
            return self._roles[role_id]
        except KeyError:
            raise UnknownResourceError(role_id) from None

    def get_resource(self, resource_id: str) -> ResourceRef:
        try:
            return self._resources[resource_id]
        except KeyError:
            raise UnknownResourceError(resource_id) from None

    # ------------------------------------------------------------------
    # Synthesis
    # ------------------------------------------------------------------

    def request(self, need: AccessNeed, *, location: str = "") -> list[Permission]:
        """Satisfy one need; returns the statements it contributed."""
        location = location or f"{need.consumer} -> {need.resource}"
        capability = parse_capability(need.capability, location=location)
        if need.consumer not in self._roles:
            raise UnknownResourceError(need.consumer, location=location)
        ref = self._resources.get(need.resource)
        if ref is None:
            raise UnknownResourceError(need.resource, location=location)

        granted = map_capability(ref, capability, location=location)
        buckets = self._statements[need.consumer]
        for permission in granted:
            buckets.setdefault(permission.merge_key, set()).update(permission.actions)

        logger.debug(
            "Granted %s on %s to %s (%d statement(s)).",
            capability.value, need.resource, need.consumer, len(granted),
        )
        return granted

    def grant(self, consumer: str, resource: str, capability: Capability | str) -> list[Permission]:
        """Shorthand for ``request(AccessNeed(...))``."""
        value = capability.value if isinstance(capability, Capability) else capability
        return self.request(AccessNeed(consumer=consumer, resource=resource, capability=value))

    def permissions(self, role_id: str) -> list[Permission]:
        """Current merged statements for a role, in first-seen order."""
        if role_id not in self._statements:
            raise UnknownResourceError(role_id)
        return [
            Permission(actions=actions, resource=resource, effect=effect)
            for (effect, resource), actions in self._statements[role_id].items()
        ]

    def finalize(self) -> list[IdentityRole]:
        """Frozen roles carrying their merged statements, in registration order.

        Statements are sorted by ``(effect, resource)`` so the output does
        not depend on the order needs arrived in.  Roles are re-validated,
        so the unconstrained-scope rule holds for synthesized statements as
        well as declared ones.
        """
        finished: list[IdentityRole] = []
        for role_id, role in self._roles.items():
            statements = sorted(self.permissions(role_id), key=lambda p: p.merge_key)
            data = role.model_dump()
            data["statements"] = [p.model_dump() for p in statements]
            finished.append(construct(IdentityRole, data))
        logger.info("Synthesized statements for %d role(s).", len(finished))
        return finished
