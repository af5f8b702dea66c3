"""Identity roles, permission statements and access needs."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from pipeforge.models.common import LOGICAL_ID_PATTERN

WILDCARD_RESOURCE = "*"

# Actions that may legitimately carry an account-wide ``*`` resource.
WILDCARD_ALLOWED_ACTIONS: frozenset[str] = frozenset({"create-log-group"})


class Effect(str, Enum):
    ALLOW = "allow"
    DENY = "deny"


class TrustPrincipal(str, Enum):
    """The service allowed to assume a role."""

    BUILD = "build"
    PIPELINE = "pipeline"
    FUNCTION = "function"


class Capability(str, Enum):
    """Abstract access levels mapped to concrete actions at synthesis time."""

    READ = "read"
    READ_WRITE = "read-write"
    LIST = "list"
    INVOKE = "invoke"
    USE = "use"
    WRITE_LOGS = "write-logs"
    DEPLOY = "deploy"


def normalize_actions(actions: object) -> tuple[str, ...]:
    """Deduplicate and sort an action collection for deterministic output."""
    if isinstance(actions, str):
        actions = [actions]
    return tuple(sorted({str(a) for a in actions}))  # type: ignore[union-attr]


class Permission(BaseModel):
    """One policy statement: a set of actions on a resource pattern."""

    model_config = ConfigDict(frozen=True)

    actions: tuple[str, ...] = Field(min_length=1)
    resource: str = Field(min_length=1)
    effect: Effect = Effect.ALLOW

    @field_validator("actions", mode="before")
    @classmethod
    def _sorted_unique(cls, value: object) -> tuple[str, ...]:
        return normalize_actions(value)

    @property
    def is_unconstrained(self) -> bool:
        return self.resource == WILDCARD_RESOURCE

    @property
    def merge_key(self) -> tuple[Effect, str]:
        """Statements sharing this key on one role are merged."""
        return (self.effect, self.resource)


class IdentityRole(BaseModel):
    """An assumable identity and the statements granted to it."""

    model_config = ConfigDict(frozen=True)

    logical_id: str = Field(pattern=LOGICAL_ID_PATTERN)
    trust_principal: TrustPrincipal
    statements: list[Permission] = []
    description: str = ""

    @model_validator(mode="after")
    def _no_unconstrained_scope(self) -> IdentityRole:
        for statement in self.statements:
            if not statement.is_unconstrained:
                continue
            disallowed = set(statement.actions) - WILDCARD_ALLOWED_ACTIONS
            if disallowed:
                raise ValueError(
                    f"role '{self.logical_id}' grants {sorted(disallowed)} on '*'; "
                    f"only {sorted(WILDCARD_ALLOWED_ACTIONS)} may use an "
                    f"unconstrained resource"
                )
        return self


class AccessNeed(BaseModel):
    """A declared need: ``consumer`` role requires ``capability`` on ``resource``.

    ``capability`` stays a plain string here so that an unknown class
    surfaces as ``UnsupportedCapabilityError`` from the synthesizer rather
    than a schema error.
    """

    model_config = ConfigDict(frozen=True)

    consumer: str = Field(min_length=1)
    resource: str = Field(min_length=1)
    capability: str = Field(min_length=1)
