"""Storage (bucket) descriptors and their resource policies.

Visibility rules are enforced at construction:

- ``website`` needs an index document; website documents are only valid
  for ``website`` buckets.
- ``public-read`` and ``website`` buckets always carry an explicit,
  auditable statement granting anonymous ``get-object`` on objects.  When
  the caller declares none, the standard ``PublicReadGetObject`` statement
  is inserted so the synthesized policy set shows it.
- ``private`` buckets may not grant anything to an anonymous principal.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from pipeforge.models.common import LOGICAL_ID_PATTERN, to_slug
from pipeforge.models.iam import Effect, normalize_actions

ANONYMOUS_PRINCIPAL = "*"
PUBLIC_READ_SID = "PublicReadGetObject"
PUBLIC_READ_ACTIONS: frozenset[str] = frozenset({"get-object"})

BUCKET_NAME_PATTERN = r"^[a-z0-9][a-z0-9.-]{1,61}[a-z0-9]$"


class Visibility(str, Enum):
    PRIVATE = "private"
    PUBLIC_READ = "public-read"
    WEBSITE = "website"


class RemovalPolicy(str, Enum):
    RETAIN = "retain"
    DESTROY = "destroy"


class PolicyScope(str, Enum):
    """Whether a bucket statement targets the bucket itself or its objects."""

    BUCKET = "bucket"
    OBJECTS = "objects"


class BucketPolicyStatement(BaseModel):
    """A statement in a bucket's own resource policy."""

    model_config = ConfigDict(frozen=True)

    sid: str = Field(min_length=1)
    principal: str = Field(min_length=1)  # "*" is anonymous
    actions: tuple[str, ...] = Field(min_length=1)
    scope: PolicyScope = PolicyScope.OBJECTS
    effect: Effect = Effect.ALLOW

    @field_validator("actions", mode="before")
    @classmethod
    def _sorted_unique(cls, value: object) -> tuple[str, ...]:
        return normalize_actions(value)

    @property
    def grants_anonymous(self) -> bool:
        return self.effect == Effect.ALLOW and self.principal == ANONYMOUS_PRINCIPAL


class LifecycleRule(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    expiration_days: int | None = Field(default=None, ge=1)
    abort_incomplete_upload_after_days: int | None = Field(default=None, ge=1)

    @model_validator(mode="after")
    def _has_a_window(self) -> LifecycleRule:
        if self.expiration_days is None and self.abort_incomplete_upload_after_days is None:
            raise ValueError(
                f"lifecycle rule '{self.id}' sets neither expiration_days nor "
                f"abort_incomplete_upload_after_days"
            )
        return self


class WebsiteDocuments(BaseModel):
    model_config = ConfigDict(frozen=True)

    index_document: str | None = None
    error_document: str | None = None


def _raw(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


def _is_public_read_statement(statement: Any) -> bool:
    """Shallow check usable on raw dicts before field validation."""
    if isinstance(statement, BucketPolicyStatement):
        return (
            statement.grants_anonymous
            and statement.scope == PolicyScope.OBJECTS
            and "get-object" in statement.actions
        )
    if not isinstance(statement, dict):
        return False
    actions = statement.get("actions", ())
    if isinstance(actions, str):
        actions = [actions]
    return (
        statement.get("principal") == ANONYMOUS_PRINCIPAL
        and _raw(statement.get("effect", Effect.ALLOW)) == Effect.ALLOW.value
        and _raw(statement.get("scope", PolicyScope.OBJECTS)) == PolicyScope.OBJECTS.value
        and "get-object" in actions
    )


class StorageResource(BaseModel):
    """A bucket: artifact store, deploy target, or code store."""

    model_config = ConfigDict(frozen=True)

    logical_id: str = Field(pattern=LOGICAL_ID_PATTERN)
    bucket_name: str | None = Field(default=None, pattern=BUCKET_NAME_PATTERN)
    visibility: Visibility = Visibility.PRIVATE
    encrypted: bool = True
    versioned: bool = False
    lifecycle_rules: list[LifecycleRule] = []
    website: WebsiteDocuments | None = None
    removal_policy: RemovalPolicy = RemovalPolicy.RETAIN
    auto_delete_objects: bool = False
    policy_statements: list[BucketPolicyStatement] = []

    @model_validator(mode="before")
    @classmethod
    def _insert_public_read_statement(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        visibility = _raw(data.get("visibility", Visibility.PRIVATE))
        if visibility not in (Visibility.PUBLIC_READ.value, Visibility.WEBSITE.value):
            return data
        statements = list(data.get("policy_statements") or [])
        if not any(_is_public_read_statement(s) for s in statements):
            statements.append({
                "sid": PUBLIC_READ_SID,
                "principal": ANONYMOUS_PRINCIPAL,
                "actions": sorted(PUBLIC_READ_ACTIONS),
                "scope": PolicyScope.OBJECTS.value,
            })
        return {**data, "policy_statements": statements}

    @model_validator(mode="after")
    def _check_visibility_rules(self) -> StorageResource:
        problems: list[str] = []

        if self.visibility == Visibility.WEBSITE:
            if self.website is None or not self.website.index_document:
                problems.append("website visibility requires an index document")
        elif self.website is not None:
            problems.append(
                f"website documents are only valid for website visibility, "
                f"not {self.visibility.value}"
            )

        anonymous = [s for s in self.policy_statements if s.grants_anonymous]
        if self.visibility == Visibility.PRIVATE and anonymous:
            problems.append(
                "private bucket policy grants an anonymous principal "
                f"(statements: {', '.join(s.sid for s in anonymous)})"
            )
        for statement in anonymous:
            extra = set(statement.actions) - PUBLIC_READ_ACTIONS
            if extra:
                problems.append(
                    f"statement '{statement.sid}' grants {sorted(extra)} to an "
                    f"anonymous principal; only get-object may be public"
                )

        sids = [s.sid for s in self.policy_statements]
        duplicate_sids = sorted({s for s in sids if sids.count(s) > 1})
        if duplicate_sids:
            problems.append(f"duplicate policy statement ids: {duplicate_sids}")

        rule_ids = [r.id for r in self.lifecycle_rules]
        duplicate_rules = sorted({r for r in rule_ids if rule_ids.count(r) > 1})
        if duplicate_rules:
            problems.append(f"duplicate lifecycle rule ids: {duplicate_rules}")

        if self.auto_delete_objects and self.removal_policy != RemovalPolicy.DESTROY:
            problems.append("auto_delete_objects requires removal_policy 'destroy'")

        if problems:
            raise ValueError("; ".join(problems))
        return self

    @property
    def is_public(self) -> bool:
        return self.visibility != Visibility.PRIVATE

    @property
    def resolved_bucket_name(self) -> str:
        """Explicit bucket name, or the slug of the logical id."""
        return self.bucket_name or to_slug(self.logical_id)
