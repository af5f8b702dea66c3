"""Webhook trigger specs and the filter groups synthesized from them."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict


class EventKind(str, Enum):
    """Source events a webhook can fire on."""

    PUSH = "push"
    PULL_REQUEST_CREATED = "pull-request-created"
    PULL_REQUEST_UPDATED = "pull-request-updated"
    PULL_REQUEST_MERGED = "pull-request-merged"

    @property
    def filter_pattern(self) -> str:
        """Pattern used in the EVENT filter, e.g. ``PUSH``."""
        return self.value.replace("-", "_").upper()

    @property
    def is_pull_request(self) -> bool:
        return self is not EventKind.PUSH


class MatchMode(str, Enum):
    EXACT = "exact"
    REGEX = "regex"


class TriggerSpec(BaseModel):
    """Declared trigger for a repository-sourced build.

    ``ref_pattern`` falls back to the build source branch when omitted.
    """

    model_config = ConfigDict(frozen=True)

    event: EventKind = EventKind.PUSH
    ref_pattern: str | None = None
    match: MatchMode = MatchMode.EXACT
    webhook: bool = True


class FilterType(str, Enum):
    EVENT = "EVENT"
    HEAD_REF = "HEAD_REF"
    BASE_REF = "BASE_REF"


class WebhookFilter(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: FilterType
    pattern: str


class TriggerConfiguration(BaseModel):
    """Normalized trigger attached to a build resource.

    Every filter within a group must match for the webhook to fire.
    """

    model_config = ConfigDict(frozen=True)

    webhook: bool = False
    build_type: str = "BUILD"
    filter_groups: list[list[WebhookFilter]] = []
