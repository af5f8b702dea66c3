"""Trigger configuration: TriggerSpec + branch -> ordered webhook filter group.

Ref patterns are always anchored (``^...$``) so that a trigger on
``develop`` never fires for ``develop-v2``; alternations are grouped first
so the anchors hold for every branch they name.  Under exact matching a bare
branch name is escaped-checked rather than escaped: an unescaped regex
metacharacter is almost always a mistake and is reported, not guessed at.
"""

from __future__ import annotations

import logging
import re

from pipeforge.core.errors import InvalidTriggerError
from pipeforge.models.triggers import (
    EventKind,
    FilterType,
    MatchMode,
    TriggerConfiguration,
    TriggerSpec,
    WebhookFilter,
)

logger = logging.getLogger(__name__)

BRANCH_REF_PREFIX = "refs/heads/"

_UNESCAPED_METACHAR = re.compile(r"(?<!\\)[.^$*+?{}\[\]|()]")


def anchor_exact_branch(branch: str, *, location: str = "") -> str:
    """``develop`` -> ``^refs/heads/develop$``.

    A leading ``refs/heads/`` is accepted and not doubled.
    """
    name = branch.strip()
    if name.startswith(BRANCH_REF_PREFIX):
        name = name[len(BRANCH_REF_PREFIX):]
    if not name:
        raise InvalidTriggerError("branch name is empty", location=location)
    bad = sorted(set(_UNESCAPED_METACHAR.findall(name)))
    if bad:
        raise InvalidTriggerError(
            f"branch '{name}' contains unescaped regex metacharacters {bad} "
            f"under exact matching; escape them or use match: regex",
            location=location,
        )
    return f"^{BRANCH_REF_PREFIX}{name}$"


def has_top_level_alternation(pattern: str) -> bool:
    """True if ``pattern`` has a ``|`` outside every group and character class."""
    depth = 0
    in_class = False
    escaped = False
    for char in pattern:
        if escaped:
            escaped = False
        elif char == "\\":
            escaped = True
        elif in_class:
            in_class = char != "]"
        elif char == "[":
            in_class = True
        elif char == "(":
            depth += 1
        elif char == ")":
            depth = max(depth - 1, 0)
        elif char == "|" and depth == 0:
            return True
    return False


def anchor_ref_pattern(pattern: str, *, location: str = "") -> str:
    """Anchor a caller-supplied regex, qualifying bare names with ``refs/heads/``.

    A top-level alternation is grouped before anchoring, so ``main|develop``
    becomes ``^refs/heads/(?:main|develop)$`` and both anchors bind every
    alternative.
    """
    body = pattern.strip()
    if body.startswith("^"):
        body = body[1:]
    if body.endswith("$") and not body.endswith("\\$"):
        body = body[:-1]
    if not body:
        raise InvalidTriggerError("ref pattern is empty", location=location)
    qualified = body.startswith("refs/")
    if has_top_level_alternation(body):
        body = f"(?:{body})"
    if not qualified:
        body = BRANCH_REF_PREFIX + body
    anchored = f"^{body}$"
    try:
        re.compile(anchored)
    except re.error as exc:
        raise InvalidTriggerError(
            f"ref pattern '{pattern}' is not a valid regular expression: {exc}",
            location=location,
        ) from exc
    return anchored


def filter_group(
    event: EventKind, ref: str, match: MatchMode = MatchMode.EXACT, *, location: str = ""
) -> list[WebhookFilter]:
    """The ordered ``[EVENT, *_REF]`` pair for one event and ref."""
    if match == MatchMode.EXACT:
        pattern = anchor_exact_branch(ref, location=location)
    else:
        pattern = anchor_ref_pattern(ref, location=location)
    ref_type = FilterType.BASE_REF if event.is_pull_request else FilterType.HEAD_REF
    return [
        WebhookFilter(type=FilterType.EVENT, pattern=event.filter_pattern),
        WebhookFilter(type=ref_type, pattern=pattern),
    ]


class TriggerConfigurator:
    """Turns trigger specs into the configuration attached to a build."""

    def configure(
        self,
        trigger: TriggerSpec | None,
        branch: str | None = None,
        *,
        location: str = "",
    ) -> TriggerConfiguration:
        """Normalize ``trigger``; ``branch`` is used when it has no ref pattern.

        Raises ``InvalidTriggerError`` when a webhook is enabled but no ref
        pattern can be resolved.
        """
        if trigger is None or not trigger.webhook:
            return TriggerConfiguration()

        ref = trigger.ref_pattern if trigger.ref_pattern is not None else branch
        if ref is None or not ref.strip():
            raise InvalidTriggerError(
                "webhook is enabled but no ref pattern or source branch is set",
                location=location,
            )

        group = filter_group(trigger.event, ref, trigger.match, location=location)
        logger.debug(
            "Trigger for %s: %s",
            location or "build", ", ".join(f"{f.type.value}={f.pattern}" for f in group),
        )
        return TriggerConfiguration(webhook=True, filter_groups=[group])
