"""Shared identifiers and resource kinds."""

from __future__ import annotations

import re
from enum import Enum

# Logical ids name resources inside one definition; they become template
# keys downstream, so keep them to letters, digits, dash and underscore.
LOGICAL_ID_PATTERN = r"^[A-Za-z][A-Za-z0-9_-]*$"

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")
_NON_SLUG = re.compile(r"[^a-z0-9]+")


class ResourceKind(str, Enum):
    """Kinds of resource the synthesizer knows how to grant access to."""

    STORAGE = "storage"
    BUILD = "build"
    CONNECTION = "connection"
    LOG_GROUP = "log-group"
    FUNCTION = "function"


def to_slug(logical_id: str) -> str:
    """Lower-case, dash-separated form of a logical id.

    ``ImFrontendArtifacts`` -> ``im-frontend-artifacts``.
    """
    spaced = _CAMEL_BOUNDARY.sub("-", logical_id).lower()
    return _NON_SLUG.sub("-", spaced).strip("-")
