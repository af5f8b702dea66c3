"""Canonical hashing and deterministic logical ids.

Repeated synthesis of the same declarative input must yield byte-identical
identifiers, so ids are derived from canonical JSON of their naming parts
rather than from counters, timestamps or uuids.
"""

from __future__ import annotations

import hashlib
import json
import re
from typing import Any

_NON_ALNUM = re.compile(r"[^A-Za-z0-9]+")

# Human-readable prefix is capped so ids stay within template key limits.
_MAX_READABLE_LENGTH = 200
_SUFFIX_LENGTH = 8


def canonical_json_bytes(obj: Any) -> bytes:
    """Produce deterministic canonical JSON bytes.

    - sorted keys
    - no whitespace separators (",", ":")
    - ensure_ascii=True
    - UTF-8 encoding
    """
    return json.dumps(
        obj, sort_keys=True, separators=(",", ":"), ensure_ascii=True
    ).encode("utf-8")


def sha256_hex(data: bytes) -> str:
    """Return the SHA-256 hex digest of raw bytes."""
    return hashlib.sha256(data).hexdigest()


def content_address(obj: Any) -> str:
    """Content-address a JSON-serializable object as ``sha256:<hex>``."""
    return f"sha256:{sha256_hex(canonical_json_bytes(obj))}"


def _pascal(part: str) -> str:
    words = [w for w in _NON_ALNUM.split(part) if w]
    return "".join(w[0].upper() + w[1:] for w in words)


def derive_logical_id(*parts: str) -> str:
    """Stable logical id for a generated sub-resource.

    ``derive_logical_id("Frontend", "Build", "CodeBuild", "Role")`` returns
    ``FrontendBuildCodeBuildRole`` followed by eight hex digits of the
    SHA-256 over the raw parts.  The suffix keeps ids distinct when two part
    tuples collapse to the same readable prefix (``a-b``/``ab``).
    """
    if not parts or not all(parts):
        raise ValueError("derive_logical_id needs at least one non-empty part")
    readable = "".join(_pascal(p) for p in parts)[:_MAX_READABLE_LENGTH]
    if not readable or not readable[0].isalpha():
        readable = "R" + readable
    suffix = sha256_hex(canonical_json_bytes(list(parts)))[:_SUFFIX_LENGTH].upper()
    return f"{readable}{suffix}"


def compute_graph_fingerprint(document: dict[str, Any]) -> str:
    """Content address of a graph document, ignoring its own fingerprint."""
    d = {k: v for k, v in document.items() if k != "fingerprint"}
    return content_address(d)
