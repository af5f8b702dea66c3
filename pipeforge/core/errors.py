"""Assembly error taxonomy.

Every error here is local, deterministic and non-retryable: it depends only
on the declarative input and the injected target environment, so re-running
assembly on the same input reproduces the same error set.

The Assembler collects these rather than stopping at the first one and
raises a single ``AssemblyFailedError`` listing all of them.
"""

from __future__ import annotations

from collections.abc import Iterable


class AssemblyError(Exception):
    """Base class for every error raised while assembling a pipeline."""

    code = "assembly_error"

    def __init__(self, message: str, *, location: str = "") -> None:
        super().__init__(message)
        self.message = message
        self.location = location

    def __str__(self) -> str:
        if self.location:
            return f"{self.location}: {self.message}"
        return self.message


class ValidationError(AssemblyError, ValueError):
    """Raised when a resource descriptor is malformed."""

    code = "validation"


class ConfigurationError(ValidationError):
    """Raised when the injected target environment is missing or malformed."""

    code = "configuration"


class DefinitionLoadError(ValidationError):
    """Raised when a definition file cannot be read or parsed."""

    code = "definition_load"


class UnknownResourceError(AssemblyError):
    """Raised when a need or action references a resource nobody declared."""

    code = "unknown_resource"

    def __init__(self, resource_id: str, *, location: str = "") -> None:
        super().__init__(f"Unknown resource '{resource_id}'", location=location)
        self.resource_id = resource_id


class UnsupportedCapabilityError(AssemblyError):
    """Raised when a capability class cannot be mapped for a resource kind."""

    code = "unsupported_capability"

    def __init__(
        self, capability: str, resource_kind: str = "", *, location: str = ""
    ) -> None:
        if resource_kind:
            message = (
                f"Capability '{capability}' is not supported on "
                f"{resource_kind} resources"
            )
        else:
            message = f"Unsupported capability class '{capability}'"
        super().__init__(message, location=location)
        self.capability = capability
        self.resource_kind = resource_kind


class InvalidTriggerError(AssemblyError):
    """Raised when a branch or event pattern cannot form a filter group."""

    code = "invalid_trigger"


class DanglingArtifactError(AssemblyError):
    """Raised when an action consumes an artifact no earlier stage produced."""

    code = "dangling_artifact"

    def __init__(self, artifact: str, action: str, *, location: str = "") -> None:
        super().__init__(
            f"Action '{action}' consumes artifact '{artifact}' which is not "
            f"produced by any action in an earlier stage",
            location=location,
        )
        self.artifact = artifact
        self.action = action


class DuplicateArtifactError(AssemblyError):
    """Raised when two actions produce an output artifact of the same name."""

    code = "duplicate_artifact"

    def __init__(
        self, artifact: str, first_action: str, second_action: str, *, location: str = ""
    ) -> None:
        super().__init__(
            f"Artifact '{artifact}' is produced by both '{first_action}' "
            f"and '{second_action}'",
            location=location,
        )
        self.artifact = artifact
        self.first_action = first_action
        self.second_action = second_action


class AssemblyFailedError(AssemblyError):
    """Aggregate of every failure found during one assembly run.

    ``errors`` preserves discovery order: construction problems first, then
    permission, trigger and topology problems.
    """

    code = "assembly_failed"

    def __init__(self, errors: Iterable[AssemblyError]) -> None:
        self.errors: list[AssemblyError] = list(errors)
        lines = "\n".join(f"  - [{e.code}] {e}" for e in self.errors)
        super().__init__(
            f"Pipeline assembly failed with {len(self.errors)} error(s):\n{lines}"
        )

    def of_type(self, error_type: type[AssemblyError]) -> list[AssemblyError]:
        """Return the collected errors that are instances of ``error_type``."""
        return [e for e in self.errors if isinstance(e, error_type)]
